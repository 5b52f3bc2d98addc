"""
Local Cache Store

Synchronous key/value persistence every other component reads and writes
through. Each entity collection lives under one key as a single serialized
JSON array; a write always replaces the whole collection.

The backing store is a Django cache alias (``local_store`` by default, a
file based cache so the data survives process restarts on the same host).
There is no cross-process locking: two processes each work on their own
snapshot and the last full-collection write wins.
"""

import json
import logging
from decimal import Decimal

from django.core.cache import caches
from django.core.serializers.json import DjangoJSONEncoder

logger = logging.getLogger(__name__)


KEY_PREFIX = 'medcore'

ENTITY_TYPES = (
    'users',
    'patients',
    'professionals',
    'bills',
    'services',
    'categories',
    'admissions',
    'rooms',
    'expenses',
    'commissions',
    'trash',
)

KEYS = {entity_type: f'{KEY_PREFIX}_{entity_type}' for entity_type in ENTITY_TYPES}
KEYS.update({
    'hospital_config': f'{KEY_PREFIX}_hospital_config',
    'outbox': f'{KEY_PREFIX}_outbox',
})


class RecordEncoder(DjangoJSONEncoder):
    """JSON encoder that keeps amounts numeric on the wire"""

    def default(self, o):
        if isinstance(o, Decimal):
            return float(o)
        return super().default(o)


def dumps(value) -> str:
    return json.dumps(value, cls=RecordEncoder)


def loads(raw: str):
    # Amounts come back as Decimal so ledger arithmetic stays exact
    return json.loads(raw, parse_float=Decimal)


class LocalCacheStore:
    """Whole-collection read/replace over a Django cache backend"""

    def __init__(self, cache=None, alias: str = 'local_store'):
        self.cache = cache if cache is not None else caches[alias]

    @staticmethod
    def key_for(entity_type: str) -> str:
        return KEYS.get(entity_type, f'{KEY_PREFIX}_{entity_type}')

    def read(self, key: str) -> list:
        raw = self.cache.get(key)
        if raw is None:
            return []
        data = loads(raw)
        if not isinstance(data, list):
            logger.warning(f"Local cache key {key} does not hold a collection; treating as empty")
            return []
        return data

    def write(self, key: str, records) -> None:
        self.cache.set(key, dumps(list(records)), timeout=None)

    def read_collection(self, entity_type: str) -> list:
        return self.read(self.key_for(entity_type))

    def write_collection(self, entity_type: str, records) -> None:
        self.write(self.key_for(entity_type), records)

    def has(self, key: str) -> bool:
        return self.cache.get(key) is not None

    def get_value(self, key: str, default=None):
        """Read a non-collection value (configuration)"""
        raw = self.cache.get(key)
        if raw is None:
            return default
        return loads(raw)

    def set_value(self, key: str, value) -> None:
        self.cache.set(key, dumps(value), timeout=None)

    def delete(self, key: str) -> None:
        self.cache.delete(key)
