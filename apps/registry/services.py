"""
Registry service: create/read/update/delete for the non-bill collections.

Records are validated by the view's serializer and stored through the
workspace repositories; deletes always go through the recycle bin.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from django.utils import timezone

from common.exceptions import ClinicError
from apps.storage.identifiers import make_id, next_sequential_id
from apps.storage.repositories import UnknownEntityTypeError
from apps.recycle_bin.exceptions import RecordNotFoundError
from apps.recycle_bin.services import RecycleBin

logger = logging.getLogger(__name__)


class DuplicateRecordError(ClinicError):
    default_code = 'duplicate_record'
    status_code = 409


@dataclass(frozen=True)
class EntityDefinition:
    prefix: str
    # Readable sequence (P-1001, PRO-101) instead of a random id
    sequence_floor: Optional[int] = None
    unique_fields: Tuple[str, ...] = ()
    search_fields: Tuple[str, ...] = ('name',)
    # Stamped with the current local time when not supplied
    timestamp_field: Optional[str] = None


REGISTRY = {
    'patients': EntityDefinition(
        'P', sequence_floor=1000, search_fields=('name', 'mobile'), timestamp_field='reg_date'
    ),
    'professionals': EntityDefinition('PRO', sequence_floor=100, search_fields=('name', 'degree', 'phone')),
    'services': EntityDefinition('S', search_fields=('name', 'category')),
    'categories': EntityDefinition('CAT', unique_fields=('name',)),
    'users': EntityDefinition('U', unique_fields=('username',), search_fields=('name', 'username', 'email')),
    'admissions': EntityDefinition(
        'ADM', search_fields=('patient_id', 'room_number'), timestamp_field='admission_date'
    ),
    'rooms': EntityDefinition('RM', unique_fields=('number',), search_fields=('number', 'type', 'floor')),
    'expenses': EntityDefinition('EXP', search_fields=('description', 'category'), timestamp_field='date'),
}


def to_record(data: dict) -> dict:
    """Dates become ISO strings so the in-memory record matches its stored form"""
    record = {}
    for key, value in data.items():
        if isinstance(value, datetime):
            value = timezone.localtime(value).isoformat() if timezone.is_aware(value) else value.isoformat()
        elif isinstance(value, date):
            value = value.isoformat()
        record[key] = value
    return record


class RegistryService:

    def __init__(self, workspace, entity_type: str):
        if entity_type not in REGISTRY:
            raise UnknownEntityTypeError(f"{entity_type} is not a registry collection")
        self.workspace = workspace
        self.entity_type = entity_type
        self.definition = REGISTRY[entity_type]
        self.repo = workspace.repo(entity_type)

    def list_records(self, search=None) -> list:
        records = self.repo.all()
        search = (search or '').strip().lower()
        if not search:
            return records

        def matches(record):
            values = [record.get('id')] + [record.get(f) for f in self.definition.search_fields]
            return any(search in str(v).lower() for v in values if v)

        return [r for r in records if matches(r)]

    def get_record(self, record_id: str) -> dict:
        record = self.repo.get(record_id)
        if record is None:
            raise RecordNotFoundError(f"No {self.entity_type} record {record_id}")
        return record

    def next_id(self) -> str:
        definition = self.definition
        if definition.sequence_floor is not None:
            return next_sequential_id(self.repo.ids(), definition.prefix, definition.sequence_floor)
        return make_id(definition.prefix)

    def _check_unique(self, record: dict):
        for field in self.definition.unique_fields:
            value = record.get(field)
            if value in (None, ''):
                continue
            clash = self.repo.filter(
                lambda r: r['id'] != record['id'] and str(r.get(field, '')).lower() == str(value).lower()
            )
            if clash:
                raise DuplicateRecordError(
                    f"A {self.entity_type} record with {field} '{value}' already exists ({clash[0]['id']})"
                )

    def create_record(self, data: dict) -> dict:
        record = {'id': self.next_id(), **to_record(data)}
        timestamp_field = self.definition.timestamp_field
        if timestamp_field and not record.get(timestamp_field):
            record[timestamp_field] = timezone.localtime().isoformat()
        if self.entity_type == 'patients':
            record.setdefault('history', [])

        self._check_unique(record)
        self.repo.put(record)
        logger.info(f"Created {self.entity_type}/{record['id']}")
        return record

    def update_record(self, record_id: str, changes: dict) -> dict:
        record = self.get_record(record_id)
        record.update(to_record(changes))
        record['id'] = record_id

        self._check_unique(record)
        self.repo.put(record)
        logger.info(f"Updated {self.entity_type}/{record_id}: {', '.join(sorted(changes))}")
        return record

    def delete_record(self, record_id: str) -> dict:
        """Soft delete; returns the trash item"""
        return RecycleBin(self.workspace).soft_delete(self.entity_type, record_id)
