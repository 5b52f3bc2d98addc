"""
Per-entity repositories.

A repository keeps its collection as an insertion-ordered dict keyed by
record id, so single-record lookups and mutations are O(1). After every
mutation it still honours the whole-collection contract of the local cache
(one full write) and mirrors the touched records remotely.
"""

import copy
import logging
import threading

from common.exceptions import ClinicError

logger = logging.getLogger(__name__)


class UnknownEntityTypeError(ClinicError):
    default_code = 'unknown_entity_type'
    status_code = 400


class CollectionRepository:

    def __init__(self, entity_type: str, adapter):
        self.entity_type = entity_type
        self.adapter = adapter
        self._records = None
        self._lock = threading.RLock()

    def _index(self) -> dict:
        if self._records is None:
            self.refresh()
        return self._records

    def refresh(self) -> list:
        """Reload from the adapter (server authoritative when reachable)"""
        records = self.adapter.fetch_collection(self.entity_type)
        with self._lock:
            self._records = {r['id']: r for r in records if r.get('id')}
        logger.debug(f"Loaded {len(self._records)} {self.entity_type}")
        return self.all()

    def all(self) -> list:
        return [copy.deepcopy(r) for r in self._index().values()]

    def ids(self) -> list:
        return list(self._index().keys())

    def get(self, record_id):
        record = self._index().get(record_id)
        return copy.deepcopy(record) if record is not None else None

    def exists(self, record_id) -> bool:
        return record_id in self._index()

    def filter(self, predicate) -> list:
        return [copy.deepcopy(r) for r in self._index().values() if predicate(r)]

    def __len__(self):
        return len(self._index())

    def put(self, record: dict) -> dict:
        """Insert or replace one record"""
        with self._lock:
            index = self._index()
            index[record['id']] = copy.deepcopy(record)
            self.adapter.upsert_record(self.entity_type, record, collection=list(index.values()))
        return record

    def put_many(self, records) -> list:
        records = list(records)
        if not records:
            return records
        with self._lock:
            index = self._index()
            for record in records:
                index[record['id']] = copy.deepcopy(record)
            self.adapter.save_collection(self.entity_type, list(index.values()), changed=records)
        return records

    def remove(self, record_id):
        """Drop one record; returns it, or None if it was not live"""
        removed = self.remove_many([record_id])
        return removed[0] if removed else None

    def remove_many(self, record_ids) -> list:
        with self._lock:
            index = self._index()
            removed = [index.pop(record_id) for record_id in list(record_ids) if record_id in index]
            if removed:
                self.adapter.remove_records(
                    self.entity_type,
                    [r['id'] for r in removed],
                    collection=list(index.values()),
                )
        return removed

    def replace_all(self, records) -> list:
        """Swap the whole collection; records that disappear are deleted remotely"""
        records = list(records)
        with self._lock:
            index = self._index()
            new_ids = {r['id'] for r in records}
            dropped = [record_id for record_id in index if record_id not in new_ids]
            self._records = {r['id']: copy.deepcopy(r) for r in records}
            self.adapter.save_collection(self.entity_type, records)
            if dropped:
                self.adapter.remove_records(self.entity_type, dropped, collection=records)
        return records
