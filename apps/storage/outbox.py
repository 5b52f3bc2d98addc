"""
Pending remote writes.

Remote writes are best effort. When one fails, or is attempted while
offline, its intent is parked here (persisted in the local cache) and
replayed on the next flush. Entries are coalesced per
``(entity_type, record_id)``: a newer intent replaces an older one, so a
replay never pushes a stale version after a fresh one.
"""

import logging
import threading
import uuid

from django.utils import timezone

from .api_client import RecordStoreAPIError
from .cache_store import KEYS

logger = logging.getLogger(__name__)


UPSERT = 'upsert'
DELETE = 'delete'

# Default for ``replaces``: overwrite whatever is queued
ANY_ENTRY = object()


class Outbox:

    def __init__(self, store, enabled: bool = True):
        self.store = store
        self.enabled = enabled
        self.key = KEYS['outbox']
        self._lock = threading.RLock()

    def pending(self, entity_type: str = None) -> list:
        entries = self.store.read(self.key)
        if entity_type is None:
            return entries
        return [e for e in entries if e['entity_type'] == entity_type]

    def __len__(self):
        return len(self.pending())

    def has_pending(self, entity_type: str) -> bool:
        return any(e['entity_type'] == entity_type for e in self.pending())

    def entry_id(self, entity_type: str, record_id: str):
        """Id of the intent currently queued for a record, or None"""
        for e in self.pending(entity_type):
            if e['record_id'] == record_id:
                return e['id']
        return None

    def enqueue_upsert(self, entity_type: str, record: dict, replaces=ANY_ENTRY):
        self._enqueue(entity_type, record['id'], UPSERT, record, replaces)

    def enqueue_delete(self, entity_type: str, record_id: str, replaces=ANY_ENTRY):
        self._enqueue(entity_type, record_id, DELETE, None, replaces)

    def _enqueue(self, entity_type, record_id, action, record, replaces=ANY_ENTRY):
        """
        Queue an intent, replacing the one already queued for the record.

        With ``replaces`` set to an entry id (or None for "nothing queued"),
        the intent is only queued while that is still the queued entry; a
        newer intent parked meanwhile wins.
        """
        if not self.enabled:
            logger.warning(
                f"Dropping failed remote {action} for {entity_type}/{record_id} (outbox disabled)"
            )
            return

        with self._lock:
            entries = self.store.read(self.key)
            current = next(
                (e['id'] for e in entries
                 if e['entity_type'] == entity_type and e['record_id'] == record_id),
                None,
            )
            if replaces is not ANY_ENTRY and current != replaces:
                logger.info(f"Newer remote write already queued for {entity_type}/{record_id}")
                return

            entries = [
                e for e in entries
                if not (e['entity_type'] == entity_type and e['record_id'] == record_id)
            ]
            entries.append({
                'id': uuid.uuid4().hex,
                'entity_type': entity_type,
                'record_id': record_id,
                'action': action,
                'record': record,
                'queued_at': timezone.now().isoformat(),
                'attempts': 0,
                'last_error': None,
            })
            self.store.write(self.key, entries)
        logger.info(f"Queued remote {action} for {entity_type}/{record_id}")

    def discard(self, entry_id):
        """
        Forget an intent superseded by a successful remote write.

        Only the entry queued when that write was dispatched is dropped;
        intents queued after it are newer and stay.
        """
        if entry_id is None:
            return
        self._remove_entry(entry_id)

    def overlay(self, entity_type: str, records: list) -> list:
        """
        Apply pending intents on top of a server answer.

        Keeps unsynced local changes visible when the server copy is
        older than what was written locally.
        """
        pending = self.pending(entity_type)
        if not pending:
            return records

        merged = {r.get('id'): r for r in records}
        for entry in pending:
            if entry['action'] == DELETE:
                merged.pop(entry['record_id'], None)
            else:
                merged[entry['record_id']] = entry['record']
        return list(merged.values())

    def flush(self, client) -> dict:
        """
        Replay pending intents in queue order.

        Stops at the first failure; the failed entry and everything after
        it stay queued for the next attempt.
        """
        sent = 0
        failed = 0
        for entry in self.pending():
            try:
                if entry['action'] == DELETE:
                    client.delete_record(entry['entity_type'], entry['record_id'])
                else:
                    client.upsert_record(entry['entity_type'], entry['record'])
            except RecordStoreAPIError as e:
                failed += 1
                self._mark_failed(entry['id'], str(e))
                logger.warning(
                    f"Outbox replay of {entry['entity_type']}/{entry['record_id']} failed: {e}"
                )
                break
            self._remove_entry(entry['id'])
            sent += 1

        remaining = len(self.pending())
        if sent or failed:
            logger.info(f"Outbox flush: {sent} sent, {failed} failed, {remaining} remaining")
        return {'sent': sent, 'failed': failed, 'remaining': remaining}

    def _remove_entry(self, entry_id):
        # The entry may have been replaced by a newer intent meanwhile
        with self._lock:
            entries = self.store.read(self.key)
            self.store.write(self.key, [e for e in entries if e['id'] != entry_id])

    def _mark_failed(self, entry_id, error):
        with self._lock:
            entries = self.store.read(self.key)
            for e in entries:
                if e['id'] == entry_id:
                    e['attempts'] += 1
                    e['last_error'] = error
            self.store.write(self.key, entries)
