"""
Remote Sync Adapter

Best-effort bridge between the local cache and the remote record store.

Reads: offline -> local cache immediately. Online -> one time-bounded
request; the server answer is authoritative and overwrites the cached
collection. Any failure silently falls back to the cache.

Writes: the local cache is written synchronously first, then the remote
write is dispatched and not waited on. Dispatched writes are unordered
relative to each other, so the remote store can end up reflecting an older
local state when two writes to the same record race (lost update). Failed
or offline writes go to the outbox instead of being dropped.
"""

import logging

from .api_client import RecordStoreAPIError
from .connectivity import Connectivity
from .outbox import Outbox, UPSERT, DELETE

logger = logging.getLogger(__name__)


def _log_unexpected_failure(future):
    exc = future.exception()
    if exc is not None:
        logger.error(f"Background record store write crashed: {exc!r}")


class RemoteSyncAdapter:

    def __init__(self, store, client=None, connectivity=None, outbox=None, executor=None):
        """
        Args:
            store: LocalCacheStore every write goes through first
            client: RecordStoreClient, or None for a local-only setup
            connectivity: Connectivity flag
            outbox: Outbox for failed/offline writes
            executor: concurrent.futures executor for fire-and-forget
                writes; None sends inline
        """
        self.store = store
        self.client = client
        if connectivity is None:
            connectivity = Connectivity(online=client is not None)
        if outbox is None:
            outbox = Outbox(store, enabled=False)
        self.connectivity = connectivity
        self.outbox = outbox
        self.executor = executor

    @property
    def remote_available(self) -> bool:
        return self.client is not None and self.connectivity.is_online()

    # ==================== Reads ====================

    def fetch_collection(self, entity_type: str) -> list:
        """Server answer when reachable (cached as a side effect), else the cache"""
        if not self.remote_available:
            return self.store.read_collection(entity_type)

        if self.outbox.has_pending(entity_type):
            self.flush_outbox()

        try:
            records = self.client.list_records(entity_type)
        except RecordStoreAPIError as e:
            logger.warning(f"Falling back to local cache for {entity_type}: {e.message}")
            return self.store.read_collection(entity_type)

        records = self.outbox.overlay(entity_type, records)
        self.store.write_collection(entity_type, records)
        return records

    def fetch_record(self, entity_type: str, record_id: str):
        """Single record from the server when reachable, else from the cache"""
        if self.remote_available and not self.outbox.has_pending(entity_type):
            try:
                return self.client.get_record(entity_type, record_id)
            except RecordStoreAPIError as e:
                logger.warning(f"Falling back to local cache for {entity_type}/{record_id}: {e.message}")

        for record in self.store.read_collection(entity_type):
            if record.get('id') == record_id:
                return record
        return None

    # ==================== Writes ====================

    def upsert_record(self, entity_type: str, record: dict, collection=None):
        """
        Write one record locally, then push it remotely.

        Args:
            collection: the full collection already containing ``record``;
                when omitted the cached collection is read and merged.
        """
        if collection is None:
            collection = [r for r in self.store.read_collection(entity_type) if r.get('id') != record['id']]
            collection.append(record)
        self.store.write_collection(entity_type, collection)
        self._push(entity_type, UPSERT, record=record)

    def delete_record(self, entity_type: str, record_id: str, collection=None):
        if collection is None:
            collection = [r for r in self.store.read_collection(entity_type) if r.get('id') != record_id]
        self.store.write_collection(entity_type, collection)
        self._push(entity_type, DELETE, record_id=record_id)

    def save_collection(self, entity_type: str, records: list, changed=None):
        """
        One full-collection local write followed by one remote upsert per
        record (or per record in ``changed``). No batching, no rollback.
        """
        records = list(records)
        self.store.write_collection(entity_type, records)
        for record in (records if changed is None else changed):
            self._push(entity_type, UPSERT, record=record)

    def remove_records(self, entity_type: str, record_ids, collection: list):
        """One full-collection local write followed by one remote delete per id"""
        self.store.write_collection(entity_type, collection)
        for record_id in record_ids:
            self._push(entity_type, DELETE, record_id=record_id)

    def _push(self, entity_type, action, record=None, record_id=None):
        record_id = record['id'] if record is not None else record_id

        if self.client is None:
            # Local-only setup, nothing to mirror
            return

        if not self.connectivity.is_online():
            self._park(entity_type, action, record, record_id)
            return

        # The intent queued for this record right now is what this send supersedes
        queued = self.outbox.entry_id(entity_type, record_id)

        if self.executor is not None:
            future = self.executor.submit(self._send, entity_type, action, record, record_id, queued)
            future.add_done_callback(_log_unexpected_failure)
        else:
            self._send(entity_type, action, record, record_id, queued)

    def _send(self, entity_type, action, record, record_id, queued=None):
        try:
            if action == DELETE:
                self.client.delete_record(entity_type, record_id)
            else:
                self.client.upsert_record(entity_type, record)
        except RecordStoreAPIError as e:
            logger.warning(f"Remote {action} of {entity_type}/{record_id} failed: {e.message}")
            self._park(entity_type, action, record, record_id, replaces=queued)
            return
        self.outbox.discard(queued)

    def _park(self, entity_type, action, record, record_id, **kwargs):
        if action == DELETE:
            self.outbox.enqueue_delete(entity_type, record_id, **kwargs)
        else:
            self.outbox.enqueue_upsert(entity_type, record, **kwargs)

    def flush_outbox(self) -> dict:
        if not self.remote_available:
            return {'sent': 0, 'failed': 0, 'remaining': len(self.outbox)}
        return self.outbox.flush(self.client)
