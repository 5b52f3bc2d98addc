"""
Workspace: the object graph every engine service works against.

Built once per process by the storage app config and passed to services
explicitly; it owns the local cache store, the connectivity flag, the
outbox, the sync adapter and one repository per entity type.
"""

import logging
from concurrent.futures import ThreadPoolExecutor

from django.apps import apps
from django.conf import settings

from .api_client import RecordStoreClient
from .cache_store import ENTITY_TYPES, LocalCacheStore
from .connectivity import Connectivity
from .outbox import Outbox
from .repositories import CollectionRepository, UnknownEntityTypeError
from .sync import RemoteSyncAdapter

logger = logging.getLogger(__name__)


class Workspace:

    def __init__(self, store, client=None, online=True, outbox_enabled=True, executor=None):
        self.store = store
        self.connectivity = Connectivity(online=online)
        self.outbox = Outbox(store, enabled=outbox_enabled)
        self.executor = executor
        self.adapter = RemoteSyncAdapter(
            store,
            client=client,
            connectivity=self.connectivity,
            outbox=self.outbox,
            executor=executor,
        )
        self.repositories = {
            entity_type: CollectionRepository(entity_type, self.adapter)
            for entity_type in ENTITY_TYPES
        }
        self.connectivity.add_listener(self.adapter.flush_outbox)

    @classmethod
    def from_settings(cls):
        conf = getattr(settings, 'RECORD_STORE', {})
        client = RecordStoreClient.from_settings()

        executor = None
        if client is not None and conf.get('ASYNC_WRITES', True):
            executor = ThreadPoolExecutor(
                max_workers=conf.get('MAX_WORKERS', 4),
                thread_name_prefix='record-sync',
            )

        return cls(
            store=LocalCacheStore(alias='local_store'),
            client=client,
            online=conf.get('START_ONLINE', True),
            outbox_enabled=conf.get('OUTBOX_ENABLED', True),
            executor=executor,
        )

    def repo(self, entity_type: str) -> CollectionRepository:
        try:
            return self.repositories[entity_type]
        except KeyError:
            raise UnknownEntityTypeError(f"Unknown entity type: {entity_type}")

    @property
    def bills(self):
        return self.repositories['bills']

    @property
    def commissions(self):
        return self.repositories['commissions']

    @property
    def professionals(self):
        return self.repositories['professionals']

    @property
    def services(self):
        return self.repositories['services']

    @property
    def trash(self):
        return self.repositories['trash']

    def refresh_all(self) -> dict:
        """Re-read every collection; returns record counts per entity type"""
        return {
            entity_type: len(repository.refresh())
            for entity_type, repository in self.repositories.items()
        }

    def sync_status(self) -> dict:
        return {
            'remote_configured': self.adapter.client is not None,
            'online': self.connectivity.is_online(),
            'pending_writes': len(self.outbox),
            'outbox_enabled': self.outbox.enabled,
        }

    def shutdown(self, wait: bool = True):
        if self.executor is not None:
            self.executor.shutdown(wait=wait)


def get_workspace() -> Workspace:
    """The process-wide workspace built at startup"""
    return apps.get_app_config('storage').workspace


def install_workspace(workspace: Workspace) -> Workspace:
    """Swap the process-wide workspace (tests, management commands); returns the previous one"""
    config = apps.get_app_config('storage')
    previous = config.workspace
    config.workspace = workspace
    return previous
