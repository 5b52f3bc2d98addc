"""
Test helpers shared by the app test modules.
"""

import uuid

from django.core.cache.backends.locmem import LocMemCache


def make_test_workspace(client=None, online=True, outbox_enabled=True):
    """A workspace over a private in-memory cache, with no background executor"""
    from apps.storage.cache_store import LocalCacheStore
    from apps.storage.workspace import Workspace

    store = LocalCacheStore(cache=LocMemCache(f'test-{uuid.uuid4().hex}', {}))
    return Workspace(store, client=client, online=online, outbox_enabled=outbox_enabled)


class IsolatedWorkspaceMixin:
    """
    Installs a fresh workspace for each test and restores the previous one.

    Set ``workspace_client`` on the test class to attach a (mocked)
    record store client.
    """
    workspace_client = None

    def setUp(self):
        super().setUp()
        from apps.storage.workspace import install_workspace

        self.workspace = make_test_workspace(client=self.workspace_client)
        self._previous_workspace = install_workspace(self.workspace)

    def tearDown(self):
        from apps.storage.workspace import install_workspace

        install_workspace(self._previous_workspace)
        super().tearDown()
