"""
Tests for the local cache store, remote sync adapter, outbox and repositories.
"""

import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.contrib.auth import get_user_model
from django.core.cache.backends.locmem import LocMemCache
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from common.testing import IsolatedWorkspaceMixin, make_test_workspace
from .api_client import RecordStoreClient, RecordStoreAPIError, PersistenceTimeoutError
from .cache_store import LocalCacheStore, KEYS, dumps
from .connectivity import Connectivity
from .identifiers import make_id, next_sequential_id
from .outbox import Outbox
from .repositories import UnknownEntityTypeError
from .sync import RemoteSyncAdapter


def make_store():
    return LocalCacheStore(cache=LocMemCache(f'test-{uuid.uuid4().hex}', {}))


class LocalCacheStoreTest(SimpleTestCase):

    def setUp(self):
        self.store = make_store()

    def test_missing_collection_reads_empty(self):
        self.assertEqual(self.store.read_collection('bills'), [])

    def test_write_replaces_whole_collection(self):
        self.store.write_collection('patients', [{'id': 'P-1001'}, {'id': 'P-1002'}])
        self.store.write_collection('patients', [{'id': 'P-1003'}])

        self.assertEqual(self.store.read_collection('patients'), [{'id': 'P-1003'}])

    def test_amounts_come_back_as_decimal(self):
        self.store.write_collection('bills', [{'id': 'B1', 'total_amount': Decimal('800.50')}])

        bill = self.store.read_collection('bills')[0]
        self.assertIsInstance(bill['total_amount'], Decimal)
        self.assertEqual(bill['total_amount'], Decimal('800.5'))

    def test_collections_live_under_prefixed_keys(self):
        self.store.write_collection('trash', [{'id': 'TRASH-1'}])
        self.assertTrue(self.store.has(KEYS['trash']))
        self.assertEqual(KEYS['trash'], 'medcore_trash')

    def test_non_collection_value_reads_empty(self):
        self.store.set_value(KEYS['bills'], {'not': 'a list'})
        self.assertEqual(self.store.read_collection('bills'), [])


class IdentifierTest(SimpleTestCase):

    def test_random_ids_are_distinct(self):
        ids = {make_id('PAY') for _ in range(200)}
        self.assertEqual(len(ids), 200)
        self.assertTrue(all(i.startswith('PAY-') for i in ids))

    def test_sequence_starts_above_floor(self):
        self.assertEqual(next_sequential_id([], 'P', 1000), 'P-1001')

    def test_sequence_follows_highest(self):
        existing = ['P-1001', 'P-1007', 'PRO-5000', 'P-x', 'walkin']
        self.assertEqual(next_sequential_id(existing, 'P', 1000), 'P-1008')

    def test_superscript_digits_are_not_numbers(self):
        self.assertEqual(next_sequential_id(['P-1005', 'P-²'], 'P', 1000), 'P-1006')


class ConnectivityTest(SimpleTestCase):

    def test_listeners_run_only_on_restoration(self):
        connectivity = Connectivity(online=True)
        callback = MagicMock()
        connectivity.add_listener(callback)

        connectivity.mark_online()
        callback.assert_not_called()

        connectivity.mark_offline()
        connectivity.mark_online()
        callback.assert_called_once_with()


class RemoteSyncAdapterTest(SimpleTestCase):

    def setUp(self):
        self.store = make_store()
        self.client = MagicMock(spec=RecordStoreClient)
        self.connectivity = Connectivity(online=True)
        self.outbox = Outbox(self.store, enabled=True)
        self.adapter = RemoteSyncAdapter(
            self.store,
            client=self.client,
            connectivity=self.connectivity,
            outbox=self.outbox,
        )

    def test_offline_read_uses_cache_without_network(self):
        self.store.write_collection('bills', [{'id': 'B1'}])
        self.connectivity.mark_offline()

        self.assertEqual(self.adapter.fetch_collection('bills'), [{'id': 'B1'}])
        self.client.list_records.assert_not_called()

    def test_online_read_overwrites_cache(self):
        self.store.write_collection('bills', [{'id': 'LOCAL'}])
        self.client.list_records.return_value = [{'id': 'SERVER'}]

        self.assertEqual(self.adapter.fetch_collection('bills'), [{'id': 'SERVER'}])
        self.assertEqual(self.store.read_collection('bills'), [{'id': 'SERVER'}])

    def test_timeout_falls_back_to_cache_silently(self):
        self.store.write_collection('bills', [{'id': 'LOCAL'}])
        self.client.list_records.side_effect = PersistenceTimeoutError('timed out')

        self.assertEqual(self.adapter.fetch_collection('bills'), [{'id': 'LOCAL'}])

    def test_write_goes_to_cache_then_remote(self):
        self.adapter.upsert_record('patients', {'id': 'P-1001', 'name': 'Rahim'})

        self.assertEqual(self.store.read_collection('patients'), [{'id': 'P-1001', 'name': 'Rahim'}])
        self.client.upsert_record.assert_called_once_with('patients', {'id': 'P-1001', 'name': 'Rahim'})

    def test_offline_write_is_queued(self):
        self.connectivity.mark_offline()
        self.adapter.upsert_record('patients', {'id': 'P-1001'})

        self.client.upsert_record.assert_not_called()
        self.assertEqual(len(self.outbox), 1)
        self.assertEqual(self.store.read_collection('patients'), [{'id': 'P-1001'}])

    def test_failed_write_is_queued_and_replayed_on_restore(self):
        self.client.upsert_record.side_effect = RecordStoreAPIError('boom', status_code=500)
        self.adapter.upsert_record('patients', {'id': 'P-1001'})
        self.assertEqual(len(self.outbox), 1)

        self.client.upsert_record.side_effect = None
        self.connectivity.add_listener(self.adapter.flush_outbox)
        self.connectivity.mark_offline()
        self.connectivity.mark_online()

        self.assertEqual(len(self.outbox), 0)
        self.assertEqual(self.client.upsert_record.call_count, 2)

    def test_outbox_coalesces_per_record(self):
        self.connectivity.mark_offline()
        self.adapter.upsert_record('patients', {'id': 'P-1001', 'name': 'old'})
        self.adapter.upsert_record('patients', {'id': 'P-1001', 'name': 'new'})

        pending = self.outbox.pending()
        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0]['record']['name'], 'new')

    def test_delete_supersedes_pending_upsert(self):
        self.connectivity.mark_offline()
        self.adapter.upsert_record('patients', {'id': 'P-1001'})
        self.adapter.delete_record('patients', 'P-1001')

        pending = self.outbox.pending()
        self.assertEqual([e['action'] for e in pending], ['delete'])
        self.assertEqual(self.store.read_collection('patients'), [])

    def test_flush_stops_at_first_failure(self):
        self.connectivity.mark_offline()
        self.adapter.upsert_record('patients', {'id': 'P-1'})
        self.adapter.upsert_record('patients', {'id': 'P-2'})
        self.connectivity._online = True
        self.client.upsert_record.side_effect = RecordStoreAPIError('down')

        result = self.adapter.flush_outbox()

        self.assertEqual(result, {'sent': 0, 'failed': 1, 'remaining': 2})
        self.assertEqual(self.client.upsert_record.call_count, 1)
        self.assertEqual(self.outbox.pending()[0]['attempts'], 1)

    def test_pending_writes_overlay_server_answer(self):
        self.connectivity.mark_offline()
        self.adapter.upsert_record('patients', {'id': 'P-1', 'name': 'local'})
        self.connectivity._online = True
        # Server still unreachable for writes, reachable for reads
        self.client.upsert_record.side_effect = RecordStoreAPIError('down')
        self.client.list_records.return_value = [{'id': 'P-1', 'name': 'stale'}, {'id': 'P-2'}]

        records = self.adapter.fetch_collection('patients')

        by_id = {r['id']: r for r in records}
        self.assertEqual(by_id['P-1']['name'], 'local')
        self.assertIn('P-2', by_id)

    def test_disabled_outbox_drops_failed_writes(self):
        adapter = RemoteSyncAdapter(
            self.store,
            client=self.client,
            connectivity=self.connectivity,
            outbox=Outbox(self.store, enabled=False),
        )
        self.client.upsert_record.side_effect = RecordStoreAPIError('down')

        adapter.upsert_record('patients', {'id': 'P-1'})

        self.assertEqual(len(adapter.outbox), 0)
        self.assertEqual(self.store.read_collection('patients'), [{'id': 'P-1'}])

    def test_background_writes_use_executor(self):
        executor = MagicMock()
        adapter = RemoteSyncAdapter(
            self.store,
            client=self.client,
            connectivity=self.connectivity,
            outbox=self.outbox,
            executor=executor,
        )

        adapter.upsert_record('patients', {'id': 'P-1'})

        executor.submit.assert_called_once()
        self.client.upsert_record.assert_not_called()

    def background_adapter(self):
        """Adapter whose dispatched writes only run when the test says so"""
        calls = []
        executor = MagicMock()
        executor.submit.side_effect = lambda fn, *args: calls.append((fn, args)) or MagicMock()
        adapter = RemoteSyncAdapter(
            self.store,
            client=self.client,
            connectivity=self.connectivity,
            outbox=self.outbox,
            executor=executor,
        )
        return adapter, calls

    def test_late_success_keeps_newer_queued_write(self):
        adapter, calls = self.background_adapter()
        adapter.upsert_record('patients', {'id': 'P-1', 'v': 1})
        self.connectivity.mark_offline()
        adapter.upsert_record('patients', {'id': 'P-1', 'v': 2})

        fn, args = calls[0]
        fn(*args)

        pending = self.outbox.pending()
        self.assertEqual(len(pending), 1)
        self.assertEqual(pending[0]['record']['v'], 2)

    def test_late_failure_does_not_replace_newer_queued_write(self):
        adapter, calls = self.background_adapter()
        adapter.upsert_record('patients', {'id': 'P-1', 'v': 1})
        self.connectivity.mark_offline()
        adapter.upsert_record('patients', {'id': 'P-1', 'v': 2})
        self.client.upsert_record.side_effect = RecordStoreAPIError('down')

        fn, args = calls[0]
        fn(*args)

        self.assertEqual([e['record']['v'] for e in self.outbox.pending()], [2])

    def test_successful_write_clears_older_queued_intent(self):
        self.connectivity.mark_offline()
        self.adapter.upsert_record('patients', {'id': 'P-1', 'v': 1})
        self.connectivity._online = True

        self.adapter.upsert_record('patients', {'id': 'P-1', 'v': 2})

        self.assertEqual(len(self.outbox), 0)
        self.client.upsert_record.assert_called_once_with('patients', {'id': 'P-1', 'v': 2})


class WorkspaceOutboxTest(SimpleTestCase):

    def setUp(self):
        self.client = MagicMock(spec=RecordStoreClient)
        self.client.list_records.return_value = []

    def test_adapter_shares_the_workspace_outbox(self):
        workspace = make_test_workspace(client=self.client)

        self.assertIs(workspace.adapter.outbox, workspace.outbox)
        self.assertIs(workspace.adapter.connectivity, workspace.connectivity)

    def test_offline_repository_write_is_queued_and_flushed(self):
        workspace = make_test_workspace(client=self.client, online=False)

        workspace.repo('patients').put({'id': 'P-1001', 'name': 'Rahim'})

        self.assertEqual(len(workspace.outbox), 1)
        self.assertEqual(workspace.sync_status()['pending_writes'], 1)
        self.client.upsert_record.assert_not_called()

        workspace.connectivity.mark_online()

        self.client.upsert_record.assert_called_once_with('patients', {'id': 'P-1001', 'name': 'Rahim'})
        self.assertEqual(len(workspace.outbox), 0)


class RepositoryTest(SimpleTestCase):

    def setUp(self):
        self.client = MagicMock(spec=RecordStoreClient)
        self.client.list_records.return_value = []
        self.workspace = make_test_workspace(client=self.client)

    def test_returned_records_are_copies(self):
        repo = self.workspace.repo('patients')
        repo.put({'id': 'P-1001', 'tags': ['a']})

        record = repo.get('P-1001')
        record['tags'].append('b')

        self.assertEqual(repo.get('P-1001')['tags'], ['a'])

    def test_put_keeps_insertion_order_and_replaces_in_place(self):
        repo = self.workspace.repo('patients')
        repo.put({'id': 'P-1', 'name': 'a'})
        repo.put({'id': 'P-2', 'name': 'b'})
        repo.put({'id': 'P-1', 'name': 'c'})

        self.assertEqual([r['name'] for r in repo.all()], ['c', 'b'])
        self.assertEqual(
            self.workspace.store.read_collection('patients'),
            [{'id': 'P-1', 'name': 'c'}, {'id': 'P-2', 'name': 'b'}],
        )

    def test_remove_deletes_remotely(self):
        repo = self.workspace.repo('patients')
        repo.put({'id': 'P-1'})

        removed = repo.remove('P-1')

        self.assertEqual(removed, {'id': 'P-1'})
        self.assertFalse(repo.exists('P-1'))
        self.client.delete_record.assert_called_once_with('patients', 'P-1')

    def test_remove_missing_is_noop(self):
        self.assertIsNone(self.workspace.repo('patients').remove('nope'))
        self.client.delete_record.assert_not_called()

    def test_unknown_entity_type(self):
        with self.assertRaises(UnknownEntityTypeError):
            self.workspace.repo('invoices')


class RecordStoreClientTest(SimpleTestCase):

    def setUp(self):
        self.client = RecordStoreClient('http://store.local/', token='abc', timeout=5)

    @patch('apps.storage.api_client.requests.get')
    def test_list_records_parses_amounts_as_decimal(self, mock_get):
        response = MagicMock(status_code=200)
        response.json.return_value = [{'id': 'B1', 'total_amount': Decimal('10.5')}]
        mock_get.return_value = response

        records = self.client.list_records('bills')

        self.assertEqual(records[0]['id'], 'B1')
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], 'http://store.local/api/records/bills/')
        self.assertEqual(kwargs['timeout'], 5)
        self.assertEqual(kwargs['headers']['Authorization'], 'Token abc')

    @patch('apps.storage.api_client.requests.get')
    def test_timeout_maps_to_persistence_timeout(self, mock_get):
        mock_get.side_effect = requests.Timeout('slow')

        with self.assertRaises(PersistenceTimeoutError):
            self.client.list_records('bills')

    @patch('apps.storage.api_client.requests.post')
    def test_error_status_raises(self, mock_post):
        response = MagicMock(status_code=404)
        response.json.return_value = {'error': 'Invalid Route'}
        mock_post.return_value = response

        with self.assertRaises(RecordStoreAPIError) as ctx:
            self.client.upsert_record('invoices', {'id': 'X'})

        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, 'Invalid Route')

    @patch('apps.storage.api_client.requests.post')
    def test_upsert_sends_json_body(self, mock_post):
        response = MagicMock(status_code=200)
        response.json.return_value = {'status': 'success', 'id': 'B1'}
        mock_post.return_value = response

        self.client.upsert_record('bills', {'id': 'B1', 'total_amount': Decimal('800')})

        self.assertEqual(mock_post.call_args.kwargs['data'], dumps({'id': 'B1', 'total_amount': Decimal('800')}))


class SyncAPITest(IsolatedWorkspaceMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.user = get_user_model().objects.create_user(username='clerk', password='secret-pass-1')
        self.api = APIClient()
        self.api.force_authenticate(self.user)

    def test_status(self):
        response = self.api.get('/api/sync/status/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['success'])
        self.assertFalse(response.data['data']['remote_configured'])
        self.assertEqual(response.data['data']['pending_writes'], 0)

    def test_offline_then_online(self):
        response = self.api.post('/api/sync/offline/')
        self.assertFalse(response.data['data']['online'])

        response = self.api.post('/api/sync/online/')
        self.assertTrue(response.data['data']['online'])

    def test_requires_authentication(self):
        response = APIClient().get('/api/sync/status/')
        self.assertIn(response.status_code, (401, 403))
