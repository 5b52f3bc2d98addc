"""
Tests for backup export/import.
"""

import json
import os
import tempfile
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from common.testing import IsolatedWorkspaceMixin, make_test_workspace
from apps.storage.cache_store import KEYS
from .exceptions import ImportFormatError, InvalidExportRangeError
from .services import build_export, import_bundle, load_bundle


def populate(workspace):
    workspace.repo('patients').put_many([
        {'id': 'P-1001', 'name': 'Rahim Uddin', 'reg_date': '2024-05-20T09:00:00+06:00'},
        {'id': 'P-1002', 'name': 'Karim Mia', 'reg_date': '2024-04-02T09:00:00+06:00'},
    ])
    workspace.bills.put_many([
        {'id': 'INV-202405-0001', 'patient_id': 'P-1001', 'total_amount': Decimal('800'),
         'date': '2024-05-20T10:30:00+06:00'},
        {'id': 'INV-202405-0002', 'patient_id': 'P-1002', 'total_amount': Decimal('500'),
         'date': '2024-05-21T11:00:00+06:00'},
    ])
    workspace.repo('expenses').put({'id': 'EXP-1', 'description': 'Paper', 'amount': Decimal('350'),
                                    'date': '2024-05-20T12:00:00+06:00'})
    workspace.services.put({'id': 'S1', 'name': 'General Consultation', 'price': Decimal('500')})


class ExportTest(SimpleTestCase):

    def setUp(self):
        self.workspace = make_test_workspace()
        populate(self.workspace)

    def test_full_export(self):
        bundle = build_export(self.workspace)

        self.assertEqual(len(bundle['bills']), 2)
        self.assertEqual(len(bundle['patients']), 2)
        self.assertEqual(bundle['services'][0]['id'], 'S1')
        self.assertIn('name', bundle['config'])
        self.assertEqual(bundle['export_info']['mode'], 'full')
        self.assertEqual(bundle['export_info']['range'], 'all')

    def test_daily_export_filters_by_day(self):
        bundle = build_export(self.workspace, mode='daily', day='2024-05-20')

        self.assertEqual([b['id'] for b in bundle['bills']], ['INV-202405-0001'])
        self.assertEqual([p['id'] for p in bundle['patients']], ['P-1001'])
        self.assertEqual([e['id'] for e in bundle['expenses']], ['EXP-1'])
        # Undated collections are exported whole
        self.assertEqual(len(bundle['services']), 1)
        self.assertEqual(bundle['export_info']['range'], '2024-05-20')

    def test_range_export(self):
        bundle = build_export(self.workspace, mode='range', start='2024-05-21', end='2024-05-31')

        self.assertEqual([b['id'] for b in bundle['bills']], ['INV-202405-0002'])
        self.assertEqual(bundle['export_info']['range'], '2024-05-21 to 2024-05-31')

    def test_incomplete_range_rejected(self):
        with self.assertRaises(InvalidExportRangeError):
            build_export(self.workspace, mode='range', start='2024-05-21')


class ImportTest(SimpleTestCase):

    def setUp(self):
        self.workspace = make_test_workspace()
        populate(self.workspace)

    def test_set_union_never_overwrites(self):
        bundle = {
            'patients': [
                {'id': 'P-1001', 'name': 'Changed Name'},
                {'id': 'P-1003', 'name': 'Nadia Islam'},
            ],
            'bills': [{'id': 'INV-202406-0003', 'total_amount': Decimal('100')}],
            'users': [{'id': 'U9', 'username': 'legacy', 'password': 'password'}],
            'config': {'name': 'Somewhere Else'},
        }

        added = import_bundle(self.workspace, bundle)

        self.assertEqual(added['patients'], 1)
        self.assertEqual(added['bills'], 1)
        patients = self.workspace.repo('patients')
        self.assertEqual(patients.get('P-1001')['name'], 'Rahim Uddin')
        self.assertEqual(patients.get('P-1003')['name'], 'Nadia Islam')
        self.assertNotIn('password', self.workspace.repo('users').get('U9'))
        self.assertIsNone(self.workspace.store.get_value(KEYS['hospital_config']))

    def test_import_is_idempotent(self):
        bundle = build_export(self.workspace)

        added = import_bundle(self.workspace, bundle)

        self.assertEqual(sum(added.values()), 0)
        self.assertEqual(len(self.workspace.bills), 2)

    def test_missing_required_collection_aborts_whole_import(self):
        bundle = {'bills': [{'id': 'INV-NEW'}], 'services': [{'id': 'S-NEW'}]}

        with self.assertRaises(ImportFormatError):
            import_bundle(self.workspace, bundle)

        self.assertFalse(self.workspace.bills.exists('INV-NEW'))
        self.assertFalse(self.workspace.services.exists('S-NEW'))

    def test_record_without_id_aborts(self):
        with self.assertRaises(ImportFormatError):
            import_bundle(self.workspace, {'bills': [{'id': 'INV-NEW'}], 'patients': [{'name': 'No id'}]})
        self.assertFalse(self.workspace.bills.exists('INV-NEW'))

    def test_load_bundle(self):
        bundle = load_bundle(b'{"bills": [{"id": "B1", "total_amount": 800.5}], "patients": []}')
        self.assertEqual(bundle['bills'][0]['total_amount'], Decimal('800.5'))

        with self.assertRaises(ImportFormatError):
            load_bundle(b'not json')


class BackupAPITest(IsolatedWorkspaceMixin, TestCase):

    def setUp(self):
        super().setUp()
        populate(self.workspace)
        User = get_user_model()
        self.clerk = User.objects.create_user(username='clerk', password='secret-pass-1')
        self.admin = User.objects.create_user(username='boss', password='secret-pass-1')
        self.admin.groups.add(Group.objects.create(name='Administrator'))
        self.api = APIClient()

    def test_export_download(self):
        self.api.force_authenticate(self.clerk)

        response = self.api.get('/api/backup/export/?mode=daily&date=2024-05-20')

        self.assertEqual(response.status_code, 200)
        self.assertIn('attachment; filename="medcore_daily_backup_', response['Content-Disposition'])
        bundle = json.loads(response.content)
        self.assertEqual([b['id'] for b in bundle['bills']], ['INV-202405-0001'])

    def test_export_invalid_range(self):
        self.api.force_authenticate(self.clerk)

        response = self.api.get('/api/backup/export/?mode=range&start=2024-05-21')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'invalid_export_range')

    def test_import_requires_administrator(self):
        self.api.force_authenticate(self.clerk)

        response = self.api.post('/api/backup/import/?confirm=true', {'bills': [], 'patients': []}, format='json')

        self.assertEqual(response.status_code, 403)

    def test_import_requires_confirmation(self):
        self.api.force_authenticate(self.admin)

        response = self.api.post('/api/backup/import/', {'bills': [], 'patients': []}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'confirmation_required')

    def test_import_json_body(self):
        self.api.force_authenticate(self.admin)
        bundle = {'bills': [{'id': 'INV-202406-0009', 'total_amount': 1200.5}], 'patients': []}

        response = self.api.post('/api/backup/import/?confirm=true', bundle, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['bills'], 1)
        self.assertEqual(self.workspace.bills.get('INV-202406-0009')['total_amount'], Decimal('1200.5'))

    def test_import_file_upload(self):
        self.api.force_authenticate(self.admin)
        upload = SimpleUploadedFile(
            'backup.json',
            b'{"bills": [], "patients": [{"id": "P-2001", "name": "Uploaded"}]}',
            content_type='application/json',
        )

        response = self.api.post('/api/backup/import/', {'file': upload, 'confirm': 'true'}, format='multipart')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(self.workspace.repo('patients').exists('P-2001'))

    def test_import_bad_file(self):
        self.api.force_authenticate(self.admin)
        upload = SimpleUploadedFile('backup.json', b'{"services": []}', content_type='application/json')

        response = self.api.post('/api/backup/import/', {'file': upload, 'confirm': 'true'}, format='multipart')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'import_format_error')


class BackupCommandTest(IsolatedWorkspaceMixin, TestCase):

    def test_export_then_import(self):
        populate(self.workspace)
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'backup.json')
            call_command('export_backup', output=path, stdout=StringIO())

            self.workspace = make_test_workspace()
            from apps.storage.workspace import install_workspace
            install_workspace(self.workspace)

            with self.assertRaises(CommandError):
                call_command('import_backup', path, stdout=StringIO())

            call_command('import_backup', path, confirm=True, stdout=StringIO())

        self.assertEqual(len(self.workspace.bills), 2)
        self.assertEqual(self.workspace.repo('expenses').get('EXP-1')['amount'], Decimal('350'))
