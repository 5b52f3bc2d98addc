"""
Tests for the soft-delete subsystem and the recycle bin API.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from common.testing import IsolatedWorkspaceMixin, make_test_workspace
from apps.storage.repositories import UnknownEntityTypeError
from .exceptions import RestoreConflictError, TrashItemNotFoundError, RecordNotFoundError
from .services import RecycleBin


PATIENT = {
    'id': 'P-1001',
    'name': 'Rahim Uddin',
    'age': 42,
    'mobile': '01700000000',
    'history': [{'date': '2024-05-01', 'note': 'BP check'}],
}


class RecycleBinTest(SimpleTestCase):

    def setUp(self):
        self.workspace = make_test_workspace()
        self.patients = self.workspace.repo('patients')
        self.patients.put(dict(PATIENT))
        self.bin = RecycleBin(self.workspace)

    def test_soft_delete_hides_record(self):
        item = self.bin.soft_delete('patients', 'P-1001')

        self.assertFalse(self.patients.exists('P-1001'))
        self.assertEqual(item['original_id'], 'P-1001')
        self.assertEqual(item['entity_type'], 'patients')
        self.assertEqual(item['display_name'], 'Rahim Uddin')
        self.assertTrue(item['id'].startswith('TRASH-'))
        self.assertEqual(self.bin.list_items(), [item])

    def test_round_trip_reproduces_record(self):
        item = self.bin.soft_delete('patients', 'P-1001')

        restored = self.bin.restore(item['id'])

        self.assertEqual(restored, PATIENT)
        self.assertEqual(self.patients.get('P-1001'), PATIENT)
        self.assertEqual(self.bin.list_items(), [])

    def test_restore_conflict_rejected_by_default(self):
        item = self.bin.soft_delete('patients', 'P-1001')
        self.patients.put({'id': 'P-1001', 'name': 'Someone Else'})

        with self.assertRaises(RestoreConflictError):
            self.bin.restore(item['id'])

        self.assertEqual(self.patients.get('P-1001')['name'], 'Someone Else')
        self.assertEqual(len(self.bin.list_items()), 1)

    def test_restore_conflict_overwrite(self):
        item = self.bin.soft_delete('patients', 'P-1001')
        self.patients.put({'id': 'P-1001', 'name': 'Someone Else'})

        self.bin.restore(item['id'], on_conflict='overwrite')

        self.assertEqual(self.patients.get('P-1001'), PATIENT)

    def test_restore_conflict_rename(self):
        item = self.bin.soft_delete('patients', 'P-1001')
        self.patients.put({'id': 'P-1001', 'name': 'Someone Else'})
        self.patients.put({'id': 'P-1001-R1', 'name': 'Earlier rename'})

        restored = self.bin.restore(item['id'], on_conflict='rename')

        self.assertEqual(restored['id'], 'P-1001-R2')
        self.assertEqual(self.patients.get('P-1001')['name'], 'Someone Else')
        self.assertEqual(self.patients.get('P-1001-R2')['name'], 'Rahim Uddin')

    def test_purge_and_empty(self):
        first = self.bin.soft_delete('patients', 'P-1001')
        self.patients.put({'id': 'P-1002', 'name': 'Karim'})
        self.bin.soft_delete('patients', 'P-1002')

        self.bin.purge(first['id'])
        with self.assertRaises(TrashItemNotFoundError):
            self.bin.restore(first['id'])

        self.assertEqual(self.bin.empty_all(), 1)
        self.assertEqual(self.bin.list_items(), [])

    def test_missing_records(self):
        with self.assertRaises(RecordNotFoundError):
            self.bin.soft_delete('patients', 'P-404')
        with self.assertRaises(TrashItemNotFoundError):
            self.bin.purge('TRASH-404')

    def test_commissions_and_trash_are_not_trashable(self):
        with self.assertRaises(UnknownEntityTypeError):
            self.bin.soft_delete('commissions', 'COM-1')

    def test_bill_delete_and_restore_follow_commission(self):
        self.workspace.professionals.put(
            {'id': 'PRO-101', 'name': 'Dr. Sarah Smith', 'commission_enabled': True, 'commission_rate': Decimal('10')}
        )
        bill = {
            'id': 'INV-202405-0001',
            'referring_professional_id': 'PRO-101',
            'items': [{'line_total': Decimal('800'), 'commission_rate': Decimal('0')}],
            'total_amount': Decimal('800'),
            'discount': Decimal('0'),
            'date': '2024-05-20T10:30:00+06:00',
        }
        self.workspace.bills.put(bill)
        self.workspace.commissions.put({'id': 'COM-1', 'bill_id': bill['id'], 'professional_id': 'PRO-101'})

        item = self.bin.soft_delete('bills', bill['id'])
        self.assertEqual(item['display_name'], 'Invoice INV-202405-0001 (walk-in)')
        self.assertEqual(self.workspace.commissions.all(), [])

        self.bin.restore(item['id'])
        commissions = self.workspace.commissions.all()
        self.assertEqual(len(commissions), 1)
        self.assertEqual(commissions[0]['amount'], Decimal('80.00'))


class RecycleBinAPITest(IsolatedWorkspaceMixin, TestCase):

    def setUp(self):
        super().setUp()
        User = get_user_model()
        self.clerk = User.objects.create_user(username='clerk', password='secret-pass-1')
        self.admin = User.objects.create_user(username='boss', password='secret-pass-1')
        self.admin.groups.add(Group.objects.create(name='Administrator'))
        self.api = APIClient()

        self.workspace.repo('patients').put(dict(PATIENT))
        self.item = RecycleBin(self.workspace).soft_delete('patients', 'P-1001')

    def test_list_and_retrieve(self):
        self.api.force_authenticate(self.clerk)

        response = self.api.get('/api/recycle-bin/')
        self.assertEqual([i['id'] for i in response.data['data']], [self.item['id']])

        response = self.api.get(f"/api/recycle-bin/{self.item['id']}/")
        self.assertEqual(response.data['data']['snapshot'], PATIENT)

    def test_restore_conflict_is_409(self):
        self.api.force_authenticate(self.clerk)
        self.workspace.repo('patients').put({'id': 'P-1001', 'name': 'Someone Else'})

        response = self.api.post(f"/api/recycle-bin/{self.item['id']}/restore/", {}, format='json')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['code'], 'restore_conflict')

        response = self.api.post(
            f"/api/recycle-bin/{self.item['id']}/restore/", {'on_conflict': 'rename'}, format='json'
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['id'], 'P-1001-R1')

    def test_purge_is_admin_only(self):
        self.api.force_authenticate(self.clerk)
        response = self.api.delete(f"/api/recycle-bin/{self.item['id']}/?confirm=true")
        self.assertEqual(response.status_code, 403)

        self.api.force_authenticate(self.admin)
        response = self.api.delete(f"/api/recycle-bin/{self.item['id']}/")
        self.assertEqual(response.status_code, 400)

        response = self.api.delete(f"/api/recycle-bin/{self.item['id']}/?confirm=true")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.workspace.trash.all(), [])

    def test_empty(self):
        self.api.force_authenticate(self.admin)

        response = self.api.post('/api/recycle-bin/empty/', {'confirm': True}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data'], {'purged': 1})
