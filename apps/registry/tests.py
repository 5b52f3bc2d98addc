"""
Tests for the registry collections and the seed command.
"""

from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from common.testing import IsolatedWorkspaceMixin, make_test_workspace
from apps.storage.repositories import UnknownEntityTypeError
from .services import RegistryService, DuplicateRecordError, to_record


class RegistryServiceTest(SimpleTestCase):

    def setUp(self):
        self.workspace = make_test_workspace()

    def test_patient_ids_follow_readable_sequence(self):
        patients = RegistryService(self.workspace, 'patients')

        first = patients.create_record({'name': 'Rahim Uddin', 'mobile': '01700000000'})
        second = patients.create_record({'name': 'Karim Mia'})

        self.assertEqual([first['id'], second['id']], ['P-1001', 'P-1002'])
        self.assertEqual(first['history'], [])
        self.assertTrue(first['reg_date'])

    def test_professional_ids_start_after_floor(self):
        professionals = RegistryService(self.workspace, 'professionals')
        self.workspace.professionals.put({'id': 'PRO-104', 'name': 'John Referral Agent'})

        created = professionals.create_record({'name': 'Dr. Nadia Islam', 'commission_rate': Decimal('12')})

        self.assertEqual(created['id'], 'PRO-105')

    def test_other_collections_get_random_ids(self):
        room = RegistryService(self.workspace, 'rooms').create_record({'number': '301'})
        self.assertTrue(room['id'].startswith('RM-'))

    def test_unique_fields(self):
        users = RegistryService(self.workspace, 'users')
        users.create_record({'name': 'Front Desk', 'username': 'desk'})

        with self.assertRaises(DuplicateRecordError):
            users.create_record({'name': 'Someone', 'username': 'DESK'})

    def test_update_merges_changes(self):
        patients = RegistryService(self.workspace, 'patients')
        patient = patients.create_record({'name': 'Rahim Uddin', 'age': 42})

        updated = patients.update_record(patient['id'], {'age': 43})

        self.assertEqual(updated['name'], 'Rahim Uddin')
        self.assertEqual(self.workspace.repo('patients').get(patient['id'])['age'], 43)

    def test_search(self):
        patients = RegistryService(self.workspace, 'patients')
        patients.create_record({'name': 'Rahim Uddin', 'mobile': '01700000000'})
        patients.create_record({'name': 'Karim Mia', 'mobile': '01800000000'})

        self.assertEqual([p['name'] for p in patients.list_records(search='0180')], ['Karim Mia'])
        self.assertEqual(len(patients.list_records(search='P-100')), 2)

    def test_bills_are_not_a_registry_collection(self):
        with self.assertRaises(UnknownEntityTypeError):
            RegistryService(self.workspace, 'bills')

    def test_dates_are_stored_as_iso_strings(self):
        from datetime import date
        self.assertEqual(to_record({'follow_up_date': date(2024, 6, 1)}), {'follow_up_date': '2024-06-01'})


class RegistryAPITest(IsolatedWorkspaceMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.user = get_user_model().objects.create_user(username='clerk', password='secret-pass-1')
        self.api = APIClient()
        self.api.force_authenticate(self.user)

    def test_requires_authentication(self):
        self.api.force_authenticate(None)
        response = self.api.get('/api/registry/patients/')
        self.assertIn(response.status_code, (401, 403))

    def test_patient_lifecycle(self):
        response = self.api.post(
            '/api/registry/patients/',
            {'name': 'Rahim Uddin', 'age': 42, 'sex': 'Male', 'mobile': '01700000000'},
            format='json',
        )
        self.assertEqual(response.status_code, 201)
        patient_id = response.data['data']['id']
        self.assertEqual(patient_id, 'P-1001')

        response = self.api.patch(f'/api/registry/patients/{patient_id}/', {'age': 43}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['age'], 43)
        self.assertEqual(response.data['data']['sex'], 'Male')

        response = self.api.delete(f'/api/registry/patients/{patient_id}/')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'confirmation_required')

        response = self.api.delete(f'/api/registry/patients/{patient_id}/?confirm=true')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['entity_type'], 'patients')

        response = self.api.get(f'/api/registry/patients/{patient_id}/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(len(self.workspace.trash.all()), 1)

    def test_validation_errors(self):
        response = self.api.post('/api/registry/services/', {'name': 'CBC', 'price': -5}, format='json')
        self.assertEqual(response.status_code, 400)

    def test_professional_commission_policy(self):
        response = self.api.post(
            '/api/registry/professionals/',
            {'name': 'Dr. Nadia Islam', 'category': 'Out', 'out_type': 'Doctor', 'commission_rate': '12.5'},
            format='json',
        )

        self.assertEqual(response.status_code, 201)
        stored = self.workspace.professionals.get(response.data['data']['id'])
        self.assertEqual(stored['commission_rate'], Decimal('12.5'))
        self.assertTrue(stored['commission_enabled'])

    def test_expense_recorded_by_operator(self):
        response = self.api.post(
            '/api/registry/expenses/',
            {'description': 'Printer paper', 'amount': '350.00', 'category': 'Office'},
            format='json',
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['data']['recorded_by'], 'clerk')
        self.assertTrue(response.data['data']['date'])

    def test_duplicate_username_is_409(self):
        self.api.post('/api/registry/users/', {'name': 'Front Desk', 'username': 'desk'}, format='json')

        response = self.api.post('/api/registry/users/', {'name': 'Other', 'username': 'desk'}, format='json')

        self.assertEqual(response.status_code, 409)


class SeedRegistryCommandTest(IsolatedWorkspaceMixin, TestCase):

    def test_seeds_empty_collections_only(self):
        self.workspace.repo('rooms').put({'id': 'RM-X', 'number': '999'})

        call_command('seed_registry', stdout=StringIO())
        call_command('seed_registry', stdout=StringIO())

        self.assertEqual(len(self.workspace.professionals), 4)
        self.assertEqual(len(self.workspace.services), 5)
        self.assertEqual(self.workspace.repo('rooms').ids(), ['RM-X'])
        self.assertNotIn('password', self.workspace.repo('users').get('U1'))

    def test_admin_account(self):
        call_command('seed_registry', admin_password='change-me-now', stdout=StringIO())

        admin = get_user_model().objects.get(username='admin')
        self.assertTrue(admin.check_password('change-me-now'))
        self.assertTrue(admin.groups.filter(name='Administrator').exists())
