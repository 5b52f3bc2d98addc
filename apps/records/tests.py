"""
Tests for the remote keyed-record endpoint.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from .models import StoredRecord


class RecordStoreAPITest(TestCase):

    def setUp(self):
        self.user = get_user_model().objects.create_user(username='sync', password='secret-pass-1')
        self.api = APIClient()
        self.api.force_authenticate(self.user)

    def _bill(self, bill_id, date, due, patient='P-1001', referrer=''):
        return {
            'id': bill_id,
            'date': date,
            'total_amount': 800,
            'paid_amount': 800 - due,
            'due_amount': due,
            'patient_id': patient,
            'referring_professional_id': referrer,
            'consulting_professional_id': '',
            'items': [],
        }

    def test_upsert_creates_then_replaces(self):
        response = self.api.post('/api/records/patients/', {'id': 'P-1001', 'name': 'Rahim'}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data, {'status': 'success', 'id': 'P-1001'})

        self.api.post('/api/records/patients/', {'id': 'P-1001', 'name': 'Karim'}, format='json')

        self.assertEqual(StoredRecord.objects.filter(entity_type='patients').count(), 1)
        response = self.api.get('/api/records/patients/P-1001/')
        self.assertEqual(response.data['name'], 'Karim')

    def test_upsert_without_id_assigns_one(self):
        response = self.api.post('/api/records/expenses/', {'amount': 50}, format='json')

        record_id = response.data['id']
        self.assertTrue(record_id)
        self.assertEqual(self.api.get(f'/api/records/expenses/{record_id}/').data['id'], record_id)

    def test_missing_record_is_empty(self):
        response = self.api.get('/api/records/patients/P-9999/')
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.data)

    def test_delete(self):
        self.api.post('/api/records/patients/', {'id': 'P-1001'}, format='json')

        response = self.api.delete('/api/records/patients/P-1001/')

        self.assertEqual(response.data, {'status': 'deleted'})
        self.assertEqual(self.api.get('/api/records/patients/').data, [])

    def test_unknown_collection(self):
        response = self.api.get('/api/records/invoices/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data, {'error': 'Invalid Route'})

    def test_bill_lookup_columns_are_populated(self):
        self.api.post('/api/records/bills/', self._bill('INV-1', '2024-05-03T10:00:00+06:00', 150), format='json')

        stored = StoredRecord.objects.get(entity_type='bills', record_id='INV-1')
        self.assertEqual(str(stored.date), '2024-05-03')
        self.assertEqual(stored.due_amount, Decimal('150'))
        self.assertEqual(stored.patient_reference, 'P-1001')

    def test_bill_with_impossible_date_is_stored_without_date_column(self):
        response = self.api.post('/api/records/bills/', self._bill('INV-1', '2024-13-45', 0), format='json')

        self.assertEqual(response.status_code, 200)
        stored = StoredRecord.objects.get(entity_type='bills', record_id='INV-1')
        self.assertIsNone(stored.date)
        self.assertEqual(stored.payload['date'], '2024-13-45')

    def test_bill_filters(self):
        self.api.post('/api/records/bills/', self._bill('INV-1', '2024-05-01', 0), format='json')
        self.api.post('/api/records/bills/', self._bill('INV-2', '2024-05-10', 200, referrer='PRO-101'), format='json')
        self.api.post('/api/records/bills/', self._bill('INV-3', '2024-06-01', 50, patient='P-1002'), format='json')

        def ids(query):
            return [b['id'] for b in self.api.get(f'/api/records/bills/?{query}').data]

        self.assertEqual(ids('date_from=2024-05-05&date_to=2024-05-31'), ['INV-2'])
        self.assertEqual(ids('min_due=100'), ['INV-2'])
        self.assertEqual(ids('patient_reference=P-1002'), ['INV-3'])
        self.assertEqual(ids('referring_professional_id=PRO-101'), ['INV-2'])

    def test_requires_authentication(self):
        response = APIClient().get('/api/records/bills/')
        self.assertIn(response.status_code, (401, 403))
