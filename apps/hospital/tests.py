from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from common.testing import IsolatedWorkspaceMixin
from .services import get_hospital_config, get_invoice_number_config


DEFAULTS = {
    'name': 'MedCore Clinic',
    'address': '',
    'currency_symbol': 'Tk',
    'invoice_id_prefix': 'INV',
    'invoice_id_date_format': 'YYYYMM',
    'invoice_id_padding': 4,
    'invoice_id_separator': '-',
}


@override_settings(HOSPITAL_DEFAULTS=DEFAULTS)
class HospitalConfigTest(IsolatedWorkspaceMixin, TestCase):

    def setUp(self):
        super().setUp()
        User = get_user_model()
        self.clerk = User.objects.create_user(username='clerk', password='secret-pass-1')
        self.admin = User.objects.create_user(username='boss', password='secret-pass-1')
        self.admin.groups.add(Group.objects.create(name='Administrator'))
        self.api = APIClient()

    def test_defaults_with_preview(self):
        self.api.force_authenticate(self.clerk)

        response = self.api.get('/api/hospital/config/')

        self.assertEqual(response.status_code, 200)
        data = response.data['data']
        self.assertEqual(data['name'], 'MedCore Clinic')
        self.assertRegex(data['invoice_id_preview'], r'^INV-\d{6}-0001$')

    def test_update_requires_administrator(self):
        self.api.force_authenticate(self.clerk)

        response = self.api.patch('/api/hospital/config/', {'name': 'Elsewhere'}, format='json')

        self.assertEqual(response.status_code, 403)

    def test_patch_merges_over_defaults(self):
        self.api.force_authenticate(self.admin)

        response = self.api.patch(
            '/api/hospital/config/',
            {'invoice_id_prefix': ' rx ', 'invoice_id_date_format': 'none', 'invoice_id_padding': 5},
            format='json',
        )

        self.assertEqual(response.status_code, 200)
        config = get_hospital_config(self.workspace)
        self.assertEqual(config['name'], 'MedCore Clinic')
        self.assertEqual(config['invoice_id_prefix'], 'RX')

        numbering = get_invoice_number_config(self.workspace)
        self.assertEqual((numbering.prefix, numbering.date_format, numbering.padding), ('RX', 'none', 5))

        preview = self.api.get('/api/hospital/config/').data['data']['invoice_id_preview']
        self.assertEqual(preview, 'RX-00001')

    def test_put_requires_name(self):
        self.api.force_authenticate(self.admin)

        response = self.api.put('/api/hospital/config/', {'address': 'Dhaka'}, format='json')

        self.assertEqual(response.status_code, 400)

    def test_unknown_date_format_rejected(self):
        self.api.force_authenticate(self.admin)

        response = self.api.patch('/api/hospital/config/', {'invoice_id_date_format': 'MMYYYY'}, format='json')

        self.assertEqual(response.status_code, 400)
