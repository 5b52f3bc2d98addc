"""
Tests for the commission engine and report.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.test import SimpleTestCase, TestCase
from rest_framework.test import APIClient

from common.testing import IsolatedWorkspaceMixin, make_test_workspace
from .engine import CommissionEngine, compute_commission, ITEM_BASED, FLAT_RATE
from .reports import commission_report


def bill_with(items, total, discount='0', referrer='PRO-101', bill_id='INV-202405-0001'):
    return {
        'id': bill_id,
        'referring_professional_id': referrer,
        'items': [
            {'line_total': Decimal(line_total), 'commission_rate': Decimal(rate)}
            for line_total, rate in items
        ],
        'total_amount': Decimal(total),
        'discount': Decimal(discount),
        'date': '2024-05-20T10:30:00+06:00',
        'status': 'partial',
    }


class ComputeCommissionTest(SimpleTestCase):

    def setUp(self):
        self.professional = {'id': 'PRO-101', 'commission_enabled': True, 'commission_rate': Decimal('10')}

    def test_flat_rate_fallback(self):
        bill = bill_with([('500', '0'), ('300', '0')], '800')
        self.assertEqual(compute_commission(bill, self.professional), (Decimal('80.00'), FLAT_RATE))

    def test_flat_rate_uses_net_amount(self):
        bill = bill_with([('800', '0')], '800', discount='100')
        self.assertEqual(compute_commission(bill, self.professional)[0], Decimal('70.00'))

    def test_item_rates_take_precedence(self):
        bill = bill_with([('500', '20'), ('300', '0')], '800')

        amount, basis = compute_commission(bill, self.professional)

        # 20% of 500 only; the flat 10% is not added on top
        self.assertEqual(amount, Decimal('100.00'))
        self.assertEqual(basis, ITEM_BASED)

    def test_nothing_owed_without_rates(self):
        professional = {'id': 'PRO-9', 'commission_enabled': True, 'commission_rate': Decimal('0')}
        bill = bill_with([('500', '0')], '500')
        self.assertEqual(compute_commission(bill, professional)[0], Decimal('0'))


class CommissionEngineTest(SimpleTestCase):

    def setUp(self):
        self.workspace = make_test_workspace()
        self.workspace.professionals.put_many([
            {'id': 'PRO-101', 'name': 'Dr. Sarah Smith', 'commission_enabled': True, 'commission_rate': Decimal('10')},
            {'id': 'PRO-102', 'name': 'Dr. James Wilson', 'commission_enabled': False, 'commission_rate': Decimal('20')},
            {'id': 'PRO-103', 'name': 'Metro Pharmacy', 'commission_enabled': True, 'commission_rate': Decimal('5')},
        ])
        self.engine = CommissionEngine(self.workspace.commissions, self.workspace.professionals)

    def test_flat_rate_scenario(self):
        commission = self.engine.evaluate(bill_with([('500', '0'), ('300', '0')], '800'))

        self.assertEqual(commission['amount'], Decimal('80.00'))
        self.assertEqual(commission['basis'], 'Flat-Rate')
        self.assertEqual(commission['professional_id'], 'PRO-101')
        self.assertEqual(commission['date'], '2024-05-20T10:30:00+06:00')
        self.assertEqual(self.workspace.commissions.all(), [commission])

    def test_evaluate_is_idempotent(self):
        bill = bill_with([('500', '0'), ('300', '0')], '800')

        self.engine.evaluate(bill)
        self.engine.evaluate(bill)

        rows = self.workspace.commissions.all()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['amount'], Decimal('80.00'))

    def test_changing_referrer_replaces_row(self):
        bill = bill_with([('800', '0')], '800')
        self.engine.evaluate(bill)

        bill['referring_professional_id'] = 'PRO-103'
        self.engine.evaluate(bill)

        rows = self.workspace.commissions.all()
        self.assertEqual([(r['professional_id'], r['amount']) for r in rows], [('PRO-103', Decimal('40.00'))])

    def test_disabled_policy_or_no_referrer(self):
        self.assertIsNone(self.engine.evaluate(bill_with([('800', '0')], '800', referrer='PRO-102')))
        self.assertIsNone(self.engine.evaluate(bill_with([('800', '0')], '800', referrer=None)))
        self.assertIsNone(self.engine.evaluate(bill_with([('800', '0')], '800', referrer='PRO-404')))
        self.assertEqual(self.workspace.commissions.all(), [])

    def test_recompute_all_drops_orphans(self):
        self.engine.evaluate(bill_with([('800', '0')], '800', bill_id='INV-1'))
        self.engine.evaluate(bill_with([('800', '0')], '800', bill_id='INV-2'))

        produced = self.engine.recompute_all([bill_with([('800', '0')], '800', bill_id='INV-2')])

        self.assertEqual(produced, 1)
        self.assertEqual([r['bill_id'] for r in self.workspace.commissions.all()], ['INV-2'])


class CommissionReportTest(SimpleTestCase):

    def setUp(self):
        self.professionals = [
            {'id': 'PRO-101', 'name': 'Dr. Sarah Smith', 'commission_rate': Decimal('10')},
            {'id': 'PRO-103', 'name': 'Metro Pharmacy', 'commission_rate': Decimal('5')},
        ]
        self.patients = [{'id': 'P-1001', 'name': 'Rahim Uddin'}]
        self.bills = [
            {'id': 'INV-1', 'patient_id': 'P-1001', 'total_amount': Decimal('800'), 'discount': Decimal('0'),
             'status': 'paid', 'author_name': 'Front Desk'},
            {'id': 'INV-2', 'walk_in': {'name': 'Karim'}, 'total_amount': Decimal('500'), 'discount': Decimal('100'),
             'status': 'partial'},
        ]
        self.commissions = [
            {'id': 'COM-1', 'bill_id': 'INV-1', 'professional_id': 'PRO-101', 'amount': Decimal('80'),
             'date': '2024-05-20T10:00:00+06:00', 'basis': 'Flat-Rate'},
            {'id': 'COM-2', 'bill_id': 'INV-2', 'professional_id': 'PRO-103', 'amount': Decimal('20'),
             'date': '2024-05-22T10:00:00+06:00', 'basis': 'Flat-Rate'},
            {'id': 'COM-3', 'bill_id': 'INV-9', 'professional_id': 'PRO-999', 'amount': Decimal('5'),
             'date': '2024-06-01T10:00:00+06:00', 'basis': 'Item-Based'},
        ]

    def report(self, **filters):
        return commission_report(self.commissions, self.professionals, self.bills, self.patients, **filters)

    def test_joins_and_totals(self):
        report = self.report()

        self.assertEqual([r['id'] for r in report['rows']], ['COM-3', 'COM-2', 'COM-1'])
        by_id = {r['id']: r for r in report['rows']}
        self.assertEqual(by_id['COM-1']['patient_name'], 'Rahim Uddin')
        self.assertEqual(by_id['COM-2']['patient_name'], 'Karim')
        self.assertEqual(by_id['COM-2']['bill_net'], Decimal('400'))
        self.assertEqual(by_id['COM-3']['professional_name'], 'Deleted Professional')
        self.assertEqual(report['total_commission'], Decimal('105'))

    def test_filters(self):
        self.assertEqual([r['id'] for r in self.report(status='paid')['rows']], ['COM-1'])
        self.assertEqual([r['id'] for r in self.report(status='due')['rows']], ['COM-3', 'COM-2'])
        self.assertEqual([r['id'] for r in self.report(professional_id='PRO-103')['rows']], ['COM-2'])
        self.assertEqual([r['id'] for r in self.report(start='2024-05-21', end='2024-05-31')['rows']], ['COM-2'])
        self.assertEqual([r['id'] for r in self.report(search='rahim')['rows']], ['COM-1'])

    def test_per_professional_totals(self):
        totals = {t['professional_id']: t['total_commission'] for t in self.report()['by_professional']}
        self.assertEqual(totals, {'PRO-999': Decimal('5'), 'PRO-103': Decimal('20'), 'PRO-101': Decimal('80')})


class CommissionAPITest(IsolatedWorkspaceMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.user = get_user_model().objects.create_user(username='clerk', password='secret-pass-1')
        self.api = APIClient()
        self.api.force_authenticate(self.user)

        self.workspace.professionals.put(
            {'id': 'PRO-101', 'name': 'Dr. Sarah Smith', 'commission_enabled': True, 'commission_rate': Decimal('10')}
        )
        self.workspace.bills.put(bill_with([('800', '0')], '800'))

    def test_recompute_requires_administrator(self):
        response = self.api.post('/api/commissions/recompute/')
        self.assertEqual(response.status_code, 403)

    def test_recompute_then_list(self):
        self.user.groups.add(Group.objects.create(name='Administrator'))

        response = self.api.post('/api/commissions/recompute/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data'], {'commissions': 1})

        response = self.api.get('/api/commissions/?professional_id=PRO-101')
        self.assertEqual(len(response.data['data']), 1)
        self.assertEqual(response.data['data'][0]['amount'], Decimal('80.00'))

        report = self.api.get('/api/commissions/report/').data['data']
        self.assertEqual(report['total_commission'], Decimal('80.00'))
