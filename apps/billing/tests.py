"""
Tests for invoice numbering, the bill ledger, payment reconciliation and
the billing API.
"""

from datetime import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from common.testing import IsolatedWorkspaceMixin, make_test_workspace
from .exceptions import (
    EmptyBasketError,
    DuplicateInvoiceError,
    BillNotFoundError,
    InvalidPaymentError,
    InvalidDiscountError,
    MissingIdentificationError,
)
from .invoice_numbers import InvoiceNumberConfig, generate_invoice_id
from .ledger import compute_due, derive_status
from .reconciliation import apply_payment
from .reports import daily_summary, due_list
from .services import build_ledger


MAY_2024 = timezone.make_aware(datetime(2024, 5, 20, 10, 30))


def check_invariants(test, bill):
    expected_due = max(Decimal('0'), bill['total_amount'] - bill['discount'] - bill['paid_amount'])
    test.assertEqual(bill['due_amount'], expected_due)
    if bill['due_amount'] <= 0:
        test.assertEqual(bill['status'], 'paid')
    elif bill['paid_amount'] == 0:
        test.assertEqual(bill['status'], 'due')
    else:
        test.assertEqual(bill['status'], 'partial')


class InvoiceNumberTest(SimpleTestCase):

    def setUp(self):
        self.config = InvoiceNumberConfig(prefix='INV', date_format='YYYYMM', padding=4, separator='-')

    def test_first_invoice_of_may_2024(self):
        self.assertEqual(generate_invoice_id([], self.config, now=MAY_2024), 'INV-202405-0001')

    def test_sequence_follows_highest_trailing_number(self):
        existing = ['INV-202404-0007', 'INV-202405-0003', 'LEGACY-ABC']
        self.assertEqual(generate_invoice_id(existing, self.config, now=MAY_2024), 'INV-202405-0008')

    def test_superscript_tail_is_ignored(self):
        existing = ['INV-202405-0002', 'INV-202405-²']
        self.assertEqual(generate_invoice_id(existing, self.config, now=MAY_2024), 'INV-202405-0003')

    def test_generation_is_monotonic(self):
        ids = []
        for _ in range(25):
            ids.append(generate_invoice_id(ids, self.config, now=MAY_2024))

        numbers = [int(i.split('-')[-1]) for i in ids]
        self.assertEqual(len(set(ids)), 25)
        self.assertEqual(numbers, sorted(numbers))
        self.assertEqual(numbers, list(range(1, 26)))

    def test_date_formats(self):
        cases = {
            'none': 'INV-0001',
            'YYYYMMDD': 'INV-20240520-0001',
            'YYMM': 'INV-2405-0001',
            'YYMMDD': 'INV-240520-0001',
        }
        for date_format, expected in cases.items():
            config = InvoiceNumberConfig(prefix='INV', date_format=date_format, padding=4, separator='-')
            self.assertEqual(generate_invoice_id([], config, now=MAY_2024), expected)

    def test_empty_prefix_and_custom_separator(self):
        config = InvoiceNumberConfig(prefix='', date_format='YYMM', padding=3, separator='/')
        self.assertEqual(generate_invoice_id(['2405/009'], config, now=MAY_2024), '2405/010')

    def test_from_hospital_config_defaults_separator(self):
        config = InvoiceNumberConfig.from_hospital_config({
            'invoice_id_prefix': 'RX',
            'invoice_id_date_format': 'none',
            'invoice_id_padding': 5,
            'invoice_id_separator': '',
        })
        self.assertEqual(generate_invoice_id([], config, now=MAY_2024), 'RX-00001')


class StatusDerivationTest(SimpleTestCase):

    def test_due_never_negative(self):
        self.assertEqual(compute_due(800, 100, 900), Decimal('0'))

    def test_status_table(self):
        self.assertEqual(derive_status(0, 0), 'paid')
        self.assertEqual(derive_status(100, 0), 'paid')
        self.assertEqual(derive_status(100, 50), 'partial')
        self.assertEqual(derive_status(0, 50), 'due')


class LedgerTestMixin:

    def setUp(self):
        super().setUp()
        self.workspace = make_test_workspace()
        self.ledger = build_ledger(self.workspace, invoice_config=InvoiceNumberConfig())
        self.workspace.services.put_many([
            {'id': 'S1', 'name': 'General Consultation', 'price': Decimal('500'), 'commission_rate': Decimal('0')},
            {'id': 'S2', 'name': 'Follow-up Consultation', 'price': Decimal('300'), 'commission_rate': Decimal('0')},
            {'id': 'S3', 'name': 'CBC', 'price': Decimal('450'), 'commission_rate': Decimal('15')},
        ])
        self.workspace.professionals.put({
            'id': 'PRO-101',
            'name': 'Dr. Sarah Smith',
            'category': 'Hospital',
            'commission_enabled': True,
            'commission_rate': Decimal('10'),
        })

    def make_bill(self, **overrides):
        data = {
            'invoice_type': 'OPD',
            'walk_in': {'name': 'Rahim Uddin', 'age': 42, 'sex': 'Male', 'mobile': '01700000000'},
            'items': [{'service_id': 'S1'}, {'service_id': 'S2'}],
            'discount': Decimal('0'),
            'paid_amount': Decimal('400'),
        }
        data.update(overrides)
        return self.ledger.create_bill(data, author={'username': 'clerk', 'name': 'Front Desk'}, now=MAY_2024)


class BillLedgerTest(LedgerTestMixin, SimpleTestCase):

    def test_create_with_advance(self):
        bill = self.make_bill()

        self.assertEqual(bill['id'], 'INV-202405-0001')
        self.assertEqual(bill['total_amount'], Decimal('800'))
        self.assertEqual(bill['paid_amount'], Decimal('400'))
        self.assertEqual(bill['due_amount'], Decimal('400'))
        self.assertEqual(bill['status'], 'partial')
        self.assertEqual(len(bill['payments']), 1)
        self.assertEqual(bill['payments'][0]['note'], 'Initial Payment')
        self.assertEqual(bill['author_username'], 'clerk')
        self.assertIsNone(bill['patient_id'])
        self.assertEqual(self.workspace.bills.get(bill['id']), bill)

    def test_create_without_payment_is_due(self):
        bill = self.make_bill(paid_amount=0)
        self.assertEqual(bill['status'], 'due')
        self.assertEqual(bill['payments'], [])

    def test_patient_reference_excludes_walk_in(self):
        bill = self.make_bill(patient_id='P-1001')
        self.assertEqual(bill['patient_id'], 'P-1001')
        self.assertIsNone(bill['walk_in'])

    def test_empty_basket_is_rejected_without_writes(self):
        with self.assertRaises(EmptyBasketError):
            self.make_bill(items=[])
        self.assertEqual(len(self.workspace.bills), 0)

    def test_duplicate_invoice_id(self):
        self.make_bill()
        with self.assertRaises(DuplicateInvoiceError):
            self.ledger.create_bill(
                {'walk_in': {'name': 'X'}, 'items': [{'service_id': 'S1'}]},
                bill_id='INV-202405-0001',
            )

    def test_ids_keep_increasing(self):
        first = self.make_bill()
        second = self.make_bill()
        self.assertEqual(first['id'], 'INV-202405-0001')
        self.assertEqual(second['id'], 'INV-202405-0002')

    def test_lines_inherit_service_rate(self):
        bill = self.make_bill(items=[{'service_id': 'S3'}, {'service_id': 'S1', 'commission_rate': Decimal('5')}])
        rates = [item['commission_rate'] for item in bill['items']]
        self.assertEqual(rates, [Decimal('15'), Decimal('5')])

    def test_custom_line_with_quantity(self):
        bill = self.make_bill(items=[{'name': 'Dressing', 'quantity': 3, 'unit_price': Decimal('50')}], paid_amount=0)
        self.assertEqual(bill['items'][0]['line_total'], Decimal('150'))
        self.assertEqual(bill['total_amount'], Decimal('150'))

    def test_update_keeps_payments_and_date(self):
        bill = self.make_bill()

        updated = self.ledger.update_bill(bill['id'], {
            'items': [{'service_id': 'S1'}],
            'discount': Decimal('50'),
        })

        self.assertEqual(updated['total_amount'], Decimal('500'))
        self.assertEqual(updated['paid_amount'], Decimal('400'))
        self.assertEqual(updated['due_amount'], Decimal('50'))
        self.assertEqual(updated['payments'], bill['payments'])
        self.assertEqual(updated['date'], bill['date'])
        check_invariants(self, updated)

    def test_update_rejects_lower_discount(self):
        bill = self.make_bill(discount=Decimal('100'))
        with self.assertRaises(InvalidDiscountError):
            self.ledger.update_bill(bill['id'], {'discount': Decimal('50')})

    def test_update_cannot_clear_identification(self):
        bill = self.make_bill(patient_id='P-1001', walk_in=None)

        with self.assertRaises(MissingIdentificationError):
            self.ledger.update_bill(bill['id'], {'patient_id': None})

        stored = self.workspace.bills.get(bill['id'])
        self.assertEqual(stored['patient_id'], 'P-1001')

    def test_update_switches_to_walk_in(self):
        bill = self.make_bill(patient_id='P-1001', walk_in=None)

        updated = self.ledger.update_bill(bill['id'], {'patient_id': None, 'walk_in': {'name': 'Karim'}})

        self.assertIsNone(updated['patient_id'])
        self.assertEqual(updated['walk_in'], {'name': 'Karim'})

    def test_update_unknown_bill(self):
        with self.assertRaises(BillNotFoundError):
            self.ledger.update_bill('INV-404', {'discount': 0})

    def test_list_filters(self):
        self.make_bill()
        self.make_bill(paid_amount=0, walk_in={'name': 'Karim'})

        self.assertEqual(len(self.ledger.list_bills()), 2)
        self.assertEqual([b['status'] for b in self.ledger.list_bills(status='due')], ['due'])
        self.assertEqual(len(self.ledger.list_bills(search='karim')), 1)
        self.assertEqual(self.ledger.list_bills(date_from='2024-06-01'), [])


class PaymentReconciliationTest(LedgerTestMixin, SimpleTestCase):

    def test_due_collection_with_waiver_settles_bill(self):
        bill = self.make_bill()

        settled = apply_payment(self.ledger, bill['id'], amount=Decimal('300'), waiver=Decimal('100'))

        self.assertEqual(settled['paid_amount'], Decimal('700'))
        self.assertEqual(settled['discount'], Decimal('100'))
        self.assertEqual(settled['due_amount'], Decimal('0'))
        self.assertEqual(settled['status'], 'paid')
        self.assertEqual(len(settled['payments']), 2)
        self.assertEqual(settled['payments'][-1]['amount'], Decimal('300'))
        self.assertEqual(settled['payments'][-1]['note'], 'Due Collection')
        check_invariants(self, settled)

    def test_first_payment_on_unpaid_bill_is_initial_settlement(self):
        bill = self.make_bill(paid_amount=0)
        updated = apply_payment(self.ledger, bill['id'], amount=Decimal('200'))
        self.assertEqual(updated['payments'][0]['note'], 'Initial Settlement')
        self.assertEqual(updated['status'], 'partial')

    def test_repeated_identical_payments_are_distinct(self):
        bill = self.make_bill(paid_amount=0)
        apply_payment(self.ledger, bill['id'], amount=Decimal('100'))
        updated = apply_payment(self.ledger, bill['id'], amount=Decimal('100'))

        self.assertEqual(len(updated['payments']), 2)
        self.assertNotEqual(updated['payments'][0]['id'], updated['payments'][1]['id'])
        self.assertEqual(updated['paid_amount'], Decimal('200'))

    def test_overpayment_is_rejected(self):
        bill = self.make_bill()
        with self.assertRaises(InvalidPaymentError):
            apply_payment(self.ledger, bill['id'], amount=Decimal('401'))
        self.assertEqual(self.workspace.bills.get(bill['id'])['paid_amount'], Decimal('400'))

    def test_rounding_tolerance(self):
        bill = self.make_bill()
        updated = apply_payment(self.ledger, bill['id'], amount=Decimal('400.01'))
        self.assertEqual(updated['due_amount'], Decimal('0'))
        self.assertEqual(updated['status'], 'paid')

    def test_negative_and_empty_payments(self):
        bill = self.make_bill()
        with self.assertRaises(InvalidPaymentError):
            apply_payment(self.ledger, bill['id'], amount=Decimal('-5'))
        with self.assertRaises(InvalidPaymentError):
            apply_payment(self.ledger, bill['id'])

    def test_waiver_recomputes_flat_commission(self):
        bill = self.make_bill(referring_professional_id='PRO-101')
        self.assertEqual(self.workspace.commissions.all()[0]['amount'], Decimal('80.00'))

        apply_payment(self.ledger, bill['id'], waiver=Decimal('100'))

        commissions = self.workspace.commissions.all()
        self.assertEqual(len(commissions), 1)
        self.assertEqual(commissions[0]['amount'], Decimal('70.00'))

    def test_invariants_hold_through_lifecycle(self):
        bill = self.make_bill(paid_amount=0, discount=Decimal('20'))
        check_invariants(self, bill)
        for amount, waiver in [(Decimal('100'), 0), (0, Decimal('30')), (Decimal('650'), 0)]:
            bill = apply_payment(self.ledger, bill['id'], amount=amount, waiver=waiver)
            check_invariants(self, bill)
        self.assertEqual(bill['status'], 'paid')


class ReportsTest(LedgerTestMixin, SimpleTestCase):

    def test_daily_summary_splits_advance_and_due_collection(self):
        old = self.make_bill(paid_amount=Decimal('100'))
        old_payment_time = timezone.make_aware(datetime(2024, 5, 21, 9, 0))
        apply_payment(self.ledger, old['id'], amount=Decimal('200'), now=old_payment_time)

        new_data = {
            'walk_in': {'name': 'New'},
            'items': [{'service_id': 'S3'}],
            'paid_amount': Decimal('450'),
        }
        self.ledger.create_bill(new_data, now=old_payment_time)
        expenses = [
            {'id': 'EX-1', 'amount': Decimal('120'), 'date': '2024-05-21'},
            {'id': 'EX-2', 'amount': Decimal('999'), 'date': '2024-05-22'},
        ]

        summary = daily_summary(self.workspace.bills.all(), expenses, '2024-05-21', '2024-05-21')

        self.assertEqual(summary['advance_collection'], Decimal('450'))
        self.assertEqual(summary['due_collection'], Decimal('200'))
        self.assertEqual(summary['total_collection'], Decimal('650'))
        self.assertEqual(summary['receivables'], Decimal('0'))
        self.assertEqual(summary['expenses'], Decimal('120'))
        self.assertEqual(summary['cash_balance'], Decimal('530'))
        self.assertEqual(summary['item_counts'], [{'name': 'CBC', 'quantity': 1}])

    def test_due_list(self):
        self.make_bill()
        self.make_bill(paid_amount=Decimal('800'))

        dues = due_list(self.workspace.bills.all())

        self.assertEqual(dues['count'], 1)
        self.assertEqual(dues['total_due'], Decimal('400'))


class BillAPITest(IsolatedWorkspaceMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.user = get_user_model().objects.create_user(
            username='clerk', password='secret-pass-1', first_name='Front', last_name='Desk'
        )
        self.api = APIClient()
        self.api.force_authenticate(self.user)
        self.workspace.services.put_many([
            {'id': 'S1', 'name': 'General Consultation', 'price': Decimal('500'), 'commission_rate': Decimal('0')},
            {'id': 'S2', 'name': 'Follow-up Consultation', 'price': Decimal('300'), 'commission_rate': Decimal('0')},
        ])

    def create_bill(self, **overrides):
        payload = {
            'invoice_type': 'OPD',
            'walk_in': {'name': 'Rahim Uddin', 'mobile': '01700000000'},
            'items': [{'service_id': 'S1'}, {'service_id': 'S2'}],
            'paid_amount': '400',
        }
        payload.update(overrides)
        return self.api.post('/api/billing/bills/', payload, format='json')

    def test_create_and_retrieve(self):
        response = self.create_bill()

        self.assertEqual(response.status_code, 201)
        bill = response.data['data']
        self.assertEqual(bill['status'], 'partial')
        self.assertEqual(bill['author_name'], 'Front Desk')

        response = self.api.get(f"/api/billing/bills/{bill['id']}/")
        self.assertEqual(response.data['data']['due_amount'], Decimal('400'))

    def test_empty_basket_envelope(self):
        response = self.create_bill(items=[])

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {
            'success': False,
            'error': 'A bill needs at least one service line',
            'code': 'empty_basket',
        })

    def test_patient_and_walk_in_are_exclusive(self):
        response = self.create_bill(patient_id='P-1001')
        self.assertEqual(response.status_code, 400)

    def test_record_payment(self):
        bill_id = self.create_bill().data['data']['id']

        response = self.api.post(
            f'/api/billing/bills/{bill_id}/record_payment/',
            {'amount': '300', 'waiver': '100'},
            format='json',
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['status'], 'paid')

    def test_overpayment_returns_error(self):
        bill_id = self.create_bill().data['data']['id']
        response = self.api.post(f'/api/billing/bills/{bill_id}/record_payment/', {'amount': '999'}, format='json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'invalid_payment')

    def test_unknown_bill(self):
        response = self.api.get('/api/billing/bills/INV-404/')
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['code'], 'bill_not_found')

    def test_update(self):
        bill_id = self.create_bill().data['data']['id']
        response = self.api.put(f'/api/billing/bills/{bill_id}/', {'discount': '100'}, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['due_amount'], Decimal('300'))

    def test_update_clearing_patient_without_walk_in_is_rejected(self):
        bill_id = self.create_bill(walk_in=None, patient_id='P-1001').data['data']['id']

        for payload in ({'patient_id': None}, {'patient_id': ''}):
            response = self.api.put(f'/api/billing/bills/{bill_id}/', payload, format='json')
            self.assertEqual(response.status_code, 400)

        self.assertEqual(self.workspace.bills.get(bill_id)['patient_id'], 'P-1001')

    def test_delete_requires_confirmation_then_trashes(self):
        bill_id = self.create_bill().data['data']['id']

        response = self.api.delete(f'/api/billing/bills/{bill_id}/')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['code'], 'confirmation_required')

        response = self.api.delete(f'/api/billing/bills/{bill_id}/?confirm=true')
        self.assertEqual(response.status_code, 200)
        self.assertFalse(self.workspace.bills.exists(bill_id))
        self.assertEqual(self.workspace.trash.all()[0]['original_id'], bill_id)

    def test_next_id_and_dues(self):
        self.create_bill()

        next_id = self.api.get('/api/billing/bills/next_id/').data['data']['next_id']
        self.assertTrue(next_id.endswith('-0002'))

        dues = self.api.get('/api/billing/bills/dues/').data['data']
        self.assertEqual(dues['count'], 1)

    def test_summary(self):
        self.create_bill()
        response = self.api.get('/api/billing/summary/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['advance_collection'], Decimal('400'))
