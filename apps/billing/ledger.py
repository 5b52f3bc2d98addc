"""
Bill Ledger

Owns bill creation, editing and the money invariants:

    due_amount = max(0, total_amount - discount - paid_amount)
    status     = paid     if due_amount <= 0
                 partial  if paid_amount > 0
                 due      otherwise

Status is never taken from input; it is always derived from the amounts.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.utils import timezone

from common.exceptions import ClinicError
from apps.storage.identifiers import make_id
from .exceptions import (
    EmptyBasketError,
    DuplicateInvoiceError,
    BillNotFoundError,
    InvalidDiscountError,
    InvalidPaymentError,
    MissingIdentificationError,
)
from .invoice_numbers import generate_invoice_id

logger = logging.getLogger(__name__)


STATUS_PAID = 'paid'
STATUS_PARTIAL = 'partial'
STATUS_DUE = 'due'

INVOICE_TYPES = ['General', 'OPD', 'Pathology', 'Pharmacy', 'Emergency', 'Surgery']

ZERO = Decimal('0')
TOLERANCE = Decimal('0.01')

NOTE_INITIAL_PAYMENT = 'Initial Payment'
NOTE_INITIAL_SETTLEMENT = 'Initial Settlement'
NOTE_DUE_COLLECTION = 'Due Collection'


def to_decimal(value, field='amount') -> Decimal:
    if value in (None, ''):
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise InvalidPaymentError(f"{field} must be a number, got {value!r}")


def compute_due(total_amount, discount, paid_amount) -> Decimal:
    return max(ZERO, to_decimal(total_amount) - to_decimal(discount) - to_decimal(paid_amount))


def derive_status(paid_amount, due_amount) -> str:
    if to_decimal(due_amount) <= 0:
        return STATUS_PAID
    if to_decimal(paid_amount) > 0:
        return STATUS_PARTIAL
    return STATUS_DUE


def refresh_amounts(bill: dict) -> dict:
    """Recompute due_amount and status in place from the other amounts"""
    bill['due_amount'] = compute_due(bill['total_amount'], bill['discount'], bill['paid_amount'])
    bill['status'] = derive_status(bill['paid_amount'], bill['due_amount'])
    return bill


class BillLedger:

    def __init__(self, workspace, commission_engine=None, invoice_config=None):
        """
        Args:
            workspace: storage Workspace (bills and services repositories)
            commission_engine: CommissionEngine run after every change, or None
            invoice_config: InvoiceNumberConfig; read from the hospital
                configuration when omitted
        """
        self.workspace = workspace
        self.bills = workspace.bills
        self.services = workspace.services
        self.commission_engine = commission_engine
        self._invoice_config = invoice_config

    @property
    def invoice_config(self):
        if self._invoice_config is None:
            from apps.hospital.services import get_invoice_number_config
            return get_invoice_number_config(self.workspace)
        return self._invoice_config

    # ==================== Queries ====================

    def get_bill(self, bill_id: str) -> dict:
        bill = self.bills.get(bill_id)
        if bill is None:
            raise BillNotFoundError(f"Bill {bill_id} not found")
        return bill

    def list_bills(self, status=None, date_from=None, date_to=None, search=None) -> list:
        """Bills newest first, optionally filtered"""
        search = (search or '').strip().lower()

        def matches(bill):
            if status and bill.get('status') != status:
                return False
            day = str(bill.get('date') or '')[:10]
            if date_from and day < str(date_from):
                return False
            if date_to and day > str(date_to):
                return False
            if search:
                walk_in = bill.get('walk_in') or {}
                haystack = ' '.join(str(v or '') for v in (
                    bill.get('id'), bill.get('patient_id'), walk_in.get('name'), walk_in.get('mobile'),
                )).lower()
                if search not in haystack:
                    return False
            return True

        return sorted(self.bills.filter(matches), key=lambda b: str(b.get('date') or ''), reverse=True)

    def next_invoice_id(self, now=None) -> str:
        return generate_invoice_id(self.bills.ids(), self.invoice_config, now=now)

    # ==================== Mutations ====================

    def _build_items(self, raw_items) -> list:
        items = []
        for raw in raw_items or []:
            service_id = raw.get('service_id')
            service = self.services.get(service_id) if service_id else None

            quantity = int(raw.get('quantity') or 1)
            if quantity < 1:
                raise ClinicError("Item quantity must be at least 1", code="invalid_item")
            unit_price = raw.get('unit_price')
            if unit_price in (None, '') and service:
                unit_price = service.get('price')
            unit_price = to_decimal(unit_price, 'unit_price')

            rate = raw.get('commission_rate')
            if rate in (None, ''):
                # Lines inherit the service's rate unless one is given
                rate = service.get('commission_rate') if service else ZERO

            items.append({
                'id': raw.get('id') or make_id('BI'),
                'service_id': service_id,
                'name': raw.get('name') or (service or {}).get('name', ''),
                'quantity': quantity,
                'unit_price': unit_price,
                'line_total': unit_price * quantity,
                'commission_rate': to_decimal(rate, 'commission_rate'),
            })

        if not items:
            raise EmptyBasketError("A bill needs at least one service line")
        return items

    @staticmethod
    def _identification(data: dict) -> dict:
        patient_id = data.get('patient_id') or None
        walk_in = data.get('walk_in') or None
        if patient_id or walk_in is None:
            walk_in = None
        else:
            walk_in = dict(walk_in)
        return {'patient_id': patient_id, 'walk_in': walk_in}

    def _evaluate_commission(self, bill: dict):
        if self.commission_engine is not None:
            self.commission_engine.evaluate(bill)

    def create_bill(self, data: dict, author=None, bill_id=None, now=None) -> dict:
        """
        Finalize a new bill.

        Args:
            data: invoice_type, patient_id or walk_in, professionals, items,
                discount, paid_amount (advance) and payment_method
            author: dict with ``username`` and ``name`` of the operator
            bill_id: explicit identifier; generated when omitted
            now: creation time; defaults to now

        Raises:
            EmptyBasketError: no line items
            DuplicateInvoiceError: the identifier is already used
        """
        items = self._build_items(data.get('items'))
        now = timezone.localtime(now or timezone.now())

        bill_id = bill_id or self.next_invoice_id(now=now)
        if self.bills.exists(bill_id):
            logger.error(f"Invoice id {bill_id} already exists; numbering settings may be inconsistent")
            raise DuplicateInvoiceError(
                f"Invoice id {bill_id} already exists. Please verify the invoice numbering settings."
            )

        total = sum((item['line_total'] for item in items), ZERO)
        discount = to_decimal(data.get('discount'), 'discount')
        advance = to_decimal(data.get('paid_amount'), 'paid_amount')
        if discount < 0:
            raise InvalidDiscountError("Discount cannot be negative")
        if advance < 0:
            raise InvalidPaymentError("Advance payment cannot be negative")

        payment_method = data.get('payment_method') or 'Cash'
        payments = []
        if advance > 0:
            payments.append({
                'id': make_id('PAY'),
                'timestamp': now.isoformat(),
                'amount': advance,
                'waiver': ZERO,
                'method': payment_method,
                'note': NOTE_INITIAL_PAYMENT,
            })

        author = author or {}
        bill = {
            'id': bill_id,
            'invoice_type': data.get('invoice_type') or 'General',
            **self._identification(data),
            'referring_professional_id': data.get('referring_professional_id') or None,
            'consulting_professional_id': data.get('consulting_professional_id') or None,
            'items': items,
            'total_amount': total,
            'discount': discount,
            'paid_amount': advance,
            'payment_method': payment_method,
            'payments': payments,
            'date': now.isoformat(),
            'updated_at': now.isoformat(),
            'author_username': author.get('username', ''),
            'author_name': author.get('name', ''),
        }
        refresh_amounts(bill)

        self.bills.put(bill)
        logger.info(f"Bill {bill_id} created: total {total}, paid {advance}, status {bill['status']}")
        self._evaluate_commission(bill)
        return bill

    def update_bill(self, bill_id: str, data: dict, now=None) -> dict:
        """
        Edit and resave a bill.

        Items, discount, identification and professionals are replaced;
        id, date, author, paid_amount and the payment history are kept.
        """
        bill = self.get_bill(bill_id)
        items = self._build_items(data.get('items', bill['items']))
        discount = to_decimal(data.get('discount', bill['discount']), 'discount')

        if discount < to_decimal(bill['discount']):
            raise InvalidDiscountError(
                f"Discount cannot go down (currently {bill['discount']})"
            )

        if 'patient_id' in data or 'walk_in' in data:
            identification = self._identification(data)
            if identification['patient_id'] is None and identification['walk_in'] is None:
                raise MissingIdentificationError("A bill needs a patient_id or walk_in details")
            bill.update(identification)
        for field in ('invoice_type', 'referring_professional_id', 'consulting_professional_id', 'payment_method'):
            if field in data:
                bill[field] = data[field] or None
        bill['invoice_type'] = bill.get('invoice_type') or 'General'
        bill['payment_method'] = bill.get('payment_method') or 'Cash'

        bill['items'] = items
        bill['total_amount'] = sum((item['line_total'] for item in items), ZERO)
        bill['discount'] = discount
        bill['updated_at'] = timezone.localtime(now or timezone.now()).isoformat()
        refresh_amounts(bill)

        self.bills.put(bill)
        logger.info(f"Bill {bill_id} updated: total {bill['total_amount']}, status {bill['status']}")
        self._evaluate_commission(bill)
        return bill

    def save_bill(self, bill: dict) -> dict:
        """Persist an already-validated bill after re-deriving its amounts"""
        refresh_amounts(bill)
        self.bills.put(bill)
        self._evaluate_commission(bill)
        return bill
