"""
Payment Reconciliation

Applies a collection and/or a waiver against an existing bill. Every call
appends one payment record; identical calls are distinct payments (there
is no dedupe key).
"""

import logging

from django.utils import timezone

from apps.storage.identifiers import make_id
from .exceptions import InvalidPaymentError
from .ledger import (
    ZERO,
    TOLERANCE,
    NOTE_INITIAL_SETTLEMENT,
    NOTE_DUE_COLLECTION,
    to_decimal,
)

logger = logging.getLogger(__name__)


def apply_payment(ledger, bill_id: str, amount=0, waiver=0, method=None, note=None, now=None) -> dict:
    """
    Record a due collection on a bill.

    Args:
        ledger: BillLedger the bill lives in
        bill_id: bill to settle
        amount: cash collected (>= 0)
        waiver: discount granted on the remaining due (>= 0)
        method: payment method; defaults to the bill's
        note: payment note; defaults to "Initial Settlement" for a bill
            without payments, else "Due Collection"
        now: payment time

    Returns:
        The updated bill

    Raises:
        BillNotFoundError: unknown bill
        InvalidPaymentError: negative figures, nothing to apply, or more
            than the current due
    """
    amount = to_decimal(amount)
    waiver = to_decimal(waiver, 'waiver')

    if amount < 0 or waiver < 0:
        raise InvalidPaymentError("Amount and waiver cannot be negative")
    if amount == 0 and waiver == 0:
        raise InvalidPaymentError("Nothing to apply: amount and waiver are both zero")

    bill = ledger.get_bill(bill_id)
    current_due = to_decimal(bill['due_amount'])
    if amount + waiver > current_due + TOLERANCE:
        raise InvalidPaymentError(
            f"Payment of {amount + waiver} exceeds the due amount of {current_due} on bill {bill_id}"
        )

    if note is None:
        note = NOTE_DUE_COLLECTION if bill.get('payments') else NOTE_INITIAL_SETTLEMENT

    now = timezone.localtime(now or timezone.now())
    bill['paid_amount'] = to_decimal(bill['paid_amount']) + amount
    bill['discount'] = to_decimal(bill['discount']) + waiver
    bill['payments'] = list(bill.get('payments') or []) + [{
        'id': make_id('PAY'),
        'timestamp': now.isoformat(),
        'amount': amount,
        'waiver': waiver,
        'method': method or bill.get('payment_method') or 'Cash',
        'note': note,
    }]
    bill['updated_at'] = now.isoformat()

    # The waiver changes the net amount, so the commission is re-evaluated too
    ledger.save_bill(bill)

    logger.info(
        f"Payment on {bill_id}: amount {amount}, waiver {waiver}, "
        f"due now {bill['due_amount']} ({bill['status']})"
    )
    return bill


def outstanding_due(bill: dict):
    return max(ZERO, to_decimal(bill.get('due_amount')))
