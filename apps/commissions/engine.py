"""
Commission Engine

Derives the referral fee of a bill from the referring professional's fee
policy. Commissions are derived facts: every evaluation replaces whatever
rows the bill had before, so a bill carries at most one commission.

Precedence: line-level rates win. Only when no line carries a rate does
the professional's flat rate apply, on the net amount (total - discount).
"""

import logging
from decimal import Decimal

from apps.storage.identifiers import make_id

logger = logging.getLogger(__name__)


ITEM_BASED = 'Item-Based'
FLAT_RATE = 'Flat-Rate'
REFERRAL = 'Referral'

CENT = Decimal('0.01')
HUNDRED = Decimal('100')


def _decimal(value) -> Decimal:
    if value in (None, ''):
        return Decimal('0')
    return value if isinstance(value, Decimal) else Decimal(str(value))


def compute_commission(bill: dict, professional: dict):
    """
    Commission amount and basis for one bill.

    Returns:
        (amount, basis) with amount rounded to cents; amount is zero when
        nothing is owed
    """
    item_basis = sum(
        (_decimal(item.get('line_total')) * _decimal(item.get('commission_rate')) / HUNDRED
         for item in bill.get('items', [])
         if _decimal(item.get('commission_rate')) != 0),
        Decimal('0'),
    )
    if item_basis > 0:
        return item_basis.quantize(CENT), ITEM_BASED

    flat_rate = _decimal(professional.get('commission_rate'))
    if flat_rate > 0:
        net = _decimal(bill.get('total_amount')) - _decimal(bill.get('discount'))
        return (net * flat_rate / HUNDRED).quantize(CENT), FLAT_RATE

    return Decimal('0.00'), None


class CommissionEngine:

    def __init__(self, commissions, professionals):
        """
        Args:
            commissions: CollectionRepository of commission rows
            professionals: CollectionRepository of professionals
        """
        self.commissions = commissions
        self.professionals = professionals

    def for_bill(self, bill_id: str) -> list:
        return self.commissions.filter(lambda c: c.get('bill_id') == bill_id)

    def clear(self, bill_id: str) -> list:
        """Drop every commission row of a bill"""
        stale = [c['id'] for c in self.for_bill(bill_id)]
        return self.commissions.remove_many(stale)

    def evaluate(self, bill: dict):
        """
        Recompute the commission of ``bill``.

        Returns:
            The new commission record, or None when no fee is owed
        """
        self.clear(bill['id'])

        professional_id = bill.get('referring_professional_id')
        if not professional_id:
            return None

        professional = self.professionals.get(professional_id)
        if professional is None or not professional.get('commission_enabled'):
            return None

        amount, basis = compute_commission(bill, professional)
        if amount <= 0:
            return None

        commission = {
            'id': make_id('COM'),
            'bill_id': bill['id'],
            'professional_id': professional_id,
            'amount': amount,
            'date': bill.get('date'),
            'basis': basis,
            'type': REFERRAL,
        }
        self.commissions.put(commission)
        logger.info(f"Commission {amount} ({basis}) for {professional_id} on bill {bill['id']}")
        return commission

    def recompute_all(self, bills) -> int:
        """
        Re-evaluate every bill; rows of bills that are no longer live are
        dropped. Returns the number of commissions produced.
        """
        bills = list(bills)
        live_ids = {bill['id'] for bill in bills}
        self.commissions.remove_many(
            [c['id'] for c in self.commissions.all() if c.get('bill_id') not in live_ids]
        )

        produced = 0
        for bill in bills:
            if self.evaluate(bill) is not None:
                produced += 1
        return produced
