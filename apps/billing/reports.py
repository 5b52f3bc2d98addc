"""
Financial summaries over the bill and expense collections.
"""

from collections import Counter

from .ledger import ZERO, to_decimal
from .reconciliation import outstanding_due


def _day(value) -> str:
    return str(value or '')[:10]


def _in_range(value, start, end) -> bool:
    day = _day(value)
    return str(start) <= day <= str(end)


def daily_summary(bills, expenses, start, end) -> dict:
    """
    Collections, receivables and cash balance for ``start``..``end``
    (inclusive, YYYY-MM-DD).

    Payments taken in the range on bills created in the range count as
    advance collection; payments taken in the range on older bills count
    as due collection. Receivables are the open dues of bills created in
    the range.
    """
    advance_collection = ZERO
    due_collection = ZERO
    receivables = ZERO
    item_counts = Counter()
    bill_count = 0

    for bill in bills:
        created_in_range = _in_range(bill.get('date'), start, end)
        payments = bill.get('payments') or []
        collected = sum(
            (to_decimal(p.get('amount')) for p in payments if _in_range(p.get('timestamp'), start, end)),
            ZERO,
        )

        if created_in_range:
            bill_count += 1
            advance_collection += collected
            receivables += outstanding_due(bill)
            if not payments:
                # Bills saved without a payment history still count their paid amount
                advance_collection += to_decimal(bill.get('paid_amount'))
            for item in bill.get('items') or []:
                item_counts[item.get('name') or item.get('service_id') or '?'] += int(item.get('quantity') or 0)
        else:
            due_collection += collected

    expenses_in_range = [e for e in expenses if _in_range(e.get('date'), start, end)]
    total_expenses = sum((to_decimal(e.get('amount')) for e in expenses_in_range), ZERO)
    total_collection = advance_collection + due_collection

    return {
        'start': str(start),
        'end': str(end),
        'bill_count': bill_count,
        'advance_collection': advance_collection,
        'due_collection': due_collection,
        'total_collection': total_collection,
        'receivables': receivables,
        'expenses': total_expenses,
        'expense_count': len(expenses_in_range),
        'cash_balance': total_collection - total_expenses,
        'item_counts': [{'name': name, 'quantity': qty} for name, qty in item_counts.most_common()],
    }


def due_list(bills) -> dict:
    """Bills with an open due, newest first, and the total outstanding"""
    open_bills = [b for b in bills if outstanding_due(b) > 0]
    open_bills.sort(key=lambda b: str(b.get('date') or ''), reverse=True)
    return {
        'count': len(open_bills),
        'total_due': sum((outstanding_due(b) for b in open_bills), ZERO),
        'bills': open_bills,
    }
