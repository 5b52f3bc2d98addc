"""
Commission report: commission rows joined with their professional, bill
and patient, with per-professional totals.
"""

from collections import OrderedDict
from decimal import Decimal

ZERO = Decimal('0')

STATUS_ALL = 'all'
STATUS_PAID = 'paid'
STATUS_DUE = 'due'


def _decimal(value) -> Decimal:
    if value in (None, ''):
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def commission_details(commissions, professionals, bills, patients) -> list:
    professionals = {p['id']: p for p in professionals}
    bills = {b['id']: b for b in bills}
    patients = {p['id']: p for p in patients}

    details = []
    for commission in commissions:
        professional = professionals.get(commission.get('professional_id')) or {}
        bill = bills.get(commission.get('bill_id')) or {}
        patient = patients.get(bill.get('patient_id')) or {}
        walk_in = bill.get('walk_in') or {}

        details.append({
            **commission,
            'professional_name': professional.get('name') or 'Deleted Professional',
            'professional_rate': _decimal(professional.get('commission_rate')),
            'patient_name': walk_in.get('name') or patient.get('name') or 'Walk-in / Unknown',
            'bill_net': _decimal(bill.get('total_amount')) - _decimal(bill.get('discount')),
            'bill_status': bill.get('status') or STATUS_DUE,
            'author': bill.get('author_name') or 'System',
        })
    return details


def commission_report(commissions, professionals, bills, patients,
                      professional_id=None, start=None, end=None, status=STATUS_ALL, search=None) -> dict:
    """
    Filtered commission ledger.

    Args:
        status: ``all``, ``paid`` (bill fully paid) or ``due`` (bill not
            fully paid)
        search: matched against patient name, professional name and bill id
    """
    search = (search or '').strip().lower()

    def keep(row):
        day = str(row.get('date') or '')[:10]
        if start and day < str(start):
            return False
        if end and day > str(end):
            return False
        if professional_id and row.get('professional_id') != professional_id:
            return False
        if status == STATUS_PAID and row['bill_status'] != 'paid':
            return False
        if status == STATUS_DUE and row['bill_status'] == 'paid':
            return False
        if search:
            haystack = f"{row['patient_name']} {row['professional_name']} {row.get('bill_id', '')}".lower()
            if search not in haystack:
                return False
        return True

    rows = [r for r in commission_details(commissions, professionals, bills, patients) if keep(r)]
    rows.sort(key=lambda r: str(r.get('date') or ''), reverse=True)

    by_professional = OrderedDict()
    for row in rows:
        entry = by_professional.setdefault(row['professional_id'], {
            'professional_id': row['professional_id'],
            'professional_name': row['professional_name'],
            'count': 0,
            'total_commission': ZERO,
        })
        entry['count'] += 1
        entry['total_commission'] += _decimal(row['amount'])

    return {
        'rows': rows,
        'by_professional': list(by_professional.values()),
        'total_commission': sum((_decimal(r['amount']) for r in rows), ZERO),
        'total_invoiced': sum((r['bill_net'] for r in rows), ZERO),
    }
