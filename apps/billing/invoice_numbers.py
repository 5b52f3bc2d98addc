"""
Invoice identifier generation.

Identifiers look like ``INV-202405-0001``: an optional prefix, an optional
date part and a zero padded sequence, joined by a separator. The sequence
is one past the highest trailing number of any existing bill id, so it
keeps increasing across months and never reuses a number.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from django.utils import timezone


DATE_FORMAT_NONE = 'none'

DATE_FORMAT_CHOICES = [
    (DATE_FORMAT_NONE, 'No date part'),
    ('YYYYMM', 'Year and month (202405)'),
    ('YYYYMMDD', 'Full date (20240520)'),
    ('YYMM', 'Short year and month (2405)'),
    ('YYMMDD', 'Short full date (240520)'),
]

_DATE_PATTERNS = {
    'YYYYMM': '%Y%m',
    'YYYYMMDD': '%Y%m%d',
    'YYMM': '%y%m',
    'YYMMDD': '%y%m%d',
}


@dataclass(frozen=True)
class InvoiceNumberConfig:
    prefix: str = 'INV'
    date_format: str = 'YYYYMM'
    padding: int = 4
    separator: str = '-'

    @classmethod
    def from_hospital_config(cls, config: dict) -> 'InvoiceNumberConfig':
        return cls(
            prefix=config.get('invoice_id_prefix') or '',
            date_format=config.get('invoice_id_date_format') or DATE_FORMAT_NONE,
            padding=int(config.get('invoice_id_padding') or 4),
            # An empty separator falls back to a dash
            separator=config.get('invoice_id_separator') or '-',
        )


def format_date_part(date_format: str, now: datetime) -> str:
    pattern = _DATE_PATTERNS.get(date_format)
    return now.strftime(pattern) if pattern else ''


def highest_sequence(existing_ids: Iterable[str], separator: str) -> int:
    highest = 0
    for bill_id in existing_ids:
        tail = str(bill_id).split(separator)[-1]
        if tail.isdecimal():
            highest = max(highest, int(tail))
    return highest


def generate_invoice_id(existing_ids: Iterable[str], config: InvoiceNumberConfig,
                        now: Optional[datetime] = None) -> str:
    """
    Next invoice identifier for the given set of bill ids.

    Args:
        existing_ids: ids of every bill currently known
        config: numbering configuration
        now: reference time for the date part; defaults to local now

    Returns:
        e.g. ``INV-202405-0001``
    """
    if now is None:
        now = timezone.localtime()

    sequence = str(highest_sequence(existing_ids, config.separator) + 1).zfill(config.padding)
    parts = [config.prefix, format_date_part(config.date_format, now), sequence]
    return config.separator.join(part for part in parts if part)
