"""
Export/Import bundle.

A bundle is one JSON document holding snapshots of the main collections
plus the hospital configuration, tagged with how it was produced:

    {
        "patients": [...], "bills": [...], "services": [...],
        "users": [...], "commissions": [...], "expenses": [...],
        "config": {...},
        "export_info": {"timestamp": ..., "mode": "full", "range": "all"}
    }

Import is a set-union per collection keyed by record id: records whose id
already exists locally are skipped, never overwritten. The configuration
in a bundle is never merged.
"""

import json
import logging
from datetime import date

from django.utils import timezone

from apps.storage.cache_store import dumps, loads
from apps.hospital.services import get_hospital_config
from .exceptions import ImportFormatError, InvalidExportRangeError

logger = logging.getLogger(__name__)


BUNDLE_COLLECTIONS = ('patients', 'bills', 'services', 'users', 'commissions', 'expenses')
REQUIRED_COLLECTIONS = ('bills', 'patients')

MODE_FULL = 'full'
MODE_DAILY = 'daily'
MODE_RANGE = 'range'
EXPORT_MODES = [MODE_FULL, MODE_DAILY, MODE_RANGE]

# Field holding the day each collection is filtered on in daily/range mode
DATE_FIELDS = {
    'bills': 'date',
    'commissions': 'date',
    'expenses': 'date',
    'patients': 'reg_date',
}


def _day(value) -> str:
    return str(value or '')[:10]


def export_window(mode, day=None, start=None, end=None):
    """
    Resolve the (start, end, label) date window of an export.

    Raises:
        InvalidExportRangeError: unknown mode or incomplete range
    """
    if mode == MODE_FULL:
        return None, None, 'all'
    if mode == MODE_DAILY:
        day = str(day or timezone.localdate())
        return day, day, day
    if mode == MODE_RANGE:
        if not start or not end:
            raise InvalidExportRangeError("Range export needs both start and end dates")
        start, end = str(start), str(end)
        if start > end:
            raise InvalidExportRangeError("Range start is after its end")
        return start, end, f"{start} to {end}"
    raise InvalidExportRangeError(f"Unknown export mode: {mode}")


def build_export(workspace, mode=MODE_FULL, day=None, start=None, end=None) -> dict:
    start, end, label = export_window(mode, day=day, start=start, end=end)

    bundle = {}
    for entity_type in BUNDLE_COLLECTIONS:
        records = workspace.repo(entity_type).all()
        field = DATE_FIELDS.get(entity_type)
        if start and field:
            records = [r for r in records if start <= _day(r.get(field)) <= end]
        bundle[entity_type] = records

    bundle['config'] = get_hospital_config(workspace)
    bundle['export_info'] = {
        'timestamp': timezone.now().isoformat(),
        'mode': mode,
        'range': label,
    }
    logger.info(f"Exported {mode} bundle ({label}): " + ', '.join(
        f"{len(bundle[c])} {c}" for c in BUNDLE_COLLECTIONS
    ))
    return bundle


def export_filename(mode: str, today: date = None) -> str:
    today = today or timezone.localdate()
    return f"medcore_{mode}_backup_{today.isoformat()}.json"


def render_bundle(bundle: dict) -> str:
    return dumps(bundle)


def load_bundle(raw) -> dict:
    """
    Parse an uploaded backup file; amounts come back as Decimal.

    Raises:
        ImportFormatError: not valid JSON
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError:
            raise ImportFormatError("Backup file is not UTF-8 text")
    try:
        return loads(raw)
    except json.JSONDecodeError as e:
        raise ImportFormatError(f"Backup file is not valid JSON: {e.msg}")


def validate_bundle(bundle) -> None:
    if not isinstance(bundle, dict):
        raise ImportFormatError("File format mismatch: expected a JSON object")

    missing = [c for c in REQUIRED_COLLECTIONS if not isinstance(bundle.get(c), list)]
    if missing:
        raise ImportFormatError(f"File format mismatch: missing {', '.join(missing)}")

    for entity_type in BUNDLE_COLLECTIONS:
        records = bundle.get(entity_type)
        if records is None:
            continue
        if not isinstance(records, list):
            raise ImportFormatError(f"File format mismatch: {entity_type} is not a list")
        for record in records:
            if not isinstance(record, dict) or not record.get('id'):
                raise ImportFormatError(f"File format mismatch: {entity_type} holds a record without an id")


def import_bundle(workspace, bundle) -> dict:
    """
    Merge a bundle into the local collections.

    The whole bundle is validated before anything is written, so a bad file
    leaves every collection untouched.

    Returns:
        Number of records added per collection
    """
    validate_bundle(bundle)

    added = {}
    for entity_type in BUNDLE_COLLECTIONS:
        records = bundle.get(entity_type) or []
        repo = workspace.repo(entity_type)

        seen = set(repo.ids())
        new_records = []
        for record in records:
            if record['id'] in seen:
                continue
            seen.add(record['id'])
            if entity_type == 'users':
                record = {k: v for k, v in record.items() if k != 'password'}
            new_records.append(record)

        repo.put_many(new_records)
        added[entity_type] = len(new_records)

    logger.info("Imported bundle: " + ', '.join(f"{n} {c}" for c, n in added.items()))
    return added


def normalize_payload(data) -> dict:
    """Re-read an already parsed request body so amounts become Decimal"""
    return loads(dumps(data))
