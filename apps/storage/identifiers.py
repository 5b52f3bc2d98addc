import uuid


def make_id(prefix: str) -> str:
    """Random identifier for payments, trash items, commissions and the like"""
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def next_sequential_id(existing_ids, prefix: str, floor: int) -> str:
    """
    Readable sequence such as P-1001 or PRO-101.

    Scans ids of the form ``<prefix>-<n>`` and returns one past the highest
    number, never going below ``floor + 1``.
    """
    highest = floor
    marker = f"{prefix}-"
    for record_id in existing_ids:
        record_id = str(record_id)
        if not record_id.startswith(marker):
            continue
        tail = record_id[len(marker):]
        if tail.isdecimal():
            highest = max(highest, int(tail))
    return f"{prefix}-{highest + 1}"
