from __future__ import annotations

from typing import Dict, Optional, Sequence

from .models import ExtractedRow, IntegrityBlock, Number, WarningLog

COMPUTED_LABEL = "computed from line items"


def sum_line_items(rows: Dict[str, ExtractedRow], keys: Sequence[str]) -> Optional[Number]:
    """Sum of the given keys' values, or None if any of them is missing."""
    if not keys:
        return None
    values = [rows[k].value if k in rows else None for k in keys]
    if any(v is None for v in values):
        return None
    return sum(values)


def resolve_total(
    document_total: ExtractedRow,
    rows: Dict[str, ExtractedRow],
    sum_keys: Sequence[str],
    warnings: WarningLog,
) -> ExtractedRow:
    """The grand-total row from the document if it has a value, else the line-item sum."""
    if document_total.found and document_total.value is not None:
        return document_total
    computed = sum_line_items(rows, sum_keys)
    if computed is None:
        return document_total
    warnings.add(f"{document_total.key}: total row missing, using sum of {', '.join(sum_keys)}")
    return ExtractedRow(key=document_total.key, label=COMPUTED_LABEL, value=computed)


def reconcile(
    supplying_total: Optional[Number],
    absorbing_total: Optional[Number],
    balance: Optional[Number],
    tolerance: Number = 10,
) -> IntegrityBlock:
    """
    computed = supplying - absorbing; delta = |computed - balance|; ok = delta <= tolerance.
    Any missing input leaves the block unverified (ok=False, delta None).
    """
    block = IntegrityBlock(
        supplying_total=supplying_total,
        absorbing_total=absorbing_total,
        balance=balance,
        tolerance=tolerance,
    )
    if supplying_total is None or absorbing_total is None:
        return block
    block.computed = supplying_total - absorbing_total
    if balance is None:
        return block
    block.delta = abs(block.computed - balance)
    block.ok = block.delta <= tolerance
    return block
