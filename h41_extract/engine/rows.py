from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from bs4 import Tag

from .grid import physical_cells
from .headers import HeaderLayout
from .labels import exact_match, expand_label_candidates, match_label
from .models import VALUE, WEEK_CHANGE, YEAR_CHANGE, ExtractedRow, Number, WarningLog
from .numbers import parse_number
from .settings import FieldSpec

ROW_ROLES = (VALUE, WEEK_CHANGE, YEAR_CHANGE)


def find_row(body: List[Tag], candidates: Sequence[str]) -> Optional[Tuple[int, List[str]]]:
    """
    First row whose label cell matches a candidate: (index, physical cells).

    An exact normalized label anywhere in the table beats a keyword match, so
    "Repurchase agreements" is not taken from an earlier aggregate row such as
    "Securities, unamortized premiums and discounts, repurchase agreements, and loans".
    Within each pass rows are scanned top-down.
    """
    labelled = [(i, physical_cells(tr)) for i, tr in enumerate(body)]
    labelled = [(i, cells) for i, cells in labelled if cells and cells[0]]
    for matcher in (exact_match, match_label):
        for i, cells in labelled:
            if matcher(cells[0], candidates) is not None:
                return i, cells
    return None


def _read(cells: List[str], col: Optional[int], warnings: WarningLog, context: str) -> Optional[Number]:
    if col is None:
        return None
    if col >= len(cells):
        warnings.add(f"{context}: row has no column {col}")
        return None
    return parse_number(cells[col], warnings, context)


def _read_all(cells: List[str], layout: HeaderLayout, key: str, warnings: WarningLog) -> Tuple[dict, dict]:
    roles = {role: _read(cells, layout.columns.get(role), warnings, f"{key}.{role}") for role in ROW_ROLES}
    named = {name: _read(cells, col, warnings, f"{key}.{name}") for name, col in layout.named.items()}
    return roles, named


def extract_row(
    body: List[Tag],
    spec: FieldSpec,
    layout: HeaderLayout,
    warnings: WarningLog,
    continuation_labels: Sequence[str] = (),
) -> ExtractedRow:
    """
    Read one field's row through the resolved columns. Never raises: an unmatched
    label gives a row with no label, which serializes as "missing".
    """
    candidates = expand_label_candidates(spec.candidates)
    hit = find_row(body, candidates)
    if hit is None:
        warnings.add(f"{spec.key}: row not found (tried {spec.candidates[0]!r})")
        return ExtractedRow(key=spec.key)

    idx, cells = hit
    roles, named = _read_all(cells, layout, spec.key, warnings)

    # label-only rows ("U.S. Treasury securities") carry their figures on the next line
    if continuation_labels and all(v is None for v in list(roles.values()) + list(named.values())):
        nxt = idx + 1
        if nxt < len(body):
            next_cells = physical_cells(body[nxt])
            if next_cells and match_label(next_cells[0], expand_label_candidates(continuation_labels)):
                roles, named = _read_all(next_cells, layout, spec.key, warnings)

    return ExtractedRow(
        key=spec.key,
        label=cells[0],
        value=roles[VALUE],
        week_change=roles[WEEK_CHANGE],
        year_change=roles[YEAR_CHANGE],
        columns=named,
    )
