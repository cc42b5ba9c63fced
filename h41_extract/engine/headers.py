from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import Tag

from .grid import physical_cells, span_grid, table_rows
from .labels import squash
from .models import AVERAGE, COLUMN_ROLES, VALUE, WEEK_CHANGE, YEAR_CHANGE, WarningLog
from .numbers import parse_number
from .settings import HeaderPhrases

logger = logging.getLogger(__name__)

MAX_HEADER_ROWS = 5
EARLY_DATA_ROWS = 3

DATE_LIKE_RX = re.compile(
    r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?\s+\d{1,2},?\s+\d{4}\b"
    r"|\b\d{4}-\d{2}-\d{2}\b"
    r"|\b\d{1,2}/\d{1,2}/\d{2,4}\b",
    re.IGNORECASE,
)


@dataclass
class HeaderLayout:
    header_rows: int
    width: int
    texts: List[List[str]]  # per physical column, the header texts top to bottom
    columns: Dict[str, Optional[int]] = field(default_factory=dict)
    named: Dict[str, Optional[int]] = field(default_factory=dict)

    def combined(self, col: int) -> str:
        return squash(" ".join(self.texts[col]))

    @property
    def value_found(self) -> bool:
        return self.columns.get(VALUE) is not None


def is_data_row(tr: Tag) -> bool:
    cells = physical_cells(tr)
    if not cells or not cells[0]:
        return False
    return any(parse_number(c) is not None for c in cells[1:])


def split_header(rows: List[Tag]) -> int:
    """Number of leading header rows: at most five, ending before the first data row."""
    n = 0
    for tr in rows[:MAX_HEADER_ROWS]:
        if n > 0 and is_data_row(tr):
            break
        n += 1
    return n


def build_layout(table: Tag) -> Tuple[HeaderLayout, List[Tag]]:
    rows = table_rows(table)
    n_header = split_header(rows)
    columns, width = span_grid(rows[:n_header])
    texts = [[t for t in col if t] for col in columns]

    body = rows[n_header:]
    data_width = max([len(physical_cells(tr)) for tr in body[:EARLY_DATA_ROWS]] + [0])
    # header rows that omit the stub column line up with the rightmost data columns
    offset = max(0, data_width - width)
    if offset:
        texts = [[] for _ in range(offset)] + texts
        width += offset
    return HeaderLayout(header_rows=n_header, width=width, texts=texts), body


def _has_phrase(text: str, phrases: Sequence[str]) -> bool:
    return any(squash(p) and squash(p) in text for p in phrases)


def _value_column(layout: HeaderLayout, phrases: HeaderPhrases, body: List[Tag]) -> Optional[int]:
    as_of = [squash(p) for p in phrases.as_of if squash(p)]
    change = list(phrases.change_marker) + list(phrases.week_change) + list(phrases.year_change)
    for col in range(1, layout.width):
        combined = layout.combined(col)
        if any(combined.startswith(p) for p in as_of):
            return col
        # a lower header row can carry the as-of phrase under a group title
        if not _has_phrase(combined, change) and any(
            squash(t).startswith(p) for t in layout.texts[col] for p in as_of
        ):
            return col

    for tr in body[:EARLY_DATA_ROWS]:
        cells = physical_cells(tr)
        for col in range(1, len(cells)):
            if parse_number(cells[col]) is not None:
                return col
    return None


def _first_with_phrase(layout: HeaderLayout, phrases: Sequence[str], taken: Sequence[Optional[int]]) -> Optional[int]:
    if not phrases:
        return None
    for col in range(1, layout.width):
        if col not in taken and _has_phrase(layout.combined(col), phrases):
            return col
    return None


def _change_columns(layout: HeaderLayout, phrases: HeaderPhrases, value: Optional[int]) -> Tuple[Optional[int], Optional[int]]:
    week = _first_with_phrase(layout, phrases.week_change, [value])
    year = _first_with_phrase(layout, phrases.year_change, [value, week])
    if week is not None and year is not None:
        return week, year

    marker = _first_with_phrase(layout, phrases.change_marker, [value])
    if marker is None:
        return week, year

    assigned = {value, week, year}
    dated = [
        col
        for col in range(marker, layout.width)
        if col not in assigned and DATE_LIKE_RX.search(layout.combined(col))
    ]
    if week is None and dated:
        week = dated.pop(0)
    if year is None and dated:
        year = dated.pop(0)
    return week, year


def _named_columns(layout: HeaderLayout, named: Sequence[Tuple[str, Sequence[str]]]) -> Dict[str, Optional[int]]:
    out: Dict[str, Optional[int]] = {}
    taken: List[Optional[int]] = []
    for name, phrases in named:
        found = None
        for col in range(1, layout.width):
            if col in taken:
                continue
            combined = layout.combined(col)
            if any(re.search(r"(?<!\w)" + re.escape(squash(p)) + r"(?!\w)", combined) for p in phrases if squash(p)):
                found = col
                break
        out[name] = found
        taken.append(found)
    return out


def resolve_columns(
    table: Tag,
    phrases: HeaderPhrases,
    warnings: WarningLog,
    named: Sequence[Tuple[str, Sequence[str]]] = (),
) -> Tuple[HeaderLayout, List[Tag]]:
    """
    Physical column index for each column role, plus any named columns.

    Returns the layout and the table's body rows (rows after the header).
    """
    layout, body = build_layout(table)

    value = _value_column(layout, phrases, body)
    week, year = _change_columns(layout, phrases, value)
    average = _first_with_phrase(layout, phrases.average, [])
    layout.columns = {VALUE: value, WEEK_CHANGE: week, YEAR_CHANGE: year, AVERAGE: average}

    wanted = {
        VALUE: True,
        WEEK_CHANGE: bool(phrases.week_change or phrases.change_marker),
        YEAR_CHANGE: bool(phrases.year_change or phrases.change_marker),
        AVERAGE: False,
    }
    for role in COLUMN_ROLES:
        if wanted[role] and layout.columns[role] is None:
            warnings.add(f"{role} column not found in header")

    if named:
        layout.named = _named_columns(layout, named)
        for name, col in layout.named.items():
            if col is None:
                warnings.add(f"column {name!r} not found in header")

    logger.debug("resolved columns %s named=%s", layout.columns, layout.named)
    return layout, body
