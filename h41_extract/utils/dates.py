from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

LONG_DATE_RX = re.compile(r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2}),?\s+(\d{4})\b")

MIN_YEAR = 2000
MAX_YEAR = 2100


def parse_long_date(text: Optional[str]) -> Optional[str]:
    """First "Jan 7, 2026" style date in text as ISO ("2026-01-07"), else None."""
    if not text:
        return None
    for m in LONG_DATE_RX.finditer(text):
        month = MONTHS.get(m.group(1)[:3].lower())
        if month is None:
            continue
        try:
            return date(int(m.group(3)), month, int(m.group(2))).isoformat()
        except ValueError:
            continue
    return None


def iso_from_yyyymmdd(ymd: str) -> str:
    s = (ymd or "").strip()
    if not re.fullmatch(r"\d{8}", s):
        raise ValueError(f"expected YYYYMMDD, got {ymd!r}")
    d = datetime.strptime(s, "%Y%m%d").date()
    if not MIN_YEAR <= d.year <= MAX_YEAR:
        raise ValueError(f"year out of range: {ymd!r}")
    return d.isoformat()


def yyyymmdd_from_iso(iso: str) -> str:
    s = (iso or "").strip()
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", s):
        raise ValueError(f"expected YYYY-MM-DD, got {iso!r}")
    return datetime.strptime(s, "%Y-%m-%d").strftime("%Y%m%d")
