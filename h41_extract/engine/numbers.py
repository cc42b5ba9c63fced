from __future__ import annotations

import re
from typing import Optional

from .models import Number, WarningLog

# "+12,000", "-1,234.5", "7234000"
NUMBER_RX = re.compile(r"^([+-])?\s*(\d{1,3}(?:,\d{3})+|\d+)(\.\d+)?$")

_MINUS_SIGNS = ("\u2212", "\u2013")
_DIGIT_RX = re.compile(r"\d")


def parse_number(text: Optional[str], warnings: Optional[WarningLog] = None, context: str = "") -> Optional[Number]:
    if text is None:
        return None
    t = str(text).replace("\u00a0", " ").strip()
    if not t or not _DIGIT_RX.search(t):
        return None
    for m in _MINUS_SIGNS:
        t = t.replace(m, "-")

    match = NUMBER_RX.match(t)
    if not match:
        if warnings is not None:
            where = f" ({context})" if context else ""
            warnings.add(f"could not parse number {text.strip()!r}{where}")
        return None

    sign, whole, frac = match.groups()
    digits = whole.replace(",", "")
    value: Number = float(digits + frac) if frac else int(digits)
    return -value if sign == "-" else value
