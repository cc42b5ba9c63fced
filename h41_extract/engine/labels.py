from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

_PARENS_PERIODS_RX = re.compile(r"[().]")
_FOOTNOTE_RX = re.compile(r"[\d\s]+$")
_WS_RX = re.compile(r"\s+")

MIN_KEYWORD_LEN = 3


def normalize_label(text: Optional[str]) -> str:
    """
    Canonical comparison form of a row/header label.

    "U.S. Treasury, General Account (2)" -> "u s treasury general account"
    """
    if not text:
        return ""
    t = str(text).replace("\u00a0", " ")
    t = _PARENS_PERIODS_RX.sub(" ", t)
    t = t.replace("&", " and ")
    t = t.replace(",", " ")
    # footnote markers: "Account1", "Account (1)" -> "Account"
    t = _FOOTNOTE_RX.sub("", t)
    t = _WS_RX.sub(" ", t)
    return t.lower().strip()


def squash(text: Optional[str]) -> str:
    """Whitespace-collapsed lower-case text. Keeps digits, for header/date phrases."""
    if not text:
        return ""
    return _WS_RX.sub(" ", str(text).replace("\u00a0", " ")).strip().lower()


def keywords(normalized: str) -> List[str]:
    return [w for w in normalized.split(" ") if len(w) >= MIN_KEYWORD_LEN]


def expand_label_candidates(candidates: Iterable[str]) -> List[str]:
    """
    Punctuation variants of each candidate, in priority order, without duplicates.

    Each candidate is followed by its comma-stripped, parenthesis-stripped,
    whitespace-collapsed and fully stripped forms.
    """
    out: List[str] = []
    seen = set()
    for c in candidates:
        if not c:
            continue
        no_commas = c.replace(",", "")
        no_parens = re.sub(r"\([^)]*\)", "", c)
        collapsed = " ".join(c.split())
        combined = " ".join(re.sub(r"\([^)]*\)", "", c).replace(",", "").split())
        for variant in (c, no_commas, no_parens, collapsed, combined):
            v = variant.strip()
            if v and v not in seen:
                seen.add(v)
                out.append(v)
    return out


def exact_match(text: Optional[str], candidates: Sequence[str]) -> Optional[str]:
    """First candidate whose normalized form equals the normalized text."""
    nt = normalize_label(text)
    if not nt:
        return None
    for c in candidates:
        if normalize_label(c) == nt:
            return c
    return None


def label_matches(text: str, candidate: str) -> bool:
    nt = normalize_label(text)
    nc = normalize_label(candidate)
    if not nt or not nc:
        return False
    if nt == nc:
        return True
    kws = keywords(nc)
    if not kws:
        return False
    return all(k in nt for k in kws)


def match_label(text: Optional[str], candidates: Sequence[str]) -> Optional[str]:
    """First candidate (in priority order) that matches text, else None."""
    if not text:
        return None
    for c in candidates:
        if label_matches(text, c):
            return c
    return None
