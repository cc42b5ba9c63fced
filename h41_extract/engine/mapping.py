from __future__ import annotations

from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from .labels import normalize_label
from .models import ExtractedRow, WarningLog
from .settings import ClassificationRule


def classify(label: str, rules: Sequence[ClassificationRule]) -> Optional[str]:
    """Canonical key of the first rule that accepts the normalized label."""
    nl = normalize_label(label)
    if not nl:
        return None
    for rule in rules:
        if rule.matches(nl):
            return rule.key
    return None


def _prefer(existing: Optional[ExtractedRow], row: ExtractedRow) -> bool:
    if existing is None:
        return True
    # only a non-zero figure displaces a zero/absent one
    return not existing.value and bool(row.value)


def map_canonical(
    rows: Iterable[ExtractedRow],
    rules: Sequence[ClassificationRule],
    whitelist: Sequence[str],
    warnings: WarningLog,
) -> Dict[str, ExtractedRow]:
    """
    Map raw rows onto canonical keys.

    With no rules, a row keeps the key it was extracted for. Rows whose label
    classifies outside the whitelist are dropped and logged. The result is
    ordered by the whitelist and holds only keys that received a row.
    """
    allowed = set(whitelist)
    mapped: Dict[str, ExtractedRow] = {}
    for row in rows:
        if not row.found:
            continue
        key = classify(row.label, rules) if rules else row.key
        if key is None or key not in allowed:
            warnings.add(f"unmatched label {row.label!r}")
            continue
        if _prefer(mapped.get(key), row):
            mapped[key] = replace(row, key=key)

    return {k: mapped[k] for k in whitelist if k in mapped}


def complete_group(mapped: Dict[str, ExtractedRow], whitelist: Sequence[str]) -> Dict[str, ExtractedRow]:
    """Every whitelisted key exactly once, in order; unresolved keys become missing rows."""
    return {k: mapped.get(k) or ExtractedRow(key=k) for k in whitelist}


def missing_keys(group: Dict[str, ExtractedRow]) -> List[str]:
    return [k for k, r in group.items() if not r.found]
