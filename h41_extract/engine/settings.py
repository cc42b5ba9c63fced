from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from h41_extract.utils.config import load_yaml

DEFAULT_TOLERANCE = 10
DEFAULT_MIN_ROWS = 5
# a table is only selected when at least two anchors occur in it
MIN_ANCHOR_LABELS = 2

DEFAULT_AS_OF = ("week ended", "wednesday")
DEFAULT_WEEK_CHANGE = ("change from week ended", "change from previous week", "change since wednesday")
DEFAULT_YEAR_CHANGE = ("change from year ago", "change from a year ago")
DEFAULT_CHANGE_MARKER = ("change from", "change since")
DEFAULT_AVERAGE = ("averages of daily figures",)


@dataclass(frozen=True)
class FieldSpec:
    key: str
    candidates: Tuple[str, ...]


@dataclass(frozen=True)
class ClassificationRule:
    key: str
    positive_patterns: Tuple[str, ...]
    negative_patterns: Tuple[str, ...] = ()

    def matches(self, normalized_label: str) -> bool:
        for pat in self.negative_patterns:
            try:
                if re.search(pat, normalized_label, flags=re.IGNORECASE):
                    return False
            except re.error:
                continue
        for pat in self.positive_patterns:
            try:
                if re.search(pat, normalized_label, flags=re.IGNORECASE):
                    return True
            except re.error:
                continue
        return False


@dataclass(frozen=True)
class FieldGroup:
    name: str
    fields: Tuple[FieldSpec, ...]
    rules: Tuple[ClassificationRule, ...] = ()
    expected_count: Optional[int] = None
    sum_keys: Tuple[str, ...] = ()

    @property
    def whitelist(self) -> List[str]:
        return [f.key for f in self.fields]


@dataclass(frozen=True)
class HeaderPhrases:
    as_of: Tuple[str, ...] = DEFAULT_AS_OF
    week_change: Tuple[str, ...] = DEFAULT_WEEK_CHANGE
    year_change: Tuple[str, ...] = DEFAULT_YEAR_CHANGE
    change_marker: Tuple[str, ...] = DEFAULT_CHANGE_MARKER
    average: Tuple[str, ...] = DEFAULT_AVERAGE


@dataclass(frozen=True)
class TableSpec:
    name: str
    section_phrases: Tuple[str, ...]
    anchor_labels: Tuple[str, ...]
    groups: Tuple[FieldGroup, ...]
    totals: Tuple[FieldSpec, ...] = ()
    min_rows: int = DEFAULT_MIN_ROWS
    header: HeaderPhrases = field(default_factory=HeaderPhrases)
    named_columns: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    continuation_labels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class IntegritySpec:
    section: str
    supplying_group: str
    absorbing_group: str
    supplying_total: str
    absorbing_total: str
    balance: str


@dataclass(frozen=True)
class ExtractionConfig:
    tables: Tuple[TableSpec, ...]
    integrity: Optional[IntegritySpec] = None
    tolerance: float = DEFAULT_TOLERANCE

    def table(self, name: str) -> TableSpec:
        for t in self.tables:
            if t.name == name:
                return t
        raise KeyError(f"table not configured: {name}")


def _str_tuple(value: Any, what: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{what} must be a list of strings")
    return tuple(str(v) for v in value)


def _parse_fields(items: Any, what: str) -> Tuple[FieldSpec, ...]:
    out: List[FieldSpec] = []
    seen = set()
    for item in items or []:
        key = str(item.get("key", "")).strip()
        candidates = _str_tuple(item.get("candidates"), f"{what}.{key}.candidates")
        if not key or not candidates:
            raise ValueError(f"{what}: every field needs a key and at least one candidate")
        if key in seen:
            raise ValueError(f"{what}: duplicate key {key}")
        seen.add(key)
        out.append(FieldSpec(key=key, candidates=candidates))
    return tuple(out)


def _parse_group(name: str, spec: Dict[str, Any], where: str) -> FieldGroup:
    fields = _parse_fields(spec.get("fields"), f"{where}.{name}")
    if not fields:
        raise ValueError(f"{where}.{name} has no fields")
    keys = {f.key for f in fields}

    rules: List[ClassificationRule] = []
    for r in spec.get("rules", []) or []:
        rules.append(
            ClassificationRule(
                key=str(r.get("key")),
                positive_patterns=_str_tuple(r.get("positive_patterns"), "positive_patterns"),
                negative_patterns=_str_tuple(r.get("negative_patterns"), "negative_patterns"),
            )
        )

    sum_keys = _str_tuple(spec.get("sum_keys"), f"{where}.{name}.sum_keys")
    unknown = [k for k in sum_keys if k not in keys]
    if unknown:
        raise ValueError(f"{where}.{name}.sum_keys not in fields: {unknown}")

    expected = spec.get("expected_count")
    return FieldGroup(
        name=name,
        fields=fields,
        rules=tuple(rules),
        expected_count=int(expected) if expected is not None else None,
        sum_keys=sum_keys,
    )


def _parse_header(spec: Optional[Dict[str, Any]]) -> HeaderPhrases:
    # an explicit empty list switches a role off; an absent key keeps the default
    spec = spec or {}
    defaults = HeaderPhrases()
    values = {
        name: _str_tuple(spec[name], f"header.{name}") if name in spec else getattr(defaults, name)
        for name in HeaderPhrases.__dataclass_fields__
    }
    if not values["as_of"]:
        raise ValueError("header.as_of cannot be empty")
    return HeaderPhrases(**values)


def _parse_table(name: str, spec: Dict[str, Any]) -> TableSpec:
    where = f"tables.{name}"
    section_phrases = _str_tuple(spec.get("section_phrases"), f"{where}.section_phrases")
    anchors = _str_tuple(spec.get("anchor_labels"), f"{where}.anchor_labels")
    if len(anchors) < MIN_ANCHOR_LABELS:
        raise ValueError(f"{where} needs at least {MIN_ANCHOR_LABELS} anchor_labels")

    groups = tuple(_parse_group(str(g), gs or {}, f"{where}.groups") for g, gs in (spec.get("groups") or {}).items())
    if not groups:
        raise ValueError(f"{where} has no groups")

    named = tuple(
        (str(col), _str_tuple(phrases, f"{where}.named_columns.{col}"))
        for col, phrases in (spec.get("named_columns") or {}).items()
    )

    return TableSpec(
        name=name,
        section_phrases=section_phrases,
        anchor_labels=anchors,
        groups=groups,
        totals=_parse_fields(spec.get("totals"), f"{where}.totals"),
        min_rows=int(spec.get("min_rows", DEFAULT_MIN_ROWS)),
        header=_parse_header(spec.get("header")),
        named_columns=named,
        continuation_labels=_str_tuple(spec.get("continuation_labels"), f"{where}.continuation_labels"),
    )


def _parse_integrity(spec: Optional[Dict[str, Any]], tables: Tuple[TableSpec, ...]) -> Optional[IntegritySpec]:
    if not spec:
        return None
    try:
        integ = IntegritySpec(**{k: str(spec[k]) for k in IntegritySpec.__dataclass_fields__})
    except KeyError as e:
        raise ValueError(f"integrity block missing {e.args[0]}")

    by_name = {t.name: t for t in tables}
    table = by_name.get(integ.section)
    if table is None:
        raise ValueError(f"integrity.section not configured: {integ.section}")
    group_names = {g.name for g in table.groups}
    total_keys = {t.key for t in table.totals}
    for g in (integ.supplying_group, integ.absorbing_group):
        if g not in group_names:
            raise ValueError(f"integrity group not in {integ.section}: {g}")
    for k in (integ.supplying_total, integ.absorbing_total, integ.balance):
        if k not in total_keys:
            raise ValueError(f"integrity total not in {integ.section}.totals: {k}")
    return integ


def parse_extraction_config(data: Dict[str, Any]) -> ExtractionConfig:
    tables_cfg = data.get("tables") or {}
    if not isinstance(tables_cfg, dict) or not tables_cfg:
        raise ValueError("extraction config needs a non-empty 'tables' mapping")
    tables = tuple(_parse_table(str(name), spec or {}) for name, spec in tables_cfg.items())
    return ExtractionConfig(
        tables=tables,
        integrity=_parse_integrity(data.get("integrity"), tables),
        tolerance=float(data.get("tolerance", DEFAULT_TOLERANCE)),
    )


def load_extraction_config(path: str | Path) -> ExtractionConfig:
    return parse_extraction_config(load_yaml(path))
