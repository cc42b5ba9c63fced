from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

Number = Union[int, float]

MISSING = "missing"

# Column roles
VALUE = "value"
WEEK_CHANGE = "week_change"
YEAR_CHANGE = "year_change"
AVERAGE = "average"
COLUMN_ROLES = (VALUE, WEEK_CHANGE, YEAR_CHANGE, AVERAGE)


class WarningLog:
    """Ordered diagnostics for one extraction call. Passed explicitly to every stage."""

    def __init__(self, prefix: str = "", items: Optional[List[str]] = None):
        self.prefix = prefix
        self._items: List[str] = items if items is not None else []

    def add(self, message: str) -> None:
        self._items.append(f"{self.prefix}{message}" if self.prefix else message)

    def child(self, prefix: str) -> "WarningLog":
        """A view that prefixes its messages and writes into this log."""
        return WarningLog(prefix=f"{self.prefix}{prefix}: ", items=self._items)

    def as_list(self) -> List[str]:
        return list(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class ExtractedRow:
    key: str
    label: Optional[str] = None
    value: Optional[Number] = None
    week_change: Optional[Number] = None
    year_change: Optional[Number] = None
    columns: Dict[str, Optional[Number]] = field(default_factory=dict)

    @property
    def found(self) -> bool:
        return self.label is not None

    def to_dict(self) -> Union[str, Dict[str, Any]]:
        if not self.found:
            return MISSING
        out: Dict[str, Any] = {
            "label": self.label,
            "value": self.value,
            "week_change": self.week_change,
            "year_change": self.year_change,
        }
        if self.columns:
            out["columns"] = dict(self.columns)
        return out


@dataclass
class IntegrityBlock:
    supplying_total: Optional[Number] = None
    absorbing_total: Optional[Number] = None
    balance: Optional[Number] = None
    computed: Optional[Number] = None
    delta: Optional[Number] = None
    tolerance: Number = 10
    ok: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "supplying_total": self.supplying_total,
            "absorbing_total": self.absorbing_total,
            "balance": self.balance,
            "computed": self.computed,
            "delta": self.delta,
            "tolerance": self.tolerance,
            "ok": self.ok,
        }


@dataclass
class SectionResult:
    name: str
    table_found: bool = False
    columns: Dict[str, Optional[int]] = field(default_factory=dict)
    groups: Dict[str, Dict[str, ExtractedRow]] = field(default_factory=dict)
    totals: Dict[str, ExtractedRow] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table_found": self.table_found,
            "columns": dict(self.columns),
            "groups": {g: {k: r.to_dict() for k, r in rows.items()} for g, rows in self.groups.items()},
            "totals": {k: r.to_dict() for k, r in self.totals.items()},
        }


@dataclass
class ExtractionRecord:
    ok: bool
    sections: Dict[str, SectionResult]
    integrity: IntegrityBlock
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None
    source_url: str = ""
    release_date: Optional[str] = None
    week_ended: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "error": self.error,
            "source_url": self.source_url,
            "release_date": self.release_date,
            "week_ended": self.week_ended,
            "sections": {name: s.to_dict() for name, s in self.sections.items()},
            "integrity": self.integrity.to_dict(),
            "warnings": list(self.warnings),
        }


def flatten_record(record: ExtractionRecord) -> Dict[str, Any]:
    """One flat mapping per record, e.g. factors.supplying.RESERVE_BANK_CREDIT.value."""
    out: Dict[str, Any] = {
        "ok": record.ok,
        "error": record.error,
        "release_date": record.release_date,
        "week_ended": record.week_ended,
        "integrity_ok": record.integrity.ok,
        "integrity_delta": record.integrity.delta,
        "warning_count": len(record.warnings),
    }
    for sname, section in record.sections.items():
        for gname, rows in section.groups.items():
            for key, row in rows.items():
                base = f"{sname}.{gname}.{key}"
                out[f"{base}.value"] = row.value
                out[f"{base}.week_change"] = row.week_change
                out[f"{base}.year_change"] = row.year_change
                for col, v in row.columns.items():
                    out[f"{base}.{col}"] = v
        for key, row in section.totals.items():
            base = f"{sname}.totals.{key}"
            out[f"{base}.value"] = row.value
            out[f"{base}.week_change"] = row.week_change
            out[f"{base}.year_change"] = row.year_change
    return out


class DocumentUnusableError(Exception):
    """Raised by the fetch side when a release document cannot be used at all."""

    def __init__(self, code: str, message: str, url: str = ""):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.url = url
