from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from h41_extract.engine.models import ExtractionRecord, flatten_record
from h41_extract.utils.config import get_pipeline_paths, load_yaml


def _direction(delta: Optional[float]) -> str:
    if delta is None or delta == 0:
        return "neutral"
    return "up" if delta > 0 else "down"


def compare_flat(base: Dict[str, Any], other: Dict[str, Any], fields: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Side-by-side values of two flattened records.

    fields defaults to every ".value" column present in either record.
    delta = other - base; delta_pct is relative to |base| and None when base is 0 or missing.
    """
    if fields is None:
        keys = list(dict.fromkeys([k for k in list(base) + list(other) if k.endswith(".value")]))
    else:
        keys = list(fields)

    rows: List[Dict[str, Any]] = []
    for k in keys:
        a, b = base.get(k), other.get(k)
        delta = b - a if isinstance(a, (int, float)) and isinstance(b, (int, float)) else None
        pct = round(delta / abs(a) * 100, 4) if delta is not None and a else None
        rows.append(
            {
                "field": k[: -len(".value")] if k.endswith(".value") else k,
                "base": a,
                "other": b,
                "delta": delta,
                "delta_pct": pct,
                "direction": _direction(delta),
            }
        )
    return pd.DataFrame(rows, columns=["field", "base", "other", "delta", "delta_pct", "direction"])


def compare_records(base: ExtractionRecord, other: ExtractionRecord, fields: Optional[Sequence[str]] = None) -> pd.DataFrame:
    return compare_flat(flatten_record(base), flatten_record(other), fields)


def flatten_json(record: Dict[str, Any]) -> Dict[str, Any]:
    """flatten_record() for a record already written to disk by extract_release."""
    out: Dict[str, Any] = {"release_date": record.get("release_date")}
    for sname, section in (record.get("sections") or {}).items():
        for gname, rows in (section.get("groups") or {}).items():
            for key, row in rows.items():
                out[f"{sname}.{gname}.{key}.value"] = row.get("value") if isinstance(row, dict) else None
        for key, row in (section.get("totals") or {}).items():
            out[f"{sname}.totals.{key}.value"] = row.get("value") if isinstance(row, dict) else None
    return out


def main() -> int:
    ap = argparse.ArgumentParser(description="Compare two extracted H.4.1 releases (JSON from extract_release).")
    ap.add_argument("--pipeline", required=True, help="Path to configs/pipeline.yaml")
    ap.add_argument("--base", required=True, help="Earlier release JSON")
    ap.add_argument("--other", required=True, help="Later release JSON")
    ap.add_argument("--fields", default="", help="Comma-separated flattened field names (default: all values)")
    args = ap.parse_args()

    paths = get_pipeline_paths(load_yaml(args.pipeline))

    base = json.loads(Path(args.base).read_text(encoding="utf-8"))
    other = json.loads(Path(args.other).read_text(encoding="utf-8"))
    for name, rec in (("base", base), ("other", other)):
        if not rec.get("ok"):
            print(f"ERROR: {name} record is unusable: {rec.get('error')}")
            return 2

    fields = [f.strip() for f in args.fields.split(",") if f.strip()] or None
    df = compare_flat(flatten_json(base), flatten_json(other), fields)

    stem = f"{base.get('release_date') or 'base'}_vs_{other.get('release_date') or 'other'}"
    out_path = Path(paths["processed_dir"]) / f"h41_compare_{stem}.csv"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_path, index=False, encoding="utf-8")

    moved = df[df["direction"] != "neutral"]
    print(f"Saved: {out_path} | fields={len(df)} | changed={len(moved)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
