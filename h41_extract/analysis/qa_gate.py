from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, NoReturn

import pandas as pd

from h41_extract.utils.config import get_pipeline_paths, load_yaml
from h41_extract.utils.hashing import sha256_file
from h41_extract.utils.snapshot import read_manifest

REQUIRED_COLUMNS = ["release_date", "ok", "integrity_ok", "integrity_delta", "warning_count"]
KEY_VALUE_COLUMNS = [
    "factors.supplying.RESERVE_BANK_CREDIT.value",
    "factors.totals.TOTAL_SUPPLYING.value",
    "factors.totals.RESERVE_BALANCES.value",
]


def die(msg: str) -> NoReturn:
    print(f"ERROR: {msg}")
    raise SystemExit(1)


def check_trend(trend: pd.DataFrame, min_releases: int, max_integrity_failures: float) -> List[str]:
    """Problems with the trend table; an empty list means it passes."""
    problems: List[str] = []

    for c in REQUIRED_COLUMNS:
        if c not in trend.columns:
            problems.append(f"trend table missing column: {c}")
    if problems:
        return problems

    if trend["release_date"].duplicated().any():
        problems.append("trend table has duplicate release_date")

    dt = pd.to_datetime(trend["release_date"], errors="coerce")
    if dt.isna().any():
        problems.append("trend table has unparseable release_date values")

    usable = trend[trend["ok"].astype(str).str.lower() == "true"]
    if len(usable) < min_releases:
        problems.append(f"only {len(usable)} usable releases (< {min_releases})")

    value_cols = [c for c in trend.columns if c.endswith((".value", ".week_change", ".year_change"))]
    for c in value_cols:
        raw = trend[c]
        num = pd.to_numeric(raw, errors="coerce")
        if (num.isna() & raw.notna()).any():
            problems.append(f"non-numeric values in {c}")

    for c in KEY_VALUE_COLUMNS:
        if c in usable.columns and usable[c].isna().any():
            problems.append(f"usable releases missing {c}")

    if len(usable):
        failed = int((usable["integrity_ok"].astype(str).str.lower() != "true").sum())
        rate = failed / len(usable)
        print(f"integrity: failed={failed}/{len(usable)} rate={rate:.3f}")
        if rate > max_integrity_failures:
            problems.append(f"integrity failure rate {rate:.3f} > {max_integrity_failures}")

    return problems


def check_snapshots(manifest_path: Path, sample: int) -> List[str]:
    problems: List[str] = []
    records = [r for r in read_manifest(manifest_path) if r.status == "success"]
    for r in records[-sample:] if sample else records:
        p = Path(r.path)
        if not p.exists():
            problems.append(f"snapshot missing on disk: {p}")
        elif sha256_file(p) != r.sha256:
            problems.append(f"snapshot hash mismatch: {p}")
    return problems


def main() -> int:
    ap = argparse.ArgumentParser(description="Deterministic QA gate for the H.4.1 trend table (offline).")
    ap.add_argument("--pipeline", required=True, help="Path to configs/pipeline.yaml")
    ap.add_argument("--min-releases", type=int, default=4)
    ap.add_argument("--max-integrity-failures", type=float, default=0.25)
    ap.add_argument("--check-snapshots", type=int, default=1, choices=[0, 1])
    ap.add_argument("--snapshot-sample", type=int, default=10)
    args = ap.parse_args()

    paths = get_pipeline_paths(load_yaml(args.pipeline))

    trend_path = Path(paths["processed_dir"]) / "h41_trend.csv"
    if not trend_path.exists():
        die(f"Missing {trend_path}")

    trend = pd.read_csv(trend_path)
    print(f"h41_trend: rows={len(trend)} cols={len(trend.columns)}")

    problems = check_trend(trend, args.min_releases, args.max_integrity_failures)
    if args.check_snapshots:
        problems += check_snapshots(Path(paths["raw_dir"]) / "manifest.jsonl", args.snapshot_sample)

    if problems:
        for p in problems[:-1]:
            print(f"ERROR: {p}")
        die(problems[-1])

    print("QA gate passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
