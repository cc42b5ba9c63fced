from __future__ import annotations

import argparse
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Sequence

import pandas as pd

from h41_extract.engine.models import ExtractionRecord, flatten_record
from h41_extract.engine.settings import load_extraction_config
from h41_extract.release.service import ReleaseService
from h41_extract.utils.config import (
    get_cache_settings,
    get_http_settings,
    get_pipeline_paths,
    get_release_settings,
    load_yaml,
)

# =============================================================================
# H.4.1 trend table
#
# One row per release date, columns from flatten_record():
#   release_date, ok, error, week_ended, integrity_ok, integrity_delta, warning_count,
#   <section>.<group>.<KEY>.value / .week_change / .year_change, <section>.totals.<KEY>.*
#
# Releases are extracted in parallel; each extraction works on its own document,
# so results are joined only after every worker has finished.
# =============================================================================

DEFAULT_WORKERS = 4


def extract_many(
    dates: Sequence[str],
    loader: Callable[[str], ExtractionRecord],
    workers: int = DEFAULT_WORKERS,
) -> Dict[str, ExtractionRecord]:
    """Extract several releases concurrently. Keys follow the order of dates."""
    unique = list(dict.fromkeys(dates))
    if not unique:
        return {}
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(unique)))) as pool:
        records = list(pool.map(loader, unique))
    return dict(zip(unique, records))


def build_trend_table(records: Dict[str, ExtractionRecord]) -> pd.DataFrame:
    rows: List[Dict] = []
    for release_date, record in records.items():
        flat = flatten_record(record)
        # requested date identifies the row even when the page carried no release date
        flat["release_date"] = release_date
        rows.append(flat)
    if not rows:
        return pd.DataFrame(columns=["release_date"])

    df = pd.DataFrame(rows)
    lead = ["release_date", "ok", "error", "week_ended", "integrity_ok", "integrity_delta", "warning_count"]
    cols = lead + [c for c in df.columns if c not in lead]
    return df[cols].sort_values("release_date").reset_index(drop=True)


def read_dates(args: argparse.Namespace) -> List[str]:
    dates = [d.strip() for d in (args.dates or "").split(",") if d.strip()]
    if args.dates_csv:
        df = pd.read_csv(args.dates_csv)
        if "release_date" not in df.columns:
            raise SystemExit(f"{args.dates_csv} has no release_date column")
        dates.extend(df["release_date"].astype(str).tolist())
    dates = sorted(set(dates), reverse=True)
    if args.latest:
        dates = dates[: args.latest]
    return dates


def main() -> int:
    ap = argparse.ArgumentParser(description="Extract several H.4.1 releases in parallel into one trend CSV.")
    ap.add_argument("--pipeline", required=True, help="Path to configs/pipeline.yaml")
    ap.add_argument("--config", required=True, help="Path to configs/h41_extraction.yaml")
    ap.add_argument("--dates", default="", help="Comma-separated release dates (YYYY-MM-DD)")
    ap.add_argument("--dates-csv", default="", help="CSV with a release_date column (from discover_dates)")
    ap.add_argument("--latest", type=int, default=0, help="Keep only the N newest dates")
    ap.add_argument("--workers", type=int, default=0, help="Parallel extractions (default: pipeline trend.workers)")
    args = ap.parse_args()

    pipeline_cfg = load_yaml(args.pipeline)
    paths = get_pipeline_paths(pipeline_cfg)
    config = load_extraction_config(args.config)

    dates = read_dates(args)
    if not dates:
        print("No release dates given (use --dates or --dates-csv).")
        return 2

    workers = args.workers or int((pipeline_cfg.get("trend", {}) or {}).get("workers", DEFAULT_WORKERS))
    service = ReleaseService.from_settings(
        config,
        http=get_http_settings(pipeline_cfg),
        release=get_release_settings(pipeline_cfg),
        ttl_seconds=get_cache_settings(pipeline_cfg)["ttl_seconds"],
        raw_dir=paths["raw_dir"],
    )

    records = extract_many(dates, service.record, workers=workers)
    df = build_trend_table(records)

    out_path = Path(paths["processed_dir"]) / "h41_trend.csv"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_path, index=False, encoding="utf-8")

    failed = int((~df["ok"].astype(bool)).sum())
    print(f"Saved: {out_path} | releases={len(df)} | unusable={failed} | workers={workers}")
    return 0 if failed < len(df) else 2


if __name__ == "__main__":
    raise SystemExit(main())
