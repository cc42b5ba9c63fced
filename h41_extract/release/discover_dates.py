from __future__ import annotations

import argparse
from pathlib import Path
from typing import AbstractSet, Any, Dict, List

import pandas as pd

from h41_extract.engine.models import DocumentUnusableError
from h41_extract.utils.config import get_http_settings, get_pipeline_paths, get_release_settings, load_yaml
from h41_extract.utils.http_client import fetch_text
from h41_extract.utils.snapshot import snapshotted_dates, utc_now_iso

from .fetch import discover_release_dates, release_url


def release_rows(calendar_html: str, template: str, snapshotted: AbstractSet[str] = frozenset()) -> List[Dict[str, Any]]:
    discovered_at = utc_now_iso()
    return [
        {
            "release_date": d,
            "release_url": release_url(d, template),
            "snapshotted": d in snapshotted,
            "discovered_at_utc": discovered_at,
        }
        for d in discover_release_dates(calendar_html)
    ]


def main() -> int:
    ap = argparse.ArgumentParser(description="Discover H.4.1 release dates from the release calendar page.")
    ap.add_argument("--pipeline", required=True, help="Path to configs/pipeline.yaml")
    ap.add_argument("--out", default="", help="Output CSV (default: processed_dir/h41_release_dates.csv)")
    ap.add_argument("--since", default="", help="Keep releases on or after YYYY-MM-DD")
    args = ap.parse_args()

    pipeline_cfg = load_yaml(args.pipeline)
    paths = get_pipeline_paths(pipeline_cfg)
    http = get_http_settings(pipeline_cfg)
    release = get_release_settings(pipeline_cfg)

    try:
        html = fetch_text(
            release["calendar_url"],
            headers=http["headers"],
            timeout_seconds=http["timeout_seconds"],
            max_retries=http["max_retries"],
        )
    except DocumentUnusableError as e:
        print(f"ERROR: {e}")
        return 2

    have = snapshotted_dates(Path(paths["raw_dir"]) / "manifest.jsonl")
    rows = release_rows(html, release["release_url_template"], have)
    if not rows:
        print("No release links found on the calendar page.")
        return 2

    df = pd.DataFrame(rows)
    if args.since:
        df = df[df["release_date"] >= args.since]
    df = df.drop_duplicates(subset=["release_date"]).sort_values("release_date", ascending=False).reset_index(drop=True)

    out_path = Path(args.out) if args.out else Path(paths["processed_dir"]) / "h41_release_dates.csv"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(out_path, index=False, encoding="utf-8")

    pending = int((~df["snapshotted"]).sum())
    print(
        f"Saved: {out_path} ({len(df)} release dates, newest {df['release_date'].iloc[0] if len(df) else '-'}, "
        f"{pending} not yet snapshotted)"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
