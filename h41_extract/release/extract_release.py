from __future__ import annotations

import argparse
import json
from pathlib import Path

from h41_extract.engine.report import build_report
from h41_extract.engine.settings import load_extraction_config
from h41_extract.utils.config import get_http_settings, get_pipeline_paths, get_release_settings, load_yaml
from h41_extract.utils.dates import yyyymmdd_from_iso
from h41_extract.utils.snapshot import append_manifest_jsonl, save_release_snapshot

from .fetch import fetch_release


def main() -> int:
    ap = argparse.ArgumentParser(description="Fetch one H.4.1 release and write its extraction record as JSON.")
    ap.add_argument("--pipeline", required=True, help="Path to configs/pipeline.yaml")
    ap.add_argument("--config", required=True, help="Path to configs/h41_extraction.yaml")
    ap.add_argument("--date", required=True, help="Release date, YYYY-MM-DD")
    ap.add_argument("--html", default="", help="Extract a saved release page instead of fetching")
    ap.add_argument("--out", default="", help="Output JSON path (default: processed_dir/h41_<date>.json)")
    args = ap.parse_args()

    pipeline_cfg = load_yaml(args.pipeline)
    paths = get_pipeline_paths(pipeline_cfg)
    config = load_extraction_config(args.config)
    http = get_http_settings(pipeline_cfg)
    release = get_release_settings(pipeline_cfg)

    def fetch():
        if args.html:
            p = Path(args.html)
            return p.read_text(encoding="utf-8", errors="replace"), p.as_posix()
        fetched = fetch_release(args.date, http, template=release["release_url_template"])
        snap = save_release_snapshot(html=fetched.html, out_dir=paths["raw_dir"], release_date=args.date, url=fetched.url)
        append_manifest_jsonl(Path(paths["raw_dir"]) / "manifest.jsonl", snap)
        print(f"Snapshot: {snap.path} sha256={snap.sha256[:12]}")
        return fetched.html, fetched.url

    record = build_report(fetch, config)

    out_path = Path(args.out) if args.out else Path(paths["processed_dir"]) / f"h41_{yyyymmdd_from_iso(args.date)}.json"
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(record.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")

    print(f"Saved: {out_path} | ok={record.ok} | integrity_ok={record.integrity.ok} | warnings={len(record.warnings)}")
    if not record.ok:
        print(f"ERROR: {record.error}")
        return 2
    for w in record.warnings:
        print(f"  warning: {w}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
