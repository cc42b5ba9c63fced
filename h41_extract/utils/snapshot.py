from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Set

from .hashing import sha256_bytes


@dataclass
class SnapshotRecord:
    fetched_at_utc: str
    release_date: str
    url: str
    path: str
    sha256: str
    bytes: int
    status: str  # success|failed
    error: str = ""


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def save_release_snapshot(*, html: str, out_dir: str | Path, release_date: str, url: str) -> SnapshotRecord:
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    path = out / f"h41_{release_date.replace('-', '')}_{ts}.html"

    data = html.encode("utf-8", errors="replace")
    path.write_bytes(data)

    return SnapshotRecord(
        fetched_at_utc=utc_now_iso(),
        release_date=release_date,
        url=url,
        path=path.as_posix(),
        sha256=sha256_bytes(data),
        bytes=len(data),
        status="success",
    )


def failed_snapshot(*, release_date: str, url: str, error: str) -> SnapshotRecord:
    return SnapshotRecord(
        fetched_at_utc=utc_now_iso(),
        release_date=release_date,
        url=url,
        path="",
        sha256="",
        bytes=0,
        status="failed",
        error=error,
    )


def append_manifest_jsonl(manifest_path: str | Path, record: SnapshotRecord) -> None:
    p = Path(manifest_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(asdict(record), ensure_ascii=False)
    with p.open("a", encoding="utf-8") as f:
        f.write(line + "\n")


def read_manifest(manifest_path: str | Path) -> List[SnapshotRecord]:
    p = Path(manifest_path)
    if not p.exists():
        return []
    out: List[SnapshotRecord] = []
    for line in p.read_text(encoding="utf-8").splitlines():
        if not line.strip():
            continue
        out.append(SnapshotRecord(**json.loads(line)))
    return out


def snapshotted_dates(manifest_path: str | Path) -> Set[str]:
    """Release dates that already have a successful snapshot on disk."""
    return {
        r.release_date
        for r in read_manifest(manifest_path)
        if r.status == "success" and r.path and Path(r.path).exists()
    }
