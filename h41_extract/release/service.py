from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from h41_extract.engine.models import DocumentUnusableError, ExtractionRecord
from h41_extract.engine.report import extract_document, unusable_record
from h41_extract.engine.settings import ExtractionConfig
from h41_extract.utils.cache import TTLCache, cache_key
from h41_extract.utils.snapshot import append_manifest_jsonl, failed_snapshot, save_release_snapshot

from .fetch import FetchedRelease, fetch_release

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], FetchedRelease]


class ReleaseService:
    """
    Extraction records by release date, behind a TTL cache.

    A refresh that fails with an unusable document serves the last good record
    for that date if there is one; otherwise the caller gets an ok=False record.
    Safe to call from several threads.
    """

    def __init__(
        self,
        config: ExtractionConfig,
        fetcher: Fetcher,
        cache: Optional[TTLCache] = None,
        raw_dir: Optional[str | Path] = None,
    ):
        self.config = config
        self.fetcher = fetcher
        self.cache = cache or TTLCache()
        self.raw_dir = Path(raw_dir) if raw_dir else None
        self._manifest_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        config: ExtractionConfig,
        http: Dict[str, Any],
        release: Dict[str, str],
        ttl_seconds: int,
        raw_dir: Optional[str | Path] = None,
    ) -> "ReleaseService":
        def fetcher(release_date: str) -> FetchedRelease:
            return fetch_release(release_date, http, template=release["release_url_template"])

        return cls(config, fetcher, cache=TTLCache(ttl_seconds), raw_dir=raw_dir)

    def _snapshot(self, release_date: str, url: str, html: str = "", error: str = "") -> None:
        if self.raw_dir is None:
            return
        if error:
            rec = failed_snapshot(release_date=release_date, url=url, error=error)
        else:
            rec = save_release_snapshot(html=html, out_dir=self.raw_dir, release_date=release_date, url=url)
        with self._manifest_lock:
            append_manifest_jsonl(self.raw_dir / "manifest.jsonl", rec)

    def _load(self, release_date: str) -> ExtractionRecord:
        try:
            fetched = self.fetcher(release_date)
        except DocumentUnusableError as e:
            self._snapshot(release_date, e.url, error=str(e))
            raise
        self._snapshot(release_date, fetched.url, html=fetched.html)
        return extract_document(fetched.html, self.config, fetched.url)

    def record(self, release_date: str) -> ExtractionRecord:
        key = cache_key("h41", release_date)
        try:
            return self.cache.get_or_refresh(key, lambda: self._load(release_date))
        except DocumentUnusableError as e:
            logger.warning("release %s unusable: %s", release_date, e)
            return unusable_record(self.config, str(e), e.url)
