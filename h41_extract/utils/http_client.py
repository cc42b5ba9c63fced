from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional

import requests

from h41_extract.engine.models import DocumentUnusableError

logger = logging.getLogger(__name__)

RETRY_STATUSES = {429, 500, 502, 503, 504}


def fetch_text(
    url: str,
    headers: Dict[str, str],
    timeout_seconds: int,
    max_retries: int,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    """
    GET url and return the decoded body.

    Network errors and 429/5xx are retried with linear backoff (2, 4, 6 ... seconds).
    Other non-2xx statuses fail at once with HTTP_ERROR_<status>; running out of
    retries fails with FETCH_FAILED.
    """
    http = session or requests
    last_err: Exception | None = None
    for attempt in range(1, max_retries + 1):
        try:
            r = http.get(url, headers=headers, timeout=timeout_seconds)
        except requests.RequestException as e:
            last_err = e
        else:
            if r.status_code < 400:
                r.encoding = r.apparent_encoding or r.encoding
                return r.text
            if r.status_code not in RETRY_STATUSES:
                raise DocumentUnusableError(f"HTTP_ERROR_{r.status_code}", f"GET {url} returned {r.status_code}", url)
            last_err = RuntimeError(f"HTTP {r.status_code}")

        logger.warning("fetch attempt %d/%d failed for %s: %s", attempt, max_retries, url, last_err)
        if attempt < max_retries:
            sleep(2 * attempt)

    raise DocumentUnusableError(
        "FETCH_FAILED",
        f"failed to fetch after {max_retries} retries: {url}. Last error: {last_err}",
        url,
    )
