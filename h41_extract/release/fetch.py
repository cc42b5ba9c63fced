from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests
from bs4 import BeautifulSoup

from h41_extract.engine.models import DocumentUnusableError
from h41_extract.utils.config import DEFAULT_RELEASE_URL_TEMPLATE
from h41_extract.utils.dates import iso_from_yyyymmdd, yyyymmdd_from_iso
from h41_extract.utils.http_client import fetch_text

logger = logging.getLogger(__name__)

# a release page carries several of these; block/captcha pages carry none
RELEASE_MARKERS = (
    "h.4.1",
    "factors affecting reserve balances",
    "consolidated statement of condition",
    "reserve bank credit",
)
MIN_MARKERS = 2

RELEASE_LINK_RX = re.compile(r"/releases/h41/(\d{8})/")


@dataclass
class FetchedRelease:
    release_date: str
    url: str
    html: str


def release_url(release_date: str, template: str = DEFAULT_RELEASE_URL_TEMPLATE) -> str:
    return template.format(yyyymmdd=yyyymmdd_from_iso(release_date))


def count_markers(html: str) -> int:
    text = " ".join(BeautifulSoup(html, "lxml").get_text(" ").split()).lower()
    return sum(1 for m in RELEASE_MARKERS if m in text)


def validate_release_html(html: str, url: str = "") -> None:
    found = count_markers(html)
    if found < MIN_MARKERS:
        raise DocumentUnusableError(
            "FETCH_BLOCKED_OR_UNEXPECTED_HTML",
            f"page has {found} of {len(RELEASE_MARKERS)} release markers (need {MIN_MARKERS})",
            url,
        )


def fetch_release(
    release_date: str,
    http: Dict[str, Any],
    template: str = DEFAULT_RELEASE_URL_TEMPLATE,
    session: Optional[requests.Session] = None,
) -> FetchedRelease:
    """
    Fetch and validate one weekly release page.

    http is the dict from get_http_settings(). Raises DocumentUnusableError.
    """
    url = release_url(release_date, template)
    try:
        html = fetch_text(
            url,
            headers=http["headers"],
            timeout_seconds=http["timeout_seconds"],
            max_retries=http["max_retries"],
            session=session,
        )
    except DocumentUnusableError as e:
        if e.code == "HTTP_ERROR_404":
            raise DocumentUnusableError("NO_RELEASE_FOR_DATE", f"no H.4.1 release published for {release_date}", url)
        raise
    validate_release_html(html, url)
    logger.info("fetched %s (%d chars)", url, len(html))
    return FetchedRelease(release_date=release_date, url=url, html=html)


def discover_release_dates(calendar_html: str) -> List[str]:
    """ISO dates of every release linked from the calendar page, newest first."""
    soup = BeautifulSoup(calendar_html, "lxml")
    found = set()
    for a in soup.find_all("a"):
        href = a.get("href") or ""
        m = RELEASE_LINK_RX.search(href)
        if not m:
            continue
        try:
            found.add(iso_from_yyyymmdd(m.group(1)))
        except ValueError:
            logger.debug("skipping invalid release link %s", href)
    return sorted(found, reverse=True)
