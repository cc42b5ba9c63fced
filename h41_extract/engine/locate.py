from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from .labels import normalize_label, squash
from .models import WarningLog

logger = logging.getLogger(__name__)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "caption", "th", "strong", "b"]
CONTAINER_TAGS = ("div", "section", "article")
IGNORED_TAGS = ("script", "style", "noscript", "head", "title")

MIN_ANCHOR_SCORE = 2


def document_root(node: Tag) -> Tag:
    while node.parent is not None:
        node = node.parent
    return node


def _visible(el: Tag) -> bool:
    return el.name not in IGNORED_TAGS and el.find_parent(IGNORED_TAGS) is None


def _most_specific(elements: List[Tag]) -> Tag:
    # fewest descendants wins; min() keeps the first on ties, i.e. document order
    return min(elements, key=lambda el: sum(1 for _ in el.descendants))


def _enclosing_root(el: Tag) -> Tag:
    if el.name == "table":
        return el
    table = el.find_parent("table")
    if table is not None:
        return table
    container = el.find_parent(CONTAINER_TAGS)
    if container is not None:
        return container
    return el


def _contains_phrase(text: str, needle: str) -> bool:
    # "table 1" must not match "table 1a" or "table 10"
    return re.search(r"(?<!\w)" + re.escape(needle) + r"(?!\w)", text) is not None


def find_section(doc: Tag, phrases: Sequence[str]) -> Optional[Tag]:
    """
    Structural root of the section introduced by the first phrase that occurs anywhere.

    Heading-like elements are searched before all elements. Returns None when no
    phrase occurs in the document.
    """
    for phrase in phrases:
        needle = squash(phrase)
        if not needle:
            continue
        for candidates in (doc.find_all(HEADING_TAGS), doc.find_all(True)):
            hits = [el for el in candidates if _visible(el) and _contains_phrase(squash(el.get_text(" ")), needle)]
            if hits:
                el = _most_specific(hits)
                logger.debug("section phrase %r matched <%s>", phrase, el.name)
                return _enclosing_root(el)
    return None


def count_rows(table: Tag) -> int:
    return len(table.find_all("tr"))


def anchor_score(table: Tag, anchors: Sequence[str]) -> int:
    text = normalize_label(table.get_text(" "))
    return sum(1 for a in anchors if normalize_label(a) and normalize_label(a) in text)


def _tables_in(node: Tag) -> List[Tag]:
    found = [node] if node.name == "table" else []
    return found + node.find_all("table")


def candidate_tiers(scope: Tag) -> List[List[Tag]]:
    """Tables reachable from scope: inside it, among its siblings, then the whole document."""
    inside = _tables_in(scope)

    siblings: List[Tag] = []
    for sib in list(scope.find_previous_siblings()) + list(scope.find_next_siblings()):
        if isinstance(sib, Tag):
            siblings.extend(_tables_in(sib))

    everywhere = document_root(scope).find_all("table")
    return [inside, siblings, everywhere]


def select_table(
    scope: Tag,
    anchors: Sequence[str],
    min_rows: int = 5,
    warnings: Optional[WarningLog] = None,
) -> Optional[Tag]:
    order: Dict[int, int] = {id(t): i for i, t in enumerate(document_root(scope).find_all("table"))}
    threshold = MIN_ANCHOR_SCORE

    for tier in candidate_tiers(scope):
        best: Optional[Tag] = None
        best_key = None
        seen = set()
        for table in tier:
            if id(table) in seen:
                continue
            seen.add(id(table))
            if count_rows(table) < min_rows:
                continue
            score = anchor_score(table, anchors)
            if score < threshold:
                continue
            key = (-score, order.get(id(table), len(order)))
            if best_key is None or key < best_key:
                best, best_key = table, key
        if best is not None:
            logger.debug("selected table with anchor score %d", -best_key[0])
            return best

    if warnings is not None:
        warnings.add(f"no table with at least {threshold} of {len(anchors)} anchor labels and {min_rows} rows")
    return None


def parse_document(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")
