from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Optional, Tuple, Union

from bs4 import Tag

from h41_extract.utils.dates import parse_long_date

from .headers import resolve_columns
from .integrity import reconcile, resolve_total
from .labels import squash
from .locate import find_section, parse_document, select_table
from .mapping import complete_group, map_canonical, missing_keys
from .models import (
    DocumentUnusableError,
    ExtractedRow,
    ExtractionRecord,
    IntegrityBlock,
    SectionResult,
    WarningLog,
)
from .rows import extract_row
from .settings import ExtractionConfig, TableSpec

logger = logging.getLogger(__name__)

NO_TABLES_ERROR = "NO_ANCHOR_TABLES: none of the configured tables was found in the document"

RELEASE_DATE_RX = re.compile(r"release date:?\s*(.{0,40})")
WEEK_ENDED_RX = re.compile(r"week ended:?\s*(?:wednesday,?\s*)?(.{0,30})")


def empty_section(spec: TableSpec) -> SectionResult:
    return SectionResult(
        name=spec.name,
        columns={},
        groups={g.name: complete_group({}, g.whitelist) for g in spec.groups},
        totals={t.key: ExtractedRow(key=t.key) for t in spec.totals},
    )


def extract_section(doc: Tag, spec: TableSpec, warnings: WarningLog) -> SectionResult:
    section = empty_section(spec)
    w = warnings.child(spec.name)

    scope: Optional[Tag] = doc
    if spec.section_phrases:
        scope = find_section(doc, spec.section_phrases)
        if scope is None:
            w.add(f"section not found (tried {', '.join(repr(p) for p in spec.section_phrases)})")
            return section

    table = select_table(scope, spec.anchor_labels, spec.min_rows, w)
    if table is None:
        return section
    section.table_found = True

    layout, body = resolve_columns(table, spec.header, w, spec.named_columns)
    section.columns = {**layout.columns, **layout.named}
    if not layout.value_found:
        w.add("value column unresolved; table skipped")
        return section

    for group in spec.groups:
        gw = w.child(group.name)
        raw = [extract_row(body, f, layout, gw, spec.continuation_labels) for f in group.fields]
        mapped = map_canonical(raw, group.rules, group.whitelist, gw)
        rows = complete_group(mapped, group.whitelist)
        if group.expected_count is not None:
            resolved = len(rows) - len(missing_keys(rows))
            if resolved < group.expected_count:
                gw.add(f"resolved {resolved} of {group.expected_count} fields")
        section.groups[group.name] = rows

    for total in spec.totals:
        section.totals[total.key] = extract_row(body, total, layout, w.child("totals"))

    logger.debug("section %s: %d warnings so far", spec.name, len(warnings))
    return section


def check_integrity(config: ExtractionConfig, sections: Dict[str, SectionResult], warnings: WarningLog) -> IntegrityBlock:
    spec = config.integrity
    if spec is None:
        return IntegrityBlock(tolerance=config.tolerance)

    table = config.table(spec.section)
    section = sections[spec.section]
    w = warnings.child("integrity")
    groups = {g.name: g for g in table.groups}

    for group_name, total_key in (
        (spec.supplying_group, spec.supplying_total),
        (spec.absorbing_group, spec.absorbing_total),
    ):
        section.totals[total_key] = resolve_total(
            section.totals[total_key],
            section.groups[group_name],
            groups[group_name].sum_keys,
            w,
        )

    block = reconcile(
        section.totals[spec.supplying_total].value,
        section.totals[spec.absorbing_total].value,
        section.totals[spec.balance].value,
        config.tolerance,
    )
    if block.delta is None:
        w.add("not checked, a total or the balance figure is missing")
    elif not block.ok:
        w.add(f"mismatch: |{block.computed} - {block.balance}| = {block.delta} exceeds {block.tolerance}")
    return block


def release_metadata(doc: Tag, warnings: WarningLog) -> Tuple[Optional[str], Optional[str]]:
    text = squash(doc.get_text(" "))
    found = []
    for name, rx in (("release date", RELEASE_DATE_RX), ("week ended date", WEEK_ENDED_RX)):
        m = rx.search(text)
        value = parse_long_date(m.group(1)) if m else None
        if value is None:
            warnings.add(f"{name} not found")
        found.append(value)
    return found[0], found[1]


def unusable_record(config: ExtractionConfig, error: str, source_url: str = "") -> ExtractionRecord:
    """Full-shape record with every field missing and ok=False."""
    return ExtractionRecord(
        ok=False,
        error=error,
        source_url=source_url,
        sections={spec.name: empty_section(spec) for spec in config.tables},
        integrity=IntegrityBlock(tolerance=config.tolerance),
    )


def extract_document(document: Union[str, Tag], config: ExtractionConfig, source_url: str = "") -> ExtractionRecord:
    """
    Extract every configured section from one release document.

    Never raises on document content. ok is False only when no configured
    table can be found anywhere in the document.
    """
    doc = parse_document(document) if isinstance(document, str) else document
    warnings = WarningLog()

    sections = {spec.name: extract_section(doc, spec, warnings) for spec in config.tables}
    if not any(s.table_found for s in sections.values()):
        logger.info("no configured tables in %s", source_url or "document")
        record = unusable_record(config, NO_TABLES_ERROR, source_url)
        record.warnings = warnings.as_list()
        return record

    release_date, week_ended = release_metadata(doc, warnings)
    integrity = check_integrity(config, sections, warnings)

    logger.info(
        "extracted %s: integrity_ok=%s warnings=%d",
        source_url or "document",
        integrity.ok,
        len(warnings),
    )
    return ExtractionRecord(
        ok=True,
        sections=sections,
        integrity=integrity,
        warnings=warnings.as_list(),
        source_url=source_url,
        release_date=release_date,
        week_ended=week_ended,
    )


def build_report(fetch: Callable[[], Tuple[str, str]], config: ExtractionConfig) -> ExtractionRecord:
    """Run fetch() -> (html, url) and extract; an unusable document becomes an ok=False record."""
    try:
        html, url = fetch()
    except DocumentUnusableError as e:
        logger.warning("document unusable: %s", e)
        return unusable_record(config, str(e), e.url)
    return extract_document(html, config, url)
