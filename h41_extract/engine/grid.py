from __future__ import annotations

from typing import Dict, List, Tuple

from bs4 import Tag

MAX_SPAN = 50


def table_rows(table: Tag) -> List[Tag]:
    """Rows that belong to this table, not to tables nested inside it."""
    return [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]


def row_cells(tr: Tag) -> List[Tag]:
    return tr.find_all(["td", "th"], recursive=False)


def cell_text(cell: Tag) -> str:
    return " ".join(cell.get_text(" ", strip=True).replace("\u00a0", " ").split())


def _span(cell: Tag, attr: str) -> int:
    try:
        n = int(str(cell.get(attr, 1)).strip())
    except (TypeError, ValueError):
        return 1
    return min(max(n, 1), MAX_SPAN)


def physical_cells(tr: Tag) -> List[str]:
    """Cell texts by physical column; a colspan cell's text sits at its first column."""
    out: List[str] = []
    for cell in row_cells(tr):
        out.append(cell_text(cell))
        out.extend([""] * (_span(cell, "colspan") - 1))
    return out


def span_grid(rows: List[Tag]) -> Tuple[List[List[str]], int]:
    """
    Lay rows out on a grid honoring colspan and rowspan.

    Returns (columns, width): columns[c] holds, per row, the text of the cell
    covering (row, c). A colspan cell repeats its text in every column it covers.
    A rowspan cell contributes its text once, on its first row.
    """
    occupied: Dict[Tuple[int, int], str] = {}
    width = 0
    for r, tr in enumerate(rows):
        col = 0
        for cell in row_cells(tr):
            while (r, col) in occupied:
                col += 1
            text = cell_text(cell)
            colspan = _span(cell, "colspan")
            rowspan = min(_span(cell, "rowspan"), len(rows) - r)
            for dr in range(rowspan):
                for dc in range(colspan):
                    occupied[(r + dr, col + dc)] = text if dr == 0 else ""
            col += colspan
        width = max([width] + [c + 1 for (rr, c) in occupied if rr == r])

    columns = [[occupied.get((r, c), "") for r in range(len(rows))] for c in range(width)]
    return columns, width
