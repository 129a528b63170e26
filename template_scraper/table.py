from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional, Sequence

import pandas as pd


MISSING = "N/A"

Direction = Literal["asc", "desc"]


@dataclass(frozen=True)
class SortDirective:
    key: Optional[str] = None
    direction: Direction = "asc"


def is_missing(value: Any) -> bool:
    return value is None or value == ""


def display_value(row: Dict[str, Any], header: str) -> str:
    value = row.get(header)
    return MISSING if is_missing(value) else str(value)


def next_sort(current: SortDirective, key: str) -> SortDirective:
    """Clicking the active ascending column flips it; anything else sorts ascending."""
    if current.key == key and current.direction == "asc":
        return SortDirective(key, "desc")
    return SortDirective(key, "asc")


def sort_rows(rows: Sequence[Dict[str, Any]], directive: SortDirective) -> List[Dict[str, Any]]:
    """Return a sorted copy of ``rows``; the input is never reordered."""
    if not directive.key:
        return list(rows)

    def sort_key(row: Dict[str, Any]) -> str:
        value = row.get(directive.key)
        return "" if is_missing(value) else str(value)

    return sorted(rows, key=sort_key, reverse=directive.direction == "desc")


def rows_to_dataframe(rows: Sequence[Dict[str, Any]], headers: Sequence[str]) -> pd.DataFrame:
    """Tabulate rows for display, one column per template header."""
    if not rows or not headers:
        return pd.DataFrame(columns=list(headers))
    return pd.DataFrame(
        [[display_value(row, h) for h in headers] for row in rows],
        columns=list(headers),
    )
