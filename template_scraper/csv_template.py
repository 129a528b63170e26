"""Reading the header row of an uploaded CSV template."""

from __future__ import annotations

from typing import List


def parse_headers(text: str) -> List[str]:
    """
    Return the column names from the first non-blank line of ``text``.

    Fields are split on a plain comma, whitespace is trimmed and every double
    quote is removed. Quoted commas and multi-line cells are not understood.
    """
    lines = [line for line in (text or "").split("\n") if line.strip()]
    if not lines:
        return []
    return [h.strip().replace('"', "") for h in lines[0].split(",")]


def read_template(data: bytes) -> List[str]:
    """Decode an uploaded file and parse its headers."""
    # utf-8-sig drops the BOM Excel likes to write
    return parse_headers(data.decode("utf-8-sig", errors="replace"))
