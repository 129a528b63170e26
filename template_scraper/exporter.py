"""CSV export of extracted rows."""

from __future__ import annotations

import csv
from typing import Any, Dict, Sequence

from template_scraper.table import rows_to_dataframe


EXPORT_FILENAME = "scraped_products.csv"
EXPORT_MIME = "text/csv"


def rows_to_csv(rows: Sequence[Dict[str, Any]], headers: Sequence[str]) -> str:
    """
    Serialise rows under the template headers.

    Every field is quoted, embedded quotes are doubled and missing values are
    written as "N/A". Rows are written in the order given.
    """
    df = rows_to_dataframe(rows, headers)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
