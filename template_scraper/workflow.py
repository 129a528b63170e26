"""
Three-stage extraction workflow against the remote API.

submit URL -> apply extraction prompt -> fetch result, with progress reported
at fixed checkpoints and a best-effort recovery of the returned value.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from template_scraper.api_client import ExtractionProvider
from template_scraper.errors import ExtractionCancelled


logger = logging.getLogger(__name__)

INPUT_OBJECT = "website_data"
RESULT_OBJECT = "extracted_products"
PROMPT_MODE = "combine_events"

PARSE_ERROR_MARKER = "Could not parse extracted data"

# Greedy on purpose: from the first "[" to the last "]" in the text.
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")

ProgressCallback = Callable[[int, str], None]
Row = Dict[str, Any]

CHECKPOINTS: Tuple[Tuple[int, str], ...] = (
    (0, "Starting web scraping..."),
    (25, "Analyzing website structure..."),
    (50, "Extracting product information..."),
    (75, "Formatting results..."),
    (100, "Extraction complete!"),
)


@dataclass(frozen=True)
class ExtractionRequest:
    website_url: str
    headers: Tuple[str, ...]
    item_limit: int


def build_prompt(headers: Sequence[str], item_limit: int) -> str:
    columns = ", ".join(headers)
    quoted = ", ".join(f'"{h}"' for h in headers)
    return (
        "Analyze the website data and extract product information. "
        f"Organize the data according to these CSV columns: {columns}.\n"
        "\n"
        "Instructions:\n"
        f"- Extract up to {item_limit} products maximum\n"
        "- For each product, map the available information to the appropriate CSV columns\n"
        '- If information for a column is not available, use "N/A"\n'
        "- Focus on actual products, not navigation or promotional content\n"
        "- Return the data as a clean JSON array where each object represents one product\n"
        f"- Use the exact column names as keys: {quoted}\n"
        "\n"
        "Website data: {website_data}\n"
    )


def _as_rows(parsed: Any) -> List[Row]:
    if isinstance(parsed, dict):
        return [parsed]
    if isinstance(parsed, list):
        return [item if isinstance(item, dict) else {"raw_data": item} for item in parsed]
    return []


def recover_rows(value: Any) -> List[Row]:
    """
    Best-effort recovery of extracted rows from the remote result value.

    Tried in order: a native list, the first embedded array literal in a
    string, the whole string as JSON. When every attempt fails the result is a
    single diagnostic row carrying the raw value.
    """
    if isinstance(value, list):
        return _as_rows(value)
    if not isinstance(value, str):
        if isinstance(value, dict):
            return _as_rows(value)
        return []

    match = _ARRAY_RE.search(value)
    if match:
        try:
            return _as_rows(json.loads(match.group(0)))
        except ValueError:
            logger.debug("Embedded array literal is not valid JSON, trying the whole value")

    try:
        return _as_rows(json.loads(value))
    except ValueError as e:
        logger.warning("Could not parse extraction result: %s", e)
        return [{"error": PARSE_ERROR_MARKER, "raw_data": value}]


class ExtractionWorkflow:
    """
    Run one extraction request through the remote provider.

    ``on_progress`` receives (percent, status) at each checkpoint.
    ``on_object_created`` receives each remote object name once it exists.
    ``is_cancelled`` is polled after every remote call; when it turns true the
    run stops with ``ExtractionCancelled`` and its result is never produced.
    """

    def __init__(
        self,
        provider: ExtractionProvider,
        on_progress: Optional[ProgressCallback] = None,
        on_object_created: Optional[Callable[[str], None]] = None,
        is_cancelled: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.provider = provider
        self.on_progress = on_progress or (lambda percent, status: None)
        self.on_object_created = on_object_created or (lambda name: None)
        self.is_cancelled = is_cancelled or (lambda: False)

    def _checkpoint(self, index: int) -> None:
        percent, status = CHECKPOINTS[index]
        logger.info("[%d%%] %s", percent, status)
        self.on_progress(percent, status)

    def _check_cancelled(self) -> None:
        if self.is_cancelled():
            raise ExtractionCancelled("extraction cancelled by user")

    def run(self, request: ExtractionRequest) -> List[Row]:
        self._checkpoint(0)

        # 1. submit
        self._checkpoint(1)
        self.provider.input_data(INPUT_OBJECT, [request.website_url])
        self.on_object_created(INPUT_OBJECT)
        self._check_cancelled()

        # 2. transform
        self._checkpoint(2)
        self.provider.apply_prompt(
            [RESULT_OBJECT],
            build_prompt(request.headers, request.item_limit),
            INPUT_OBJECT,
            PROMPT_MODE,
        )
        self.on_object_created(RESULT_OBJECT)
        self._check_cancelled()

        # 3. retrieve
        self._checkpoint(3)
        result = self.provider.return_data(RESULT_OBJECT, "json")
        self._check_cancelled()

        self._checkpoint(4)
        value = result.get("value") if isinstance(result, dict) else None
        rows = recover_rows(value)
        logger.info("Extraction returned %d row(s)", len(rows))
        return rows
