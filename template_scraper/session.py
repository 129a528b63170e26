"""
Per-user wizard state: upload/configure -> processing -> results.

The Streamlit UI keeps one ``ScraperSession`` in ``st.session_state`` and only
changes it through the methods below.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple

from template_scraper.api_client import ApiLogEntry, ExtractionProvider
from template_scraper.config import DEFAULT_ITEM_LIMIT, AppConfig, coerce_item_limit
from template_scraper.csv_template import read_template
from template_scraper.errors import ExtractionCancelled, ExtractionInProgress, MissingInputError
from template_scraper.exporter import rows_to_csv
from template_scraper.table import SortDirective, next_sort, sort_rows
from template_scraper.workflow import ExtractionRequest, ExtractionWorkflow


logger = logging.getLogger(__name__)

ERROR_STATUS = "Error during extraction. Please try again."


class Step(IntEnum):
    UPLOAD = 1
    PROCESSING = 2
    RESULTS = 3


@dataclass
class ScraperSession:
    step: Step = Step.UPLOAD
    csv_name: Optional[str] = None
    headers: List[str] = field(default_factory=list)
    website_url: str = ""
    item_limit: int = DEFAULT_ITEM_LIMIT
    progress: int = 0
    status_message: str = ""
    rows: List[Dict[str, Any]] = field(default_factory=list)
    sort: SortDirective = field(default_factory=SortDirective)
    created_objects: List[str] = field(default_factory=list)
    api_logs: List[ApiLogEntry] = field(default_factory=list)
    dark_mode: bool = False
    show_api_logs: bool = False
    request: Optional[ExtractionRequest] = None
    run_id: int = 0
    last_error: Optional[str] = None
    started_run_id: Optional[int] = None

    @classmethod
    def from_config(cls, app_cfg: AppConfig) -> "ScraperSession":
        return cls(item_limit=coerce_item_limit(app_cfg.default_item_limit))

    @property
    def processing(self) -> bool:
        return self.step == Step.PROCESSING

    def run_started(self) -> bool:
        """True once ``run_extraction`` has been entered for the current run."""
        return self.processing and self.started_run_id == self.run_id

    # --- step 1 -------------------------------------------------------------

    def load_template(self, name: str, data: bytes) -> List[str]:
        self.csv_name = name
        self.headers = read_template(data)
        logger.info("Loaded template %s with %d header(s)", name, len(self.headers))
        return self.headers

    def can_start(self, website_url: Optional[str] = None) -> bool:
        url = self.website_url if website_url is None else website_url
        return bool(self.csv_name and self.headers and url.strip())

    def begin_extraction(self, website_url: str, item_limit: Any = None) -> ExtractionRequest:
        """Validate input and move to the processing step. No network access."""
        if self.processing:
            raise ExtractionInProgress("An extraction is already running")
        if not self.csv_name or not website_url.strip():
            raise MissingInputError("Please upload a CSV file and enter a website URL")
        if not self.headers:
            raise MissingInputError("The uploaded CSV file has no header row")

        self.website_url = website_url
        self.item_limit = coerce_item_limit(item_limit if item_limit is not None else self.item_limit)
        self.step = Step.PROCESSING
        self.progress = 0
        self.status_message = ""
        self.last_error = None
        self.run_id += 1
        self.request = ExtractionRequest(
            website_url=website_url.strip(),
            headers=tuple(self.headers),
            item_limit=self.item_limit,
        )
        return self.request

    # --- step 2 -------------------------------------------------------------

    def _record_object(self, name: str) -> None:
        if name not in self.created_objects:
            self.created_objects.append(name)

    def run_extraction(
        self,
        provider: ExtractionProvider,
        request: ExtractionRequest,
        on_progress=None,
    ) -> bool:
        """
        Run the workflow for the current ``run_id``.

        Returns True when results were applied. A run that was cancelled (or
        superseded) while waiting on the remote side changes nothing. Each run
        starts at most once; later calls for the same run return False without
        touching the provider.
        """
        run_id = self.run_id
        if not self.processing or self.started_run_id == run_id:
            logger.warning("Extraction run %d already started or not pending, ignoring", run_id)
            return False
        self.started_run_id = run_id

        def is_current() -> bool:
            return self.run_id == run_id and self.step == Step.PROCESSING

        def progress(percent: int, status: str) -> None:
            if not is_current():
                return
            self.progress = percent
            self.status_message = status
            if on_progress is not None:
                on_progress(percent, status)

        workflow = ExtractionWorkflow(
            provider,
            on_progress=progress,
            on_object_created=self._record_object,
            is_cancelled=lambda: not is_current(),
        )
        try:
            rows = workflow.run(request)
        except ExtractionCancelled:
            logger.info("Extraction run %d cancelled", run_id)
            return False
        except Exception as e:
            logger.exception("Extraction run %d failed", run_id)
            if is_current():
                self.step = Step.UPLOAD
                self.status_message = ERROR_STATUS
                self.last_error = str(e)
                self.request = None
            return False

        if not is_current():
            return False
        self.request = None
        self.rows = rows
        self.sort = SortDirective()
        self.step = Step.RESULTS
        return True

    def cancel(self) -> None:
        if self.step != Step.PROCESSING:
            return
        self.run_id += 1
        self.request = None
        self.step = Step.UPLOAD
        self.progress = 0
        self.status_message = ""

    # --- step 3 -------------------------------------------------------------

    def toggle_sort(self, key: str) -> SortDirective:
        self.sort = next_sort(self.sort, key)
        return self.sort

    def sorted_rows(self) -> List[Dict[str, Any]]:
        return sort_rows(self.rows, self.sort)

    def export_csv(self) -> str:
        # canonical order, independent of the active sort
        return rows_to_csv(self.rows, self.headers)

    # --- housekeeping -------------------------------------------------------

    def delete_all_objects(self, provider: ExtractionProvider) -> Tuple[List[str], List[str]]:
        """Delete every created remote object once; failures are logged and skipped."""
        if self.processing:
            raise ExtractionInProgress("Remote objects are in use by the running extraction")
        deleted: List[str] = []
        failed: List[str] = []
        for name in self.created_objects:
            try:
                provider.delete_object(name)
            except Exception as e:
                logger.warning("Could not delete remote object %s: %s", name, e)
                failed.append(name)
            else:
                deleted.append(name)
        self.created_objects = []
        return deleted, failed

    def reset(self) -> None:
        """Start over. Call log, remote objects and theme are kept."""
        self.step = Step.UPLOAD
        self.csv_name = None
        self.headers = []
        self.website_url = ""
        self.rows = []
        self.sort = SortDirective()
        self.progress = 0
        self.status_message = ""
        self.last_error = None
        self.request = None
        self.run_id += 1
