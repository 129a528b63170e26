from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests

from template_scraper.config import ApiConfig, build_headers


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiLogEntry:
    timestamp: str
    method: str
    endpoint: str
    request: Any
    response: Any


class ExtractionProvider(Protocol):
    """The four remote operations the extraction workflow relies on."""

    def input_data(self, object_name: str, urls: Sequence[str]) -> Any: ...

    def apply_prompt(
        self,
        created_object_names: Sequence[str],
        prompt_string: str,
        input_object_name: str,
        mode: str = "combine_events",
    ) -> Any: ...

    def return_data(self, object_name: str, return_type: str = "json") -> Any: ...

    def delete_object(self, object_name: str) -> None: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


class ApiClient:
    """
    Thin ``requests`` wrapper around the remote extraction API.

    Every call, successful or not, appends exactly one ``ApiLogEntry`` to
    ``logs``. Transport errors are re-raised to the caller; nothing is retried.
    Pass an existing list as ``logs`` to keep the history when the client is
    rebuilt with new settings.
    """

    def __init__(
        self,
        api: ApiConfig,
        logs: Optional[List[ApiLogEntry]] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api = api
        self.logs: List[ApiLogEntry] = logs if logs is not None else []
        self.session = session or requests.Session()
        self.session.headers.update(build_headers(api))

    def _url(self, endpoint: str) -> str:
        return f"{self.api.base_url.rstrip('/')}{endpoint}"

    def _log(self, method: str, endpoint: str, request: Any, response: Any) -> None:
        self.logs.append(
            ApiLogEntry(
                timestamp=_now_iso(),
                method=method,
                endpoint=endpoint,
                request=request,
                response=response,
            )
        )

    def call(self, endpoint: str, payload: Dict[str, Any]) -> Any:
        logger.debug("POST %s", endpoint)
        try:
            resp = self.session.post(self._url(endpoint), json=payload, timeout=self.api.timeout)
            # The service answers errors with a JSON body too, so the status is not checked here.
            result = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("POST %s failed: %s", endpoint, e)
            self._log("POST", endpoint, payload, {"error": str(e)})
            raise
        self._log("POST", endpoint, payload, result)
        return result

    def delete_object(self, object_name: str) -> None:
        endpoint = f"/objects/{object_name}"
        try:
            resp = self.session.delete(self._url(endpoint), timeout=self.api.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("DELETE %s failed: %s", endpoint, e)
            self._log("DELETE", endpoint, {}, {"error": str(e)})
            raise
        self._log("DELETE", endpoint, {}, {"deleted": True})

    # --- remote operations -------------------------------------------------

    def input_data(self, object_name: str, urls: Sequence[str]) -> Any:
        return self.call(
            "/input_data",
            {
                "created_object_name": object_name,
                "data_type": "urls",
                "input_data": list(urls),
            },
        )

    def apply_prompt(
        self,
        created_object_names: Sequence[str],
        prompt_string: str,
        input_object_name: str,
        mode: str = "combine_events",
    ) -> Any:
        return self.call(
            "/apply_prompt",
            {
                "created_object_names": list(created_object_names),
                "prompt_string": prompt_string,
                "inputs": [{"input_object_name": input_object_name, "mode": mode}],
            },
        )

    def return_data(self, object_name: str, return_type: str = "json") -> Any:
        return self.call(
            "/return_data",
            {"object_name": object_name, "return_type": return_type},
        )

    def close(self) -> None:
        self.session.close()


def refresh_client(
    client: Optional[ApiClient],
    api: ApiConfig,
    logs: List[ApiLogEntry],
) -> ApiClient:
    """Keep ``client`` while the settings are unchanged, otherwise close it and build a new one."""
    if client is not None and client.api == api:
        return client
    if client is not None:
        client.close()
    return ApiClient(replace(api), logs=logs)
