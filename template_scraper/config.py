from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parents[1]
CONFIG_PATH = PROJECT_ROOT / "scraper_config.json"

DEFAULT_API_BASE = "https://builder.empromptu.ai/api_tools"
DEFAULT_ITEM_LIMIT = 50
MIN_ITEM_LIMIT = 1
MAX_ITEM_LIMIT = 200

logger = logging.getLogger(__name__)


@dataclass
class ApiConfig:
    base_url: str = DEFAULT_API_BASE
    api_key: str = ""
    app_id: str = ""
    usage_key: str = ""
    timeout: int = 120  # seconds per request


@dataclass
class AppConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    default_item_limit: int = DEFAULT_ITEM_LIMIT

    @classmethod
    def load(cls, path: Path = CONFIG_PATH, use_env: bool = True) -> "AppConfig":
        cfg = cls._load_file(path)
        if use_env:
            cfg.apply_env()
        return cfg

    @classmethod
    def _load_file(cls, path: Path) -> "AppConfig":
        if not path.exists():
            return cls()

        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", path, e)
            return cls()

        data = raw.get("api", {}) or {}
        known = {k: v for k, v in data.items() if k in asdict(ApiConfig())}
        return cls(
            api=ApiConfig(**{**asdict(ApiConfig()), **known}),
            default_item_limit=coerce_item_limit(
                raw.get("default_item_limit", DEFAULT_ITEM_LIMIT)
            ),
        )

    def apply_env(self) -> None:
        """Override file values with SCRAPER_* variables (a .env file is honoured)."""
        load_dotenv()
        self.api.base_url = os.getenv("SCRAPER_API_BASE", self.api.base_url)
        self.api.api_key = os.getenv("SCRAPER_API_KEY", self.api.api_key)
        self.api.app_id = os.getenv("SCRAPER_APP_ID", self.api.app_id)
        self.api.usage_key = os.getenv("SCRAPER_USAGE_KEY", self.api.usage_key)
        timeout = os.getenv("SCRAPER_API_TIMEOUT")
        if timeout:
            try:
                self.api.timeout = int(timeout)
            except ValueError:
                logger.warning("SCRAPER_API_TIMEOUT=%r is not an integer, keeping %s",
                               timeout, self.api.timeout)

    def save(self, path: Path = CONFIG_PATH) -> None:
        data: Dict[str, Any] = {
            "api": asdict(self.api),
            "default_item_limit": self.default_item_limit,
        }
        path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


def coerce_item_limit(raw: Any, default: int = DEFAULT_ITEM_LIMIT) -> int:
    """
    Turn user input into an item limit.

    Unparseable or zero input falls back to ``default``; anything else is
    clamped into [MIN_ITEM_LIMIT, MAX_ITEM_LIMIT].
    """
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    if not value:
        return default
    return max(MIN_ITEM_LIMIT, min(MAX_ITEM_LIMIT, value))


def build_headers(api: ApiConfig) -> Dict[str, str]:
    """
    Build the request headers the remote API expects.

    Tracking headers are passed through untouched and left out when empty.
    """
    headers = {"Content-Type": "application/json"}
    if api.api_key:
        headers["Authorization"] = f"Bearer {api.api_key}"
    if api.app_id:
        headers["X-Generated-App-ID"] = api.app_id
    if api.usage_key:
        headers["X-Usage-Key"] = api.usage_key
    return headers


def configure_logging(level: Optional[str] = None) -> None:
    level_name = (level or os.getenv("SCRAPER_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
