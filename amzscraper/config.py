#!/usr/bin/env python3
"""
Configuration for the Amazon order scraper

Values come from the environment (optionally from a .env file) and can be
overridden by command line flags in ``__main__``.
"""

import os
import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _env_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ScraperConfig:
    """Runtime settings for one harvest run"""
    invoice_year: int
    download_dir: str
    headless: bool = False
    user_data_dir: str = os.path.abspath("./browser-data")
    base_url: str = "https://www.amazon.de"
    source_name: str = "amazon"
    # Randomized pause between listing pages and between orders.
    # Both set to 0 turns the pause off.
    min_delay_ms: int = 800
    max_delay_ms: int = 2000
    page_load_timeout: float = 30
    list_timeout: float = 30
    field_timeout: float = 0.5

    def __post_init__(self):
        if self.min_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValueError("Delay bounds must not be negative")
        if self.min_delay_ms > self.max_delay_ms:
            raise ValueError(f"AMZSC_MIN_DELAY_MS ({self.min_delay_ms}) is larger than AMZSC_MAX_DELAY_MS ({self.max_delay_ms})")

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ScraperConfig":
        load_dotenv(env_file)
        year = os.getenv("AMZSC_INVOICE_YEAR")
        return cls(
            invoice_year=int(year) if year else datetime.now().year,
            download_dir=os.path.abspath(os.getenv("AMZSC_DOWNLOAD_DIR") or "./downloads"),
            headless=_env_bool(os.getenv("AMZSC_HEADLESS")),
            user_data_dir=os.path.abspath(os.getenv("AMZSC_USER_DATA_DIR") or "./browser-data"),
            base_url=(os.getenv("AMZSC_BASE_URL") or "https://www.amazon.de").rstrip("/"),
            source_name=os.getenv("AMZSC_SOURCE_NAME") or "amazon",
            min_delay_ms=int(os.getenv("AMZSC_MIN_DELAY_MS", "800")),
            max_delay_ms=int(os.getenv("AMZSC_MAX_DELAY_MS", "2000")),
            page_load_timeout=float(os.getenv("AMZSC_PAGE_LOAD_TIMEOUT", "30")),
            list_timeout=float(os.getenv("AMZSC_LIST_TIMEOUT", "30")),
            field_timeout=float(os.getenv("AMZSC_FIELD_TIMEOUT", "0.5")),
        )

    def with_overrides(self, **overrides) -> "ScraperConfig":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if "download_dir" in changes:
            changes["download_dir"] = os.path.abspath(changes["download_dir"])
        if "user_data_dir" in changes:
            changes["user_data_dir"] = os.path.abspath(changes["user_data_dir"])
        return replace(self, **changes)

    def log_summary(self):
        logger.info("📋 Configuration:")
        logger.info(f"   Invoice Year: {self.invoice_year}")
        logger.info(f"   Download Directory: {self.download_dir}")
        logger.info(f"   User Data Directory: {self.user_data_dir}")
        logger.info(f"   Headless Mode: {self.headless}")
        logger.info(f"   Storefront: {self.base_url}")
        logger.info(f"   Delay between requests: {self.min_delay_ms}-{self.max_delay_ms} ms")
