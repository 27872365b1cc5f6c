"""
Unified Configuration Module for Storefront Sync

All configuration settings are centralized here.
Import from this module: from api.config import config
"""

import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

# Defaults below read the environment at import time, so .env must load first.
load_dotenv()


@dataclass
class AppConfig:
    """Unified application configuration."""

    # === Server Settings ===
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8080"))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # === Store ===
    STORE: str = os.getenv("STORE", "default")

    # === Marketplace API ===
    COUPANG_ACCESS_KEY: Optional[str] = os.getenv("COUPANG_ACCESS_KEY")
    COUPANG_SECRET_KEY: Optional[str] = os.getenv("COUPANG_SECRET_KEY")
    COUPANG_VENDOR_ID: Optional[str] = os.getenv("COUPANG_VENDOR_ID")
    API_BASE_URL: str = os.getenv("API_BASE_URL", "https://api-gateway.coupang.com")
    API_TIMEOUT_SECONDS: float = float(os.getenv("API_TIMEOUT_SECONDS", "90"))

    # Pagination retry bound and pacing
    API_MAX_ATTEMPTS: int = int(os.getenv("API_MAX_ATTEMPTS", "3"))
    API_RETRY_DELAY_SECONDS: float = float(os.getenv("API_RETRY_DELAY_SECONDS", "2.0"))
    API_PAGE_THROTTLE_SECONDS: float = float(os.getenv("API_PAGE_THROTTLE_SECONDS", "1.0"))

    # === Seller Console (Wing) ===
    WING_USERNAME: Optional[str] = os.getenv("WING_USERNAME")
    WING_PASSWORD: Optional[str] = os.getenv("WING_PASSWORD")
    WING_BASE_URL: str = os.getenv("WING_BASE_URL", "https://wing.coupang.com")
    WING_LOGIN_URL: str = os.getenv("WING_LOGIN_URL", "https://wing.coupang.com/login")
    BROWSER_HEADLESS: bool = os.getenv("BROWSER_HEADLESS", "true").lower() == "true"
    BROWSER_TIMEOUT_MS: int = int(os.getenv("BROWSER_TIMEOUT_MS", "60000"))

    # UI-settle waits
    UI_SETTLE_SECONDS: float = float(os.getenv("UI_SETTLE_SECONDS", "1.0"))
    CRAWL_SETTLE_SECONDS: float = float(os.getenv("CRAWL_SETTLE_SECONDS", "3.0"))
    CRAWL_SCROLL_STEP: int = int(os.getenv("CRAWL_SCROLL_STEP", "100"))
    CRAWL_SCROLL_DELAY_MS: int = int(os.getenv("CRAWL_SCROLL_DELAY_MS", "100"))
    COMPARISON_PAGE_DELAY_SECONDS: float = float(os.getenv("COMPARISON_PAGE_DELAY_SECONDS", "1.0"))
    PURGE_ROWS_TIMEOUT_MS: int = int(os.getenv("PURGE_ROWS_TIMEOUT_MS", "6000"))

    # === Batch pacing ===
    PRICE_UPDATE_DELAY_SECONDS: float = float(os.getenv("PRICE_UPDATE_DELAY_SECONDS", "0.1"))
    SHIPPING_UPDATE_DELAY_SECONDS: float = float(os.getenv("SHIPPING_UPDATE_DELAY_SECONDS", "0.3"))
    PRODUCT_ACTION_DELAY_SECONDS: float = float(os.getenv("PRODUCT_ACTION_DELAY_SECONDS", "0.5"))
    RETURN_CHARGE: int = int(os.getenv("RETURN_CHARGE", "5000"))

    # === Notifications ===
    NOTIFY_WEBHOOK_URL: str = os.getenv("NOTIFY_WEBHOOK_URL", "")

    # === Paths ===
    DATABASE_PATH: str = os.getenv("DATABASE_PATH", "./data/storefront_sync.db")
    REPORT_DIR: str = os.getenv("REPORT_DIR", "./reports")
    LOG_DIR: str = os.getenv("LOG_DIR", "./logs")

    def validate(self) -> List[str]:
        """Validate configuration and return list of missing required settings."""
        missing = []

        for name in ("COUPANG_ACCESS_KEY", "COUPANG_SECRET_KEY", "COUPANG_VENDOR_ID"):
            if not getattr(self, name):
                missing.append(name)

        if not self.WING_USERNAME:
            missing.append("WING_USERNAME")
        if not self.WING_PASSWORD:
            missing.append("WING_PASSWORD")

        return missing


# Global config instance
config = AppConfig()


def get_config() -> AppConfig:
    """Get the application configuration."""
    return config
