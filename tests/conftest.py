"""
Pytest fixtures and configuration for the Storefront Sync test suite.
"""

import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Keep log files out of the working tree; read once when logging is configured.
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="storefront-sync-logs-"))


# === Job / signing fixtures ===

@pytest.fixture
def job():
    from core.models import JobContext
    return JobContext(job_id="job-1", job_type="ORDER")


@pytest.fixture
def fixed_clock():
    """Clock pinned to 2024-05-01T12:34:56Z."""
    return lambda: datetime(2024, 5, 1, 12, 34, 56, tzinfo=timezone.utc)


@pytest.fixture
def signer(fixed_clock):
    from core.signer import RequestSigner
    return RequestSigner("access-key", "secret-key", "A0001", clock=fixed_clock)


@pytest.fixture
def no_sleep():
    """Recording replacement for asyncio.sleep."""
    return AsyncMock()


# === Browser fixtures ===

@pytest.fixture
def mock_browser():
    """
    Playwright browser double.

    Every ``new_context`` returns a fresh context whose ``close`` is an
    AsyncMock; contexts are collected on ``browser.contexts`` for assertions.
    """
    browser = MagicMock()
    browser.contexts = []

    async def new_context(*args, **kwargs):
        page = MagicMock()
        page.set_default_timeout = MagicMock()
        context = MagicMock()
        context.new_page = AsyncMock(return_value=page)
        context.close = AsyncMock()
        browser.contexts.append(context)
        return context

    browser.new_context = AsyncMock(side_effect=new_context)
    browser.close = AsyncMock()
    return browser


@pytest.fixture
def sessions(mock_browser):
    """Real session manager over the browser double, login stubbed out."""
    from browser.session_manager import BrowserSessionManager
    return BrowserSessionManager(
        login_url="https://wing.example/login",
        username="seller",
        password="secret",
        base_url="https://wing.example",
        browser=mock_browser,
        authenticate=AsyncMock(),
    )


@pytest.fixture
def console():
    """Console wrapper double; every page action is an AsyncMock."""
    console = AsyncMock()
    console.find_payment_complete_checkboxes.return_value = []
    console.find_row_matching.return_value = None
    console.go_to_table_page.return_value = False
    console.choose_row_option.return_value = True
    console.fill_row_tracking_number.return_value = True
    console.extract_inventory_rows.return_value = []
    console.wait_for_inventory_rows.return_value = True
    return console


@pytest.fixture
def console_factory(console):
    return MagicMock(return_value=console)


@pytest.fixture
def workflow_kwargs(sessions, console_factory, no_sleep):
    return dict(
        sessions=sessions,
        store="store-a",
        base_url="https://wing.example",
        console_factory=console_factory,
        sleep=no_sleep,
    )


# === Persistence fixtures ===

@pytest_asyncio.fixture
async def db_path(tmp_path):
    from api.database import init_database
    path = tmp_path / "storefront_sync.db"
    await init_database(path)
    return path


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "resilience: Fault-injection tests")
    config.addinivalue_line("markers", "integration: Tests touching SQLite or the filesystem")
