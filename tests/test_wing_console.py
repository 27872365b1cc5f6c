"""
Tests for console URL builders and the page primitives that turn missing
sections into errors or empty results.
"""

from unittest.mock import AsyncMock, MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from browser.wing_console import (
    EXPOSURE_NON_CONFORMING,
    SORT_BY_REGISTRATION,
    WingConsole,
    inventory_url,
    price_comparison_url,
)
from core.errors import SectionNotFoundError


@pytest.fixture
def page():
    page = MagicMock()
    for name in ("goto", "evaluate", "evaluate_handle", "wait_for_selector", "query_selector_all",
                 "query_selector", "reload", "wait_for_load_state"):
        setattr(page, name, AsyncMock())
    return page


@pytest.fixture
def wing(page):
    return WingConsole(page, "https://wing.example/", ui_settle=0)


class TestUrls:

    def test_inventory_url_carries_every_filter(self):
        url = inventory_url("https://wing.example", 3, EXPOSURE_NON_CONFORMING, SORT_BY_REGISTRATION)
        parsed = urlparse(url)
        query = parse_qs(parsed.query, keep_blank_values=True)

        assert parsed.path == "/vendor-inventory/list"
        assert query["page"] == ["3"]
        assert query["countPerPage"] == ["50"]
        assert query["exposureStatus"] == [EXPOSURE_NON_CONFORMING]
        assert query["sortMethod"] == [SORT_BY_REGISTRATION]
        assert query["listingStartTime"] == ["null"]

    def test_price_comparison_url(self):
        url = price_comparison_url("https://wing.example", "WIN_NOT_SUPPRESSED", 2)
        assert "itemWinnerStatus=WIN_NOT_SUPPRESSED" in url
        assert "&page=2&pageSize=100" in url


class TestWingConsole:

    @pytest.mark.asyncio
    async def test_missing_submit_button(self, wing, page):
        page.evaluate.return_value = False
        with pytest.raises(SectionNotFoundError):
            await wing.submit_confirmation()

    @pytest.mark.asyncio
    async def test_missing_processing_tab(self, wing, page):
        page.evaluate.return_value = False
        with pytest.raises(SectionNotFoundError):
            await wing.open_processing_tab()

    @pytest.mark.asyncio
    async def test_no_paid_orders_is_empty_list(self, wing, page):
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("timeout")
        page.query_selector_all.return_value = []

        assert await wing.find_payment_complete_checkboxes(timeout_ms=10) == []

    @pytest.mark.asyncio
    async def test_apply_button_timeout(self, wing, page):
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("timeout")
        with pytest.raises(SectionNotFoundError):
            await wing.apply_row_changes(timeout_ms=10)

    @pytest.mark.asyncio
    async def test_no_next_page(self, wing, page):
        page.query_selector.return_value = None
        assert await wing.go_to_table_page(2) is False

    @pytest.mark.asyncio
    async def test_row_not_found(self, wing, page):
        handle = MagicMock()
        handle.as_element.return_value = None
        page.evaluate_handle.return_value = handle

        assert await wing.find_row_matching("Kim", "123") is None

    @pytest.mark.asyncio
    async def test_inventory_navigation(self, wing, page):
        await wing.open_inventory_page(1, wait_until="networkidle")

        url = page.goto.await_args.args[0]
        assert url.startswith("https://wing.example/vendor-inventory/list?")
        assert page.goto.await_args.kwargs["wait_until"] == "networkidle"
