"""
Tests for the inventory detail crawl and its row parsing.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from browser.wing_console import EXPOSURE_ALL, SORT_BY_UNITS_SOLD
from core.errors import StepFailed
from workflows.detail_crawl import CrawlState, DetailCrawl, parse_inventory_row, product_code_from_title


def _row(product_id, title="A100 Blue Widget", winner="Item winner", price="12,900원", shipping="무료배송"):
    return {
        "idText": f"등록상품ID {product_id}",
        "titleText": title,
        "winnerText": winner,
        "priceText": price,
        "shippingText": shipping,
    }


class TestParseInventoryRow:

    def test_full_row(self):
        record = parse_inventory_row(_row(123, shipping="배송비 3,000원"))
        assert record.seller_product_id == "123"
        assert record.product_code == "A100"
        assert record.is_winner is True
        assert record.price == 12900
        assert record.shipping_cost == 3000

    def test_free_shipping_is_zero(self):
        assert parse_inventory_row(_row(1, shipping="무료배송")).shipping_cost == 0

    def test_missing_fields(self):
        record = parse_inventory_row({"idText": None, "titleText": "", "winnerText": None,
                                      "priceText": None, "shippingText": None})
        assert record.seller_product_id is None
        assert record.product_code is None
        assert record.is_winner is False
        assert record.price is None
        assert record.shipping_cost == 0

    def test_not_winner(self):
        assert parse_inventory_row(_row(1, winner="Not winner")).is_winner is False

    def test_product_code_from_title(self):
        assert product_code_from_title("  B200 Red Widget ") == "B200"
        assert product_code_from_title(None) is None


@pytest.fixture
def details():
    store = MagicMock()
    store.save_many = AsyncMock()
    return store


@pytest.fixture
def workflow(workflow_kwargs, details):
    return DetailCrawl(**workflow_kwargs, details=details, settle_seconds=3.0)


class TestDetailCrawl:

    @pytest.mark.asyncio
    async def test_persists_each_page_until_empty(self, workflow, console, details, mock_browser, job):
        console.extract_inventory_rows.side_effect = [
            [_row(1), _row(2)],
            [_row(3)],
            [],
        ]

        result = await workflow.run(job)

        assert result.ok
        assert result.data == {"pages": 2, "records": 3}
        assert details.save_many.await_count == 2
        first_batch = details.save_many.await_args_list[0]
        assert [r.seller_product_id for r in first_batch.args[0]] == ["1", "2"]
        assert first_batch.kwargs["job_id"] == "job-1"
        assert [c.args[:3] for c in console.open_inventory_page.await_args_list] == [
            (1, EXPOSURE_ALL, SORT_BY_UNITS_SOLD),
            (2, EXPOSURE_ALL, SORT_BY_UNITS_SOLD),
            (3, EXPOSURE_ALL, SORT_BY_UNITS_SOLD),
        ]
        mock_browser.contexts[0].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_settles_after_navigation_and_scroll(self, workflow, console, no_sleep, job):
        console.extract_inventory_rows.side_effect = [[]]

        await workflow.run(job)

        assert [c.args[0] for c in no_sleep.await_args_list] == [3.0, 3.0]
        console.scroll_full_height.assert_awaited_once_with(100, 100)
        assert workflow.last_history == [
            CrawlState.NAVIGATE, CrawlState.SETTLE, CrawlState.SCROLL,
            CrawlState.RENDER, CrawlState.EXTRACT, CrawlState.DONE,
        ]

    @pytest.mark.asyncio
    async def test_earlier_pages_stay_saved_when_later_page_fails(self, workflow, console, details, job):
        console.open_inventory_page.side_effect = [None, TimeoutError("navigation timeout")]
        console.extract_inventory_rows.side_effect = [[_row(1)]]

        with pytest.raises(StepFailed) as exc_info:
            await workflow.run(job)

        assert exc_info.value.state == CrawlState.NAVIGATE.value
        details.save_many.assert_awaited_once()
