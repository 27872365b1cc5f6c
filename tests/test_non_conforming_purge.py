"""
Tests for the non-conforming listing purge.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from browser.wing_console import EXPOSURE_NON_CONFORMING
from core.models import BatchSummary, MarketplaceProduct, WorkflowResult
from workflows.non_conforming_purge import NonConformingPurge, PurgeState, find_matching_products


def _product(product_id, name):
    return MarketplaceProduct(seller_product_id=product_id, seller_product_name=name)


def _summary(count):
    summary = BatchSummary()
    for _ in range(count):
        summary.record(WorkflowResult.success({}))
    return summary


class TestFindMatchingProducts:

    def test_substring_match(self):
        products = [_product(1, "A100-Blue Widget"), _product(2, "C300-Red Widget")]
        matched = find_matching_products(["A100", "B200"], products)
        assert [p.seller_product_id for p in matched] == [1]

    def test_case_sensitive(self):
        assert find_matching_products(["a100"], [_product(1, "A100-Blue Widget")]) == []

    def test_empty_codes_match_nothing(self):
        assert find_matching_products(["", None], [_product(1, "A100")]) == []


@pytest.fixture
def api():
    client = MagicMock()
    client.list_products = AsyncMock(return_value=[
        _product(1, "A100-Blue Widget"),
        _product(2, "C300-Red Widget"),
        _product(3, "Gift set B200"),
    ])
    return client


@pytest.fixture
def products():
    service = MagicMock()
    service.stop_sale_products = AsyncMock(side_effect=lambda job, items: _summary(len(items)))
    service.delete_products = AsyncMock(side_effect=lambda job, items: _summary(len(items)))
    return service


@pytest.fixture
def workflow(workflow_kwargs, api, products):
    return NonConformingPurge(**workflow_kwargs, api=api, products=products)


class TestNonConformingPurge:

    @pytest.mark.asyncio
    async def test_stops_then_deletes_matched_products(self, workflow, console, api, products, mock_browser, job):
        console.extract_inventory_rows.return_value = [
            {"titleText": "A100 Blue Widget"},
            {"titleText": "B200 Gift set"},
        ]

        result = await workflow.run(job)

        assert result.ok
        assert result.data["codes"] == ["A100", "B200"]
        assert [p["sellerProductId"] for p in result.data["matchedProducts"]] == [1, 3]
        assert result.data["stopSale"]["total"] == 2
        assert result.data["delete"]["successCount"] == 2

        # API work happens under the CONFORM job type, after the browser is released
        assert api.list_products.await_args.args[0].job_type == "CONFORM"
        mock_browser.contexts[0].close.assert_awaited_once()
        assert workflow.last_history.index(PurgeState.RELEASE) < workflow.last_history.index(PurgeState.LIST_PRODUCTS)
        assert console.open_inventory_page.await_args.args[1] == EXPOSURE_NON_CONFORMING

        stop_order = products.stop_sale_products.await_args.args[1]
        delete_order = products.delete_products.await_args.args[1]
        assert stop_order == delete_order

    @pytest.mark.asyncio
    async def test_no_rows_means_no_codes(self, workflow, console, api, mock_browser, job):
        console.wait_for_inventory_rows.return_value = False

        result = await workflow.run(job)

        assert result.ok
        assert result.data == {"matchedProducts": [], "message": "no non-conforming products"}
        api.list_products.assert_not_awaited()
        mock_browser.contexts[0].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nothing_matched_skips_mutations(self, workflow, console, products, job):
        console.extract_inventory_rows.return_value = [{"titleText": "Z999 Unknown"}]

        result = await workflow.run(job)

        assert result.data["matchedProducts"] == []
        assert workflow.last_history[-1] == PurgeState.NOTHING_MATCHED
        products.stop_sale_products.assert_not_awaited()
        products.delete_products.assert_not_awaited()
