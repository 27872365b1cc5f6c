"""
Resilience Tests - Session Release Under Failure

Whatever step of a console workflow fails, its browser context is closed
exactly once and the session manager holds no session for the job afterwards.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from browser.session_manager import BrowserSessionManager, SessionKey
from core.errors import SectionNotFoundError, SessionAcquisitionError, StepFailed
from workflows.detail_crawl import DetailCrawl
from workflows.invoice_upload import InvoiceUpload
from workflows.non_conforming_purge import NonConformingPurge
from workflows.order_confirmation import OrderConfirmation
from workflows.price_comparison_crawl import PriceComparisonCrawl


def _assert_released_once(mock_browser, sessions, job):
    assert len(mock_browser.contexts) == 1
    mock_browser.contexts[0].close.assert_awaited_once()
    assert not sessions.is_active(SessionKey("store-a", job.job_id))


@pytest.mark.resilience
class TestOrderConfirmationFaults:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", [
        "open_delivery_management",
        "find_payment_complete_checkboxes",
        "force_select",
        "confirm_orders",
        "choose_courier",
        "fill_justification",
        "submit_confirmation",
    ])
    async def test_release_once_whatever_step_fails(self, step, workflow_kwargs, console, sessions, mock_browser, job):
        console.find_payment_complete_checkboxes.return_value = ["box-1"]
        getattr(console, step).side_effect = RuntimeError(f"{step} broke")

        with pytest.raises(StepFailed):
            await OrderConfirmation(**workflow_kwargs).run(job)

        _assert_released_once(mock_browser, sessions, job)


@pytest.mark.resilience
class TestInvoiceUploadFaults:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", ["open_delivery_management", "open_processing_tab"])
    async def test_table_unreachable(self, step, workflow_kwargs, console, sessions, mock_browser, job):
        getattr(console, step).side_effect = SectionNotFoundError(step)

        with pytest.raises(SectionNotFoundError):
            await InvoiceUpload(**workflow_kwargs).run(job, [{"orderId": "o-1"}])

        _assert_released_once(mock_browser, sessions, job)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", [
        "select_row_checkbox",
        "choose_row_option",
        "fill_row_tracking_number",
        "apply_row_changes",
        "reload_table",
    ])
    async def test_row_step_failure(self, step, workflow_kwargs, console, sessions, mock_browser, job):
        console.find_row_matching.return_value = "row"
        getattr(console, step).side_effect = RuntimeError(f"{step} broke")

        results = await InvoiceUpload(**workflow_kwargs).run(job, [{"orderId": "o-1"}, {"orderId": "o-2"}])

        assert len(results) == 2
        _assert_released_once(mock_browser, sessions, job)


@pytest.mark.resilience
class TestCrawlFaults:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", [
        "open_inventory_page",
        "scroll_full_height",
        "extract_inventory_rows",
    ])
    async def test_detail_crawl(self, step, workflow_kwargs, console, sessions, mock_browser, job):
        getattr(console, step).side_effect = RuntimeError(f"{step} broke")
        details = MagicMock(save_many=AsyncMock())

        with pytest.raises(StepFailed):
            await DetailCrawl(**workflow_kwargs, details=details).run(job)

        _assert_released_once(mock_browser, sessions, job)

    @pytest.mark.asyncio
    async def test_detail_crawl_persist_failure(self, workflow_kwargs, console, sessions, mock_browser, job):
        console.extract_inventory_rows.return_value = [{"idText": "1", "titleText": "A100"}]
        details = MagicMock(save_many=AsyncMock(side_effect=OSError("disk full")))

        with pytest.raises(StepFailed):
            await DetailCrawl(**workflow_kwargs, details=details).run(job)

        _assert_released_once(mock_browser, sessions, job)

    @pytest.mark.asyncio
    async def test_price_comparison(self, workflow_kwargs, console, sessions, mock_browser, job):
        console.capture_price_comparison_page.side_effect = TimeoutError("no response")
        comparisons = MagicMock(save_many=AsyncMock())

        with pytest.raises(StepFailed):
            await PriceComparisonCrawl(**workflow_kwargs, comparisons=comparisons).run(job)

        _assert_released_once(mock_browser, sessions, job)


@pytest.mark.resilience
class TestPurgeFaults:

    def _workflow(self, workflow_kwargs, api=None, products=None):
        api = api or MagicMock(list_products=AsyncMock(return_value=[]))
        products = products or MagicMock()
        return NonConformingPurge(**workflow_kwargs, api=api, products=products)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("step", ["open_inventory_page", "wait_for_inventory_rows", "extract_inventory_rows"])
    async def test_console_step_failure(self, step, workflow_kwargs, console, sessions, mock_browser, job):
        getattr(console, step).side_effect = RuntimeError(f"{step} broke")

        with pytest.raises(StepFailed):
            await self._workflow(workflow_kwargs).run(job)

        _assert_released_once(mock_browser, sessions, job)

    @pytest.mark.asyncio
    async def test_api_failure_after_release(self, workflow_kwargs, console, sessions, mock_browser, job):
        console.extract_inventory_rows.return_value = [{"titleText": "A100 Widget"}]
        api = MagicMock(list_products=AsyncMock(side_effect=RuntimeError("gateway down")))

        with pytest.raises(StepFailed):
            await self._workflow(workflow_kwargs, api=api).run(job)

        _assert_released_once(mock_browser, sessions, job)


@pytest.mark.resilience
class TestLoginFaults:

    @pytest.mark.asyncio
    async def test_login_failure_is_terminal_and_cleaned_up(self, workflow_kwargs, mock_browser, job):
        sessions = BrowserSessionManager(
            "https://wing.example/login", "seller", "wrong",
            browser=mock_browser,
            authenticate=AsyncMock(side_effect=TimeoutError("still on login page")),
        )
        workflow_kwargs["sessions"] = sessions

        with pytest.raises(SessionAcquisitionError):
            await OrderConfirmation(**workflow_kwargs).run(job)

        _assert_released_once(mock_browser, sessions, job)
