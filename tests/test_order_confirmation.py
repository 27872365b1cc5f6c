"""
Tests for the order confirmation workflow.
"""

import pytest

from core.errors import StepFailed
from workflows.order_confirmation import OrderConfirmation, OrderState


@pytest.fixture
def workflow(workflow_kwargs):
    return OrderConfirmation(**workflow_kwargs)


class TestOrderConfirmation:

    @pytest.mark.asyncio
    async def test_confirms_every_paid_order(self, workflow, console, mock_browser, job):
        boxes = ["box-1", "box-2", "box-3"]
        console.find_payment_complete_checkboxes.return_value = boxes

        result = await workflow.run(job)

        assert result.ok
        assert result.data == {"confirmed": 3}
        assert [c.args[0] for c in console.force_select.await_args_list] == boxes
        console.choose_courier.assert_awaited_once_with("CJGLS")
        console.fill_justification.assert_awaited_once_with("상품을 준비합니다")
        console.submit_confirmation.assert_awaited_once()
        assert workflow.last_history == [
            OrderState.NAVIGATE, OrderState.SELECT_ROWS, OrderState.CONFIRM,
            OrderState.FILL_FORM, OrderState.SUBMIT, OrderState.DONE,
        ]
        mock_browser.contexts[0].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nothing_to_confirm_is_success(self, workflow, console, mock_browser, job):
        console.find_payment_complete_checkboxes.return_value = []

        result = await workflow.run(job)

        assert result.ok
        assert result.data == {"message": "nothing to confirm", "confirmed": 0}
        console.confirm_orders.assert_not_awaited()
        mock_browser.contexts[0].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_step_failure_names_state_and_releases(self, workflow, console, mock_browser, job):
        console.find_payment_complete_checkboxes.return_value = ["box-1"]
        console.confirm_orders.side_effect = RuntimeError("button gone")

        with pytest.raises(StepFailed) as exc_info:
            await workflow.run(job)

        assert exc_info.value.state == OrderState.CONFIRM.value
        assert exc_info.value.workflow == "order-confirmation"
        mock_browser.contexts[0].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_session_scoped_to_store_and_job(self, workflow, sessions, console_factory, job):
        await workflow.run(job)
        console_factory.assert_called_once()
        assert console_factory.call_args.args[1] == "https://wing.example"
        assert sessions.get_stats()["active_sessions"] == 0
