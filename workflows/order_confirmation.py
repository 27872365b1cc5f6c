"""
Order confirmation: move every paid order to "preparing" in the console.
"""

import logging
from enum import Enum
from typing import List

from core.models import JobContext, WorkflowResult
from workflows.base import ConsoleWorkflow

logger = logging.getLogger(__name__)

DEFAULT_COURIER_CODE = "CJGLS"
DEFAULT_JUSTIFICATION = "상품을 준비합니다"


class OrderState(str, Enum):
    NAVIGATE = "NAVIGATE"
    SELECT_ROWS = "SELECT_ROWS"
    CONFIRM = "CONFIRM"
    FILL_FORM = "FILL_FORM"
    SUBMIT = "SUBMIT"
    DONE = "DONE"
    NOTHING_TO_CONFIRM = "NOTHING_TO_CONFIRM"


class OrderConfirmation(ConsoleWorkflow):
    """
    No retries; a failing step raises ``StepFailed`` after the session is
    released.
    """

    name = "order-confirmation"

    def __init__(
        self,
        *args,
        courier_code: str = DEFAULT_COURIER_CODE,
        justification: str = DEFAULT_JUSTIFICATION,
        checkbox_timeout_ms: int = 10000,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.courier_code = courier_code
        self.justification = justification
        self.checkbox_timeout_ms = checkbox_timeout_ms

    async def run(self, job: JobContext) -> WorkflowResult:
        logger.info(f"{job.tag} Order confirmation started")

        async with self.sessions.session(self.session_key(job)) as page:
            console = self.console(page)
            checkboxes: List = []

            async def navigate():
                await console.open_delivery_management()
                return OrderState.SELECT_ROWS

            async def select_rows():
                checkboxes.extend(await console.find_payment_complete_checkboxes(self.checkbox_timeout_ms))
                if not checkboxes:
                    return OrderState.NOTHING_TO_CONFIRM
                for checkbox in checkboxes:
                    await console.force_select(checkbox)
                return OrderState.CONFIRM

            async def confirm():
                await console.confirm_orders()
                return OrderState.FILL_FORM

            async def fill_form():
                await console.choose_courier(self.courier_code)
                await console.fill_justification(self.justification)
                return OrderState.SUBMIT

            async def submit():
                await console.submit_confirmation()
                return OrderState.DONE

            machine = self.machine(
                {
                    OrderState.NAVIGATE: navigate,
                    OrderState.SELECT_ROWS: select_rows,
                    OrderState.CONFIRM: confirm,
                    OrderState.FILL_FORM: fill_form,
                    OrderState.SUBMIT: submit,
                },
                terminal=(OrderState.DONE, OrderState.NOTHING_TO_CONFIRM),
                job=job,
            )
            final = await machine.run(OrderState.NAVIGATE)

        if final == OrderState.NOTHING_TO_CONFIRM:
            logger.warning(f"{job.tag} No paid orders to confirm")
            return WorkflowResult.success({"message": "nothing to confirm", "confirmed": 0})

        logger.info(f"{job.tag} Confirmed {len(checkboxes)} orders")
        return WorkflowResult.success({"confirmed": len(checkboxes)})
