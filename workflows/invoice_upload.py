"""
Invoice upload through the console's "processing" table.

Orders are handled one after another. Each order runs its own small state
machine; whatever happens to one order, the next one still runs and the
result list always has one entry per input order.
"""

import logging
from enum import Enum
from typing import Any, Iterable, List, Mapping, Union

from browser.wing_console import WingConsole
from core.errors import StepFailed
from core.models import InvoiceOrder, JobContext, WorkflowResult
from workflows.base import ConsoleWorkflow

logger = logging.getLogger(__name__)

NOT_FOUND = "not found"


class InvoiceState(str, Enum):
    SEARCH = "SEARCH"
    NEXT_PAGE = "NEXT_PAGE"
    SELECT = "SELECT"
    SET_COURIER = "SET_COURIER"
    SET_TRACKING = "SET_TRACKING"
    APPLY = "APPLY"
    RELOAD = "RELOAD"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class InvoiceUpload(ConsoleWorkflow):
    name = "invoice-upload"

    async def run(
        self,
        job: JobContext,
        orders: Iterable[Union[InvoiceOrder, Mapping[str, Any]]],
    ) -> List[WorkflowResult]:
        orders = [o if isinstance(o, InvoiceOrder) else InvoiceOrder.from_dict(o) for o in orders]
        logger.info(f"{job.tag} Invoice upload started for {len(orders)} orders")
        results: List[WorkflowResult] = []

        async with self.sessions.session(self.session_key(job)) as page:
            console = self.console(page)
            # Failing to reach the table is terminal for the whole job.
            await console.open_delivery_management()
            await console.open_processing_tab()

            table = _TableCursor()
            for order in orders:
                results.append(await self._process_order(job, console, table, order))

        ok = sum(1 for r in results if r.ok)
        logger.info(f"{job.tag} Invoice upload finished: {ok}/{len(results)} uploaded")
        return results

    async def _process_order(
        self,
        job: JobContext,
        console: WingConsole,
        table: "_TableCursor",
        order: InvoiceOrder,
    ) -> WorkflowResult:
        name = order.receiver.name
        safe_number = order.receiver.safe_number
        matched = {}

        async def search():
            row = await console.find_row_matching(name, safe_number)
            if row is None:
                return InvoiceState.NEXT_PAGE
            logger.info(f"{job.tag} Matched row for {name} {safe_number} on page {table.page_index}")
            matched["row"] = row
            return InvoiceState.SELECT

        async def next_page():
            if await console.go_to_table_page(table.page_index + 1):
                table.page_index += 1
                return InvoiceState.SEARCH
            logger.info(f"{job.tag} No more pages, order not found: {name} {safe_number}")
            return InvoiceState.FAILED

        async def select():
            await console.select_row_checkbox(matched["row"])
            return InvoiceState.SET_COURIER

        async def set_courier():
            if not await console.choose_row_option(matched["row"], order.courier.name):
                logger.warning(f"{job.tag} Courier option not found: {order.courier.name}")
            return InvoiceState.SET_TRACKING

        async def set_tracking():
            await console.fill_row_tracking_number(matched["row"], order.courier.tracking_number)
            return InvoiceState.APPLY

        async def apply():
            await console.apply_row_changes()
            return InvoiceState.RELOAD

        async def reload():
            await console.reload_table()
            await console.open_processing_tab()
            table.page_index = 1
            return InvoiceState.SUCCESS

        machine = self.machine(
            {
                InvoiceState.SEARCH: search,
                InvoiceState.NEXT_PAGE: next_page,
                InvoiceState.SELECT: select,
                InvoiceState.SET_COURIER: set_courier,
                InvoiceState.SET_TRACKING: set_tracking,
                InvoiceState.APPLY: apply,
                InvoiceState.RELOAD: reload,
            },
            terminal=(InvoiceState.SUCCESS, InvoiceState.FAILED),
            job=job,
        )

        try:
            if table.page_index != 1:
                # A previous search paged away; the processing tab starts at page 1.
                await console.open_processing_tab()
                table.page_index = 1
            final = await machine.run(InvoiceState.SEARCH)
        except StepFailed as e:
            return WorkflowResult.failed(str(e.cause) or e.state, data=order.result_fields())
        except Exception as e:
            logger.error(f"{job.tag} Could not reset table for order {order.order_id}: {e}")
            return WorkflowResult.failed(str(e), data=order.result_fields())

        if final == InvoiceState.SUCCESS:
            return WorkflowResult.success(order.result_fields())
        return WorkflowResult.failed(NOT_FOUND, data=order.result_fields())


class _TableCursor:
    """Current page of the processing table within one session."""

    def __init__(self, page_index: int = 1):
        self.page_index = page_index
