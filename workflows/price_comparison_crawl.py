"""
Price comparison crawl.

For winning and losing listings in turn, pages through the seller price
management view and stores the product-list JSON each page loads.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Sequence

from core.models import JobContext, PriceComparisonRecord, WorkflowResult
from workflows.base import ConsoleWorkflow

logger = logging.getLogger(__name__)

WIN_NOT_SUPPRESSED = "WIN_NOT_SUPPRESSED"
LOSE_NOT_SUPPRESSED = "LOSE_NOT_SUPPRESSED"
WINNER_STATUSES = (WIN_NOT_SUPPRESSED, LOSE_NOT_SUPPRESSED)


class ComparisonState(str, Enum):
    FETCH = "FETCH"
    PERSIST = "PERSIST"
    WAIT = "WAIT"
    DONE = "DONE"


class PriceComparisonCrawl(ConsoleWorkflow):
    """
    Args:
        comparisons: Store with ``async save_many(records)``
        page_delay: Pause between pages (seconds)
    """

    name = "price-comparison-crawl"

    def __init__(self, *args, comparisons=None, page_delay: float = 1.0, **kwargs):
        super().__init__(*args, **kwargs)
        self.comparisons = comparisons
        self.page_delay = page_delay

    async def run(self, job: JobContext, winner_statuses: Sequence[str] = WINNER_STATUSES) -> WorkflowResult:
        unknown = [status for status in winner_statuses if status not in WINNER_STATUSES]
        if unknown:
            raise ValueError(f"unknown winner status: {', '.join(unknown)}")

        logger.info(f"{job.tag} Price comparison crawl started ({', '.join(winner_statuses)})")
        saved: Dict[str, int] = {}

        async with self.sessions.session(self.session_key(job)) as page:
            console = self.console(page)
            for winner_status in winner_statuses:
                saved[winner_status] = await self._crawl_status(job, console, winner_status)

        logger.info(f"{job.tag} Price comparison crawl finished: {saved}")
        return WorkflowResult.success({"saved": saved, "total": sum(saved.values())})

    async def _crawl_status(self, job: JobContext, console, winner_status: str) -> int:
        page_index = 1
        saved = 0
        current: Dict[str, Any] = {}

        async def fetch():
            current.clear()
            current.update(await console.capture_price_comparison_page(winner_status, page_index) or {})
            return ComparisonState.PERSIST

        async def persist():
            nonlocal saved
            rows: List[Dict[str, Any]] = current.get("result") or []
            total_pages = int(current.get("totalPages") or 0)
            if rows:
                await self.comparisons.save_many(
                    [PriceComparisonRecord.from_dict(row, winner_status) for row in rows]
                )
                saved += len(rows)
            logger.info(f"{job.tag} {winner_status} page {page_index}/{total_pages}: {len(rows)} rows")

            if not rows or total_pages == 0 or page_index >= total_pages:
                return ComparisonState.DONE
            return ComparisonState.WAIT

        async def wait():
            nonlocal page_index
            page_index += 1
            await self.pause(self.page_delay)
            return ComparisonState.FETCH

        machine = self.machine(
            {
                ComparisonState.FETCH: fetch,
                ComparisonState.PERSIST: persist,
                ComparisonState.WAIT: wait,
            },
            terminal=(ComparisonState.DONE,),
            job=job,
        )
        await machine.run(ComparisonState.FETCH)
        return saved
