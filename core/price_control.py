"""
Price control batch.

Applies the pending price changes stored for a job, then (in the background)
writes a CSV report with pandas and tells the mail channel about it.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, Set

import pandas as pd

from core.api_client import MarketplaceApiClient
from core.errors import StoreSyncError
from core.models import BatchSummary, JobContext, PriceUpdateItem, WorkflowResult
from core.progress import log_progress

logger = logging.getLogger(__name__)

REPORT_COLUMNS = {
    "vendor_item_id": "Vendor Item ID",
    "product_name": "Product Name",
    "winner_price": "Winner Price",
    "current_price": "Current Price",
    "seller_price": "Seller Price",
    "new_price": "New Price",
}


def build_report_frame(items: List[PriceUpdateItem]) -> pd.DataFrame:
    rows = [{label: getattr(item, attr) for attr, label in REPORT_COLUMNS.items()} for item in items]
    return pd.DataFrame(rows, columns=list(REPORT_COLUMNS.values()))


class PriceControl:
    """
    Args:
        api: Marketplace API client
        update_items: Store with ``async find_by_job_id(job_id) -> List[PriceUpdateItem]``
        notifier: Anything with ``async emit(channel, event, payload)``
        report_dir: Directory for ``coupang_<jobId>.csv`` reports
        item_delay: Pause after each successful update (seconds)
    """

    def __init__(
        self,
        api: MarketplaceApiClient,
        update_items,
        notifier=None,
        report_dir: str = "reports",
        store: str = "",
        item_delay: float = 0.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.update_items = update_items
        self.notifier = notifier
        self.report_dir = Path(report_dir)
        self.store = store
        self.item_delay = item_delay
        self._sleep = sleep
        self._background: Set[asyncio.Task] = set()

    async def run(self, job: JobContext) -> BatchSummary:
        """Apply every pending price change for ``job``; no-op when there are none."""
        logger.info(f"{job.tag} Price update started")
        summary = BatchSummary()

        items: List[PriceUpdateItem] = await self.update_items.find_by_job_id(job.job_id)
        if not items:
            logger.info(f"{job.tag} No pending price updates")
            return summary

        logger.info(f"{job.tag} Updating {len(items)} items")
        for index, item in enumerate(items):
            log_progress(logger, job, "Updating prices", index, len(items))
            try:
                await self.api.update_price(job, item.vendor_item_id, item.new_price)
            except StoreSyncError as e:
                logger.error(f"{job.tag} Price update failed for {item.vendor_item_id}: {e}")
                summary.record(WorkflowResult.failed(str(e), data=item.to_dict()))
                continue
            summary.record(WorkflowResult.success(item.to_dict()))
            await self._sleep(self.item_delay)

        self._spawn_report(job, items, summary)
        logger.info(
            f"{job.tag} Price update finished: {summary.success_count} ok, {summary.failed_count} failed"
        )
        return summary

    def _spawn_report(self, job: JobContext, items: List[PriceUpdateItem], summary: BatchSummary):
        task = asyncio.create_task(self._report(job, items, summary))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_reports(self):
        """Wait for background report tasks (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _report(self, job: JobContext, items: List[PriceUpdateItem], summary: BatchSummary) -> Optional[Path]:
        try:
            path = await asyncio.to_thread(self._write_report, job.job_id, items)
            logger.info(f"{job.tag} Report written: {path}")
            if self.notifier is not None:
                await self.notifier.emit(
                    "mail-queue",
                    "sendUpdateEmail",
                    {
                        "filePath": str(path),
                        "successCount": summary.success_count,
                        "failedCount": summary.failed_count,
                        "store": self.store,
                        "smartStore": "coupang",
                    },
                )
            return path
        except Exception as e:
            logger.error(f"{job.tag} Report/notification failed: {e}")
            return None

    def _write_report(self, job_id: str, items: List[PriceUpdateItem]) -> Path:
        self.report_dir.mkdir(parents=True, exist_ok=True)
        path = self.report_dir / f"coupang_{job_id}.csv"
        build_report_frame(items).to_csv(path, index=False, encoding="utf-8-sig")
        return path
