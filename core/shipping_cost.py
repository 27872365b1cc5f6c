"""
Return shipping charge batch.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, Mapping, Union

from core.api_client import MarketplaceApiClient
from core.errors import StoreSyncError
from core.models import BatchSummary, JobContext, ProductDetailRecord, WorkflowResult

logger = logging.getLogger(__name__)

DEFAULT_RETURN_CHARGE = 5000


class ShippingCostControl:
    """Sets the same return charge on every product detail record it is given."""

    def __init__(
        self,
        api: MarketplaceApiClient,
        return_charge: int = DEFAULT_RETURN_CHARGE,
        item_delay: float = 0.3,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.return_charge = return_charge
        self.item_delay = item_delay
        self._sleep = sleep

    async def run(
        self,
        job: JobContext,
        records: Iterable[Union[ProductDetailRecord, Mapping[str, Any]]],
    ) -> BatchSummary:
        records = [r if isinstance(r, ProductDetailRecord) else ProductDetailRecord.from_dict(r) for r in records]
        summary = BatchSummary()
        logger.info(f"{job.tag} Updating return charge on {len(records)} products")

        for record in records:
            try:
                if not record.seller_product_id:
                    raise ValueError("record has no sellerProductId")
                product_id = int(record.seller_product_id)
                await self.api.update_return_charge(job, product_id, self.return_charge)
                summary.record(WorkflowResult.success({"sellerProductId": product_id}))
            except (StoreSyncError, ValueError) as e:
                logger.error(f"{job.tag} Return charge update failed for {record.seller_product_id}: {e}")
                summary.record(WorkflowResult.failed(str(e), data={"sellerProductId": record.seller_product_id}))
            await self._sleep(self.item_delay)

        logger.info(
            f"{job.tag} Return charge update finished: {summary.success_count} ok, {summary.failed_count} failed"
        )
        return summary
