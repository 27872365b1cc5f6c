"""
Product-level batch operations over the marketplace API.

Each batch walks its worklist sequentially and isolates failures per item:
the returned ``BatchSummary`` always covers every input.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable, List, Mapping, Optional, Tuple, Union

from core.api_client import MarketplaceApiClient
from core.errors import StoreSyncError
from core.models import ApiInvoice, BatchSummary, JobContext, MarketplaceProduct, WorkflowResult
from core.progress import log_progress

logger = logging.getLogger(__name__)

ProductRef = Union[MarketplaceProduct, Mapping[str, Any]]

PLATFORM_NAME = "coupang"


def resolve_product(product: ProductRef) -> Tuple[int, str]:
    """
    Seller product id and display name of a worklist entry.

    Entries come either from the API (``MarketplaceProduct``), from sold-out
    matching (``sellerProductId``/``sellerProductName``) or from price
    comparison rows (``vendorInventoryId``/``productName``).
    """
    if isinstance(product, MarketplaceProduct):
        return product.seller_product_id, product.seller_product_name

    raw_id = product.get("sellerProductId") or product.get("vendorInventoryId")
    if raw_id in (None, ""):
        raise ValueError(f"product entry has no id: {dict(product)}")
    name = product.get("sellerProductName") or product.get("productName") or ""
    return int(raw_id), str(name)


class ProductService:
    """
    Stop-sale, delete and API invoice batches.

    Args:
        api: Marketplace API client
        notifier: Anything with ``async emit(channel, event, payload)``
        store: Store identifier included in notifications
        item_delay: Pause between marketplace calls (seconds)
    """

    def __init__(
        self,
        api: MarketplaceApiClient,
        notifier=None,
        store: str = "",
        item_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.notifier = notifier
        self.store = store
        self.item_delay = item_delay
        self._sleep = sleep

    async def stop_sale_products(self, job: JobContext, products: Iterable[ProductRef]) -> BatchSummary:
        """
        Stop selling every item of every product.

        Products that carry no items are resolved through the detail endpoint.
        A product succeeds only when all of its items were stopped.
        """
        products = list(products)
        summary = BatchSummary()
        logger.info(f"{job.tag} Stop-sale started for {len(products)} products")
        if not products:
            logger.warning(f"{job.tag} No products to stop")
            return summary

        for index, product in enumerate(products):
            log_progress(logger, job, "Stopping products", index, len(products))
            try:
                product_id, name = resolve_product(product)
                items = product.items if isinstance(product, MarketplaceProduct) else []
                if not items:
                    detail = await self.api.get_product_detail(job, product_id)
                    items = detail.items
                    await self._sleep(self.item_delay)
            except (StoreSyncError, ValueError) as e:
                logger.error(f"{job.tag} Stop-sale lookup failed: {e}")
                summary.record(WorkflowResult.failed(str(e), data={"product": _describe(product)}))
                continue

            stopped, failed = [], []
            for item in items:
                if await self.api.stop_sale_item(job, item.vendor_item_id):
                    stopped.append(item.vendor_item_id)
                else:
                    failed.append(item.vendor_item_id)
                await self._sleep(self.item_delay)

            data = {
                "sellerProductId": product_id,
                "productName": name,
                "stoppedItems": stopped,
                "failedItems": failed,
            }
            if failed:
                summary.record(WorkflowResult.failed(f"{len(failed)} items not stopped", data=data))
            else:
                summary.record(WorkflowResult.success(data))

        logger.info(
            f"{job.tag} Stop-sale finished: {summary.success_count} ok, {summary.failed_count} failed"
        )
        return summary

    async def delete_products(self, job: JobContext, products: Iterable[ProductRef]) -> BatchSummary:
        """
        Delete each product; failures are recorded per item.

        When anything was deleted, a deletion notice goes to the mail channel.
        """
        products = list(products)
        summary = BatchSummary()
        logger.info(f"{job.tag} Delete started for {len(products)} products")
        if not products:
            logger.warning(f"{job.tag} No products to delete")
            return summary

        deleted = []
        for index, product in enumerate(products):
            log_progress(logger, job, "Deleting products", index, len(products))
            try:
                product_id, name = resolve_product(product)
                await self.api.delete_product(job, product_id)
            except (StoreSyncError, ValueError) as e:
                logger.error(f"{job.tag} Delete failed for {_describe(product)}: {e}")
                summary.record(WorkflowResult.failed(str(e), data={"product": _describe(product)}))
                continue

            deleted.append({"sellerProductId": product_id, "productName": name})
            summary.record(WorkflowResult.success({"sellerProductId": product_id, "productName": name}))
            await self._sleep(self.item_delay)

        if deleted and self.notifier is not None:
            await self.notifier.emit(
                "mail-queue",
                "sendBatchDeletionEmail",
                {
                    "deletedProducts": deleted,
                    "jobType": job.job_type,
                    "store": self.store,
                    "platformName": PLATFORM_NAME,
                },
            )

        logger.info(f"{job.tag} Delete finished: {summary.success_count} ok, {summary.failed_count} failed")
        return summary

    async def upload_invoices(self, job: JobContext, invoices: Iterable[ApiInvoice]) -> BatchSummary:
        """Submit tracking numbers through the API, one order at a time."""
        invoices = list(invoices)
        summary = BatchSummary()

        for invoice in invoices:
            try:
                await self.api.submit_invoice(job, invoice)
                summary.record(WorkflowResult.success(invoice.result_fields()))
            except StoreSyncError as e:
                logger.error(f"{job.tag} Invoice upload failed for order {invoice.order_id}: {e}")
                summary.record(WorkflowResult.failed(str(e) or "unknown error", data=invoice.result_fields()))
            await self._sleep(self.item_delay)

        return summary


def _describe(product: Optional[ProductRef]) -> Any:
    if isinstance(product, MarketplaceProduct):
        return product.seller_product_id
    if isinstance(product, Mapping):
        return product.get("sellerProductId") or product.get("vendorInventoryId")
    return product
