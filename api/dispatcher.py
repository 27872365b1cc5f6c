#!/usr/bin/env python3
"""
Job Dispatcher

Turns inbound ``{pattern, payload: {jobId, jobType, ...}}`` messages into
calls on the workflows, batch orchestrators and API client, and returns a
result envelope:

    {"status": "success", "data": ...}   (data omitted when there is none)
    {"status": "error", "message": ...}

The queue is the store the console session logs into, so at most one job
runs per store. Callers cannot pick a queue: jobs for a busy store wait on
that store's lock, and a message naming another store is rejected. The
dispatcher never raises.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional

from api.logging_config import log_job, logger
from core.errors import StoreSyncError
from core.models import ApiInvoice, BatchSummary, JobDescriptor, JobPattern, PriceUpdateItem, WorkflowResult

Handler = Callable[[JobDescriptor], Awaitable[Any]]

DEFAULT_ORDER_STATUS = "ACCEPT"


def success(data: Any = None) -> Dict[str, Any]:
    envelope: Dict[str, Any] = {"status": "success"}
    if data is not None:
        envelope["data"] = data
    return envelope


def error(message: str) -> Dict[str, Any]:
    return {"status": "error", "message": message}


def _summary(summary: BatchSummary) -> Dict[str, Any]:
    return {**summary.to_dict(), "results": [r.to_dict() for r in summary.results]}


def _workflow_data(result: WorkflowResult) -> Dict[str, Any]:
    if not result.ok:
        raise StoreSyncError(result.error or "workflow failed")
    return result.to_dict()


def _payload_value(job: JobDescriptor, *keys: str, default: Any = None) -> Any:
    """
    First present payload key, then the same keys inside a ``data`` struct.

    A bare (non-mapping) ``data`` value is taken as the value itself.
    """
    for key in keys:
        if job.payload.get(key) is not None:
            return job.payload[key]
    data = job.data
    if isinstance(data, Mapping):
        for key in keys:
            if data.get(key) is not None:
                return data[key]
        return default
    if data is not None:
        return data
    return default


@dataclass
class QueueStats:
    processed: int = 0
    failed: int = 0
    waiting: int = 0
    running: Optional[str] = None


@dataclass
class JobDispatcher:
    services: Any
    store: str = "default"
    _locks: Dict[str, asyncio.Lock] = field(default_factory=dict)
    _stats: Dict[str, QueueStats] = field(default_factory=dict)

    def __post_init__(self):
        self._handlers: Dict[JobPattern, Handler] = {
            JobPattern.ORDER_STATUS_UPDATE: self._order_status_update,
            JobPattern.INVOICE_UPLOAD: self._invoice_upload,
            JobPattern.UPLOAD_INVOICES: self._upload_invoices,
            JobPattern.DETAIL_CRAWL: self._detail_crawl,
            JobPattern.PRICE_COMPARISON_CRAWL: self._price_comparison_crawl,
            JobPattern.NON_CONFORMING_PURGE: self._non_conforming_purge,
            JobPattern.LIST_PRODUCTS: self._list_products,
            JobPattern.PRODUCT_DETAIL: self._product_detail,
            JobPattern.LIST_ORDERS: self._list_orders,
            JobPattern.STOP_SALE: self._stop_sale,
            JobPattern.STOP_SALE_PRODUCTS: self._stop_sale_products,
            JobPattern.DELETE_PRODUCTS: self._delete_products,
            JobPattern.PRICE_CONTROL: self._price_control,
            JobPattern.SHIPPING_COST_CONTROL: self._shipping_cost_control,
            JobPattern.CLEAR_COMPARISON_DATA: self._clear_comparison_data,
            JobPattern.SAVE_UPDATE_ITEMS: self._save_update_items,
            JobPattern.GET_COMPARISON_COUNT: self._get_comparison_count,
            JobPattern.ACKNOWLEDGE_ORDER: self._acknowledge_order,
        }

    def _lock_for(self, queue: str) -> asyncio.Lock:
        lock = self._locks.get(queue)
        if lock is None:
            lock = self._locks[queue] = asyncio.Lock()
            self._stats[queue] = QueueStats()
        return lock

    async def dispatch(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        """Run one job to completion and return its envelope."""
        try:
            job = JobDescriptor.from_message(message)
            requested = message.get("store")
            if requested and str(requested) != self.store:
                raise ValueError(f"job for store {requested} cannot run on store {self.store}")
        except ValueError as e:
            logger.error(f"Rejected job message: {e}")
            return error(str(e))

        queue = self.store
        lock = self._lock_for(queue)
        stats = self._stats[queue]
        tag = job.context.tag

        if lock.locked():
            logger.info(f"{tag} {job.pattern.value} waiting for queue {queue}")
        stats.waiting += 1
        async with lock:
            stats.waiting -= 1
            stats.running = job.job_id
            started = time.monotonic()
            logger.info(f"{tag} {job.pattern.value} started on queue {queue}")
            try:
                data = await self._handlers[job.pattern](job)
                envelope = success(data)
                stats.processed += 1
                log_job(tag, job.pattern.value, "success", (time.monotonic() - started) * 1000)
            except Exception as e:
                stats.failed += 1
                log_job(tag, job.pattern.value, "error", (time.monotonic() - started) * 1000, error=str(e))
                envelope = error(str(e) or e.__class__.__name__)
            finally:
                stats.running = None
        return envelope

    def get_stats(self) -> Dict[str, Any]:
        return {
            queue: {
                "processed": stats.processed,
                "failed": stats.failed,
                "waiting": stats.waiting,
                "running": stats.running,
            }
            for queue, stats in self._stats.items()
        }

    # === Console workflows ===

    async def _order_status_update(self, job: JobDescriptor):
        return _workflow_data(await self.services.order_confirmation.run(job.context))

    async def _invoice_upload(self, job: JobDescriptor):
        orders = _payload_value(job, "updatedOrders", "orders", default=[])
        results = await self.services.invoice_upload.run(job.context, orders)
        return [r.to_dict() for r in results]

    async def _detail_crawl(self, job: JobDescriptor):
        return _workflow_data(await self.services.detail_crawl.run(job.context))

    async def _price_comparison_crawl(self, job: JobDescriptor):
        winner_status = job.payload.get("winnerStatus")
        crawl = self.services.price_comparison_crawl
        if winner_status:
            result = await crawl.run(job.context, winner_statuses=(winner_status,))
        else:
            result = await crawl.run(job.context)
        return _workflow_data(result)

    async def _non_conforming_purge(self, job: JobDescriptor):
        return _workflow_data(await self.services.purge.run(job.context))

    # === API client ===

    async def _list_products(self, job: JobDescriptor):
        products = await self.services.api.list_products(job.context)
        return [p.to_dict() for p in products]

    async def _product_detail(self, job: JobDescriptor):
        product_id = _payload_value(job, "sellerProductId")
        if product_id is None:
            raise ValueError("sellerProductId is required")
        product = await self.services.api.get_product_detail(job.context, int(product_id))
        return product.to_dict()

    async def _list_orders(self, job: JobDescriptor):
        today = date.today()
        return await self.services.api.list_orders(
            job.context,
            status=job.payload.get("status") or DEFAULT_ORDER_STATUS,
            created_from=job.payload.get("createdAtFrom") or (today - timedelta(days=1)).isoformat(),
            created_to=job.payload.get("createdAtTo") or today.isoformat(),
        )

    async def _stop_sale(self, job: JobDescriptor):
        vendor_item_id = _payload_value(job, "vendorItemId")
        if vendor_item_id is None:
            raise ValueError("vendorItemId is required")
        stopped = await self.services.api.stop_sale_item(job.context, int(vendor_item_id))
        return {"vendorItemId": int(vendor_item_id), "stopped": stopped}

    async def _acknowledge_order(self, job: JobDescriptor):
        box_ids = _payload_value(job, "shipmentBoxIds", default=[])
        if not box_ids:
            raise ValueError("shipmentBoxIds is required")
        return await self.services.api.acknowledge_orders(job.context, box_ids)

    # === Batches ===

    async def _upload_invoices(self, job: JobDescriptor):
        invoices = [ApiInvoice.from_dict(i) for i in _payload_value(job, "invoices", default=[])]
        return _summary(await self.services.products.upload_invoices(job.context, invoices))

    async def _stop_sale_products(self, job: JobDescriptor):
        products = _payload_value(job, "products", default=[])
        return _summary(await self.services.products.stop_sale_products(job.context, products))

    async def _delete_products(self, job: JobDescriptor):
        products = _payload_value(job, "products", default=[])
        return _summary(await self.services.products.delete_products(job.context, products))

    async def _price_control(self, job: JobDescriptor):
        return _summary(await self.services.price_control.run(job.context))

    async def _shipping_cost_control(self, job: JobDescriptor):
        records = _payload_value(job, "coupangProductDetails", "productDetails", default=[])
        return _summary(await self.services.shipping_cost.run(job.context, records))

    # === Persistence ===

    async def _clear_comparison_data(self, job: JobDescriptor):
        removed = await self.services.comparisons.delete_all()
        logger.info(f"{job.context.tag} Cleared {removed} comparison rows")
        return None

    async def _save_update_items(self, job: JobDescriptor):
        raw_items: List[Mapping[str, Any]] = _payload_value(job, "items", default=[])
        items = [PriceUpdateItem.from_dict(item, job_id=job.job_id) for item in raw_items]
        await self.services.update_items.save_many(items, job_id=job.job_id)
        return None

    async def _get_comparison_count(self, job: JobDescriptor):
        return await self.services.comparisons.count()
