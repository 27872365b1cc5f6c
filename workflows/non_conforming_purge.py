"""
Non-conforming listing purge.

Reads product codes off the console's non-conforming listing, releases the
browser, then stops and deletes every API product whose name contains one of
those codes.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Sequence

from browser.wing_console import EXPOSURE_NON_CONFORMING, SORT_BY_REGISTRATION
from core.api_client import MarketplaceApiClient
from core.models import JobContext, JobType, MarketplaceProduct, WorkflowResult
from core.product_service import ProductService
from workflows.base import ConsoleWorkflow
from workflows.detail_crawl import product_code_from_title

logger = logging.getLogger(__name__)


def find_matching_products(codes: Sequence[str], products: Iterable[MarketplaceProduct]) -> List[MarketplaceProduct]:
    """Products whose listing name contains any code (case-sensitive substring)."""
    codes = [code for code in codes if isinstance(code, str) and code]
    return [
        product
        for product in products
        if isinstance(product.seller_product_name, str)
        and any(code in product.seller_product_name for code in codes)
    ]


class PurgeState(str, Enum):
    NAVIGATE = "NAVIGATE"
    COLLECT_CODES = "COLLECT_CODES"
    RELEASE = "RELEASE"
    LIST_PRODUCTS = "LIST_PRODUCTS"
    MATCH = "MATCH"
    STOP_SALE = "STOP_SALE"
    DELETE = "DELETE"
    DONE = "DONE"
    NO_CODES = "NO_CODES"
    NOTHING_MATCHED = "NOTHING_MATCHED"


class NonConformingPurge(ConsoleWorkflow):
    """
    Args:
        api: Marketplace API client (product list)
        products: Product service (stop-sale and delete)
        rows_timeout_ms: How long the listing gets to render any row
    """

    name = "non-conforming-purge"

    def __init__(
        self,
        *args,
        api: MarketplaceApiClient = None,
        products: ProductService = None,
        rows_timeout_ms: int = 6000,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.api = api
        self.products = products
        self.rows_timeout_ms = rows_timeout_ms

    async def run(self, job: JobContext) -> WorkflowResult:
        logger.info(f"{job.tag} Non-conforming purge started")
        key = self.session_key(job)
        conform_job = job.derive(JobType.CONFORM)

        codes: List[str] = []
        catalog: List[MarketplaceProduct] = []
        matched: List[MarketplaceProduct] = []
        outcome: Dict[str, Any] = {}
        released = False

        page = await self.sessions.acquire(key)
        console = self.console(page)

        async def navigate():
            await console.open_inventory_page(
                1, EXPOSURE_NON_CONFORMING, SORT_BY_REGISTRATION, wait_until="networkidle"
            )
            return PurgeState.COLLECT_CODES

        async def collect_codes():
            if not await console.wait_for_inventory_rows(self.rows_timeout_ms):
                return PurgeState.RELEASE
            for raw in await console.extract_inventory_rows():
                code = product_code_from_title(raw.get("titleText"))
                if code:
                    codes.append(code)
            return PurgeState.RELEASE

        async def release():
            nonlocal released
            released = True
            await self.sessions.release(key)
            return PurgeState.LIST_PRODUCTS if codes else PurgeState.NO_CODES

        async def list_products():
            catalog.extend(await self.api.list_products(conform_job))
            return PurgeState.MATCH

        async def match():
            matched.extend(find_matching_products(codes, catalog))
            logger.info(f"{job.tag} {len(matched)} of {len(catalog)} products match {len(codes)} codes")
            return PurgeState.STOP_SALE if matched else PurgeState.NOTHING_MATCHED

        async def stop_sale():
            outcome["stopSale"] = (await self.products.stop_sale_products(conform_job, matched)).to_dict()
            return PurgeState.DELETE

        async def delete():
            outcome["delete"] = (await self.products.delete_products(conform_job, matched)).to_dict()
            return PurgeState.DONE

        machine = self.machine(
            {
                PurgeState.NAVIGATE: navigate,
                PurgeState.COLLECT_CODES: collect_codes,
                PurgeState.RELEASE: release,
                PurgeState.LIST_PRODUCTS: list_products,
                PurgeState.MATCH: match,
                PurgeState.STOP_SALE: stop_sale,
                PurgeState.DELETE: delete,
            },
            terminal=(PurgeState.DONE, PurgeState.NO_CODES, PurgeState.NOTHING_MATCHED),
            job=job,
        )

        try:
            final = await machine.run(PurgeState.NAVIGATE)
        finally:
            if not released:
                await self.sessions.release(key)

        if final == PurgeState.NO_CODES:
            logger.info(f"{job.tag} No non-conforming products")
            return WorkflowResult.success({"matchedProducts": [], "message": "no non-conforming products"})

        return WorkflowResult.success({
            "codes": codes,
            "matchedProducts": [product.to_dict() for product in matched],
            **outcome,
        })
