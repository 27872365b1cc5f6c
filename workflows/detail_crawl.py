"""
Inventory detail crawl.

Walks the inventory listing page by page, scrolling each page so lazily
rendered rows appear, and persists every page's rows as soon as they are
extracted. The crawl ends on the first page with no rows.
"""

import logging
import re
from enum import Enum
from typing import Any, List, Mapping, Optional

from browser.wing_console import EXPOSURE_ALL, SORT_BY_UNITS_SOLD
from core.models import JobContext, ProductDetailRecord, WorkflowResult, digits_only
from workflows.base import ConsoleWorkflow

logger = logging.getLogger(__name__)

WINNER_LABEL = "Itemwinner"
_WHITESPACE = re.compile(r"\s")


def product_code_from_title(title: Optional[str]) -> Optional[str]:
    """First space-delimited token of a listing title ("A100 Blue Widget" -> "A100")."""
    text = (title or "").strip()
    if not text:
        return None
    return text.split(" ")[0] or None


def _number(text: Optional[str]) -> Optional[int]:
    digits = digits_only(text)
    return int(digits) if digits else None


def parse_inventory_row(raw: Mapping[str, Any]) -> ProductDetailRecord:
    """Turn the raw text of one listing row into a detail record."""
    id_text = raw.get("idText")
    winner_text = _WHITESPACE.sub("", (raw.get("winnerText") or "").strip())
    price_text = raw.get("priceText") or ""
    shipping_text = raw.get("shippingText") or ""

    return ProductDetailRecord(
        seller_product_id=digits_only(id_text) if id_text is not None else None,
        product_code=product_code_from_title(raw.get("titleText")),
        is_winner=winner_text == WINNER_LABEL,
        price=_number(price_text) if price_text else None,
        shipping_cost=(_number(shipping_text) or 0) if shipping_text else 0,
    )


class CrawlState(str, Enum):
    NAVIGATE = "NAVIGATE"
    SETTLE = "SETTLE"
    SCROLL = "SCROLL"
    RENDER = "RENDER"
    EXTRACT = "EXTRACT"
    PERSIST = "PERSIST"
    DONE = "DONE"


class DetailCrawl(ConsoleWorkflow):
    """
    Args:
        details: Store with ``async save_many(records, job_id)``
        settle_seconds: Wait after navigation and again after scrolling
        scroll_step / scroll_delay_ms: Incremental scroll parameters
    """

    name = "detail-crawl"

    def __init__(
        self,
        *args,
        details=None,
        settle_seconds: float = 3.0,
        scroll_step: int = 100,
        scroll_delay_ms: int = 100,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.details = details
        self.settle_seconds = settle_seconds
        self.scroll_step = scroll_step
        self.scroll_delay_ms = scroll_delay_ms

    async def run(self, job: JobContext) -> WorkflowResult:
        logger.info(f"{job.tag} Inventory detail crawl started")
        page_index = 1
        pages_saved = 0
        records_saved = 0

        async with self.sessions.session(self.session_key(job)) as page:
            console = self.console(page)
            records: List[ProductDetailRecord] = []

            async def navigate():
                if page_index % 10 == 0:
                    logger.info(f"{job.tag} Crawling inventory page {page_index}")
                await console.open_inventory_page(page_index, EXPOSURE_ALL, SORT_BY_UNITS_SOLD)
                return CrawlState.SETTLE

            async def settle():
                await self.pause(self.settle_seconds)
                return CrawlState.SCROLL

            async def scroll():
                await console.scroll_full_height(self.scroll_step, self.scroll_delay_ms)
                return CrawlState.RENDER

            async def render():
                await self.pause(self.settle_seconds)
                return CrawlState.EXTRACT

            async def extract():
                records.clear()
                records.extend(parse_inventory_row(raw) for raw in await console.extract_inventory_rows())
                if not records:
                    logger.info(f"{job.tag} Page {page_index} is empty, crawl finished")
                    return CrawlState.DONE
                return CrawlState.PERSIST

            async def persist():
                nonlocal page_index, pages_saved, records_saved
                await self.details.save_many(list(records), job_id=job.job_id)
                pages_saved += 1
                records_saved += len(records)
                page_index += 1
                return CrawlState.NAVIGATE

            machine = self.machine(
                {
                    CrawlState.NAVIGATE: navigate,
                    CrawlState.SETTLE: settle,
                    CrawlState.SCROLL: scroll,
                    CrawlState.RENDER: render,
                    CrawlState.EXTRACT: extract,
                    CrawlState.PERSIST: persist,
                },
                terminal=(CrawlState.DONE,),
                job=job,
            )
            await machine.run(CrawlState.NAVIGATE)

        logger.info(f"{job.tag} Inventory detail crawl saved {records_saved} records over {pages_saved} pages")
        return WorkflowResult.success({"pages": pages_saved, "records": records_saved})
