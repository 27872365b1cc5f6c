"""
Service wiring.

Builds every collaborator once from ``AppConfig`` and hands explicit
references to the objects that need them.
"""

from dataclasses import dataclass

from api.config import AppConfig
from api.database import ComparisonStore, ProductDetailStore, UpdateItemStore, init_database
from browser.session_manager import BrowserSessionManager
from browser.wing_console import WingConsole
from core.api_client import MarketplaceApiClient
from core.price_control import PriceControl
from core.product_service import ProductService
from core.shipping_cost import ShippingCostControl
from core.signer import RequestSigner
from monitoring.notifications import NotificationConfig, NotificationManager
from workflows.detail_crawl import DetailCrawl
from workflows.invoice_upload import InvoiceUpload
from workflows.non_conforming_purge import NonConformingPurge
from workflows.order_confirmation import OrderConfirmation
from workflows.price_comparison_crawl import PriceComparisonCrawl


@dataclass
class Services:
    config: AppConfig
    api: MarketplaceApiClient
    sessions: BrowserSessionManager
    notifier: NotificationManager
    details: ProductDetailStore
    update_items: UpdateItemStore
    comparisons: ComparisonStore
    products: ProductService
    price_control: PriceControl
    shipping_cost: ShippingCostControl
    order_confirmation: OrderConfirmation
    invoice_upload: InvoiceUpload
    detail_crawl: DetailCrawl
    price_comparison_crawl: PriceComparisonCrawl
    purge: NonConformingPurge

    async def start(self):
        await init_database(self.config.DATABASE_PATH)
        await self.sessions.init()

    async def close(self):
        await self.price_control.wait_for_reports()
        await self.sessions.close_all()
        await self.api.close()


def build_services(config: AppConfig) -> Services:
    signer = RequestSigner(
        access_key=config.COUPANG_ACCESS_KEY or "",
        secret_key=config.COUPANG_SECRET_KEY or "",
        vendor_id=config.COUPANG_VENDOR_ID or "",
    )
    api = MarketplaceApiClient(
        signer,
        base_url=config.API_BASE_URL,
        max_attempts=config.API_MAX_ATTEMPTS,
        retry_delay=config.API_RETRY_DELAY_SECONDS,
        page_throttle=config.API_PAGE_THROTTLE_SECONDS,
        timeout_seconds=config.API_TIMEOUT_SECONDS,
    )
    sessions = BrowserSessionManager(
        login_url=config.WING_LOGIN_URL,
        username=config.WING_USERNAME or "",
        password=config.WING_PASSWORD or "",
        base_url=config.WING_BASE_URL,
        headless=config.BROWSER_HEADLESS,
        timeout_ms=config.BROWSER_TIMEOUT_MS,
    )
    notifier = NotificationManager(NotificationConfig(webhook_url=config.NOTIFY_WEBHOOK_URL))

    details = ProductDetailStore(config.DATABASE_PATH)
    update_items = UpdateItemStore(config.DATABASE_PATH)
    comparisons = ComparisonStore(config.DATABASE_PATH)

    products = ProductService(
        api,
        notifier=notifier,
        store=config.STORE,
        item_delay=config.PRODUCT_ACTION_DELAY_SECONDS,
    )

    def console_factory(page, base_url):
        return WingConsole(page, base_url, ui_settle=config.UI_SETTLE_SECONDS)

    console_args = dict(
        sessions=sessions,
        store=config.STORE,
        base_url=config.WING_BASE_URL,
        console_factory=console_factory,
    )

    return Services(
        config=config,
        api=api,
        sessions=sessions,
        notifier=notifier,
        details=details,
        update_items=update_items,
        comparisons=comparisons,
        products=products,
        price_control=PriceControl(
            api,
            update_items,
            notifier=notifier,
            report_dir=config.REPORT_DIR,
            store=config.STORE,
            item_delay=config.PRICE_UPDATE_DELAY_SECONDS,
        ),
        shipping_cost=ShippingCostControl(
            api,
            return_charge=config.RETURN_CHARGE,
            item_delay=config.SHIPPING_UPDATE_DELAY_SECONDS,
        ),
        order_confirmation=OrderConfirmation(**console_args),
        invoice_upload=InvoiceUpload(**console_args),
        detail_crawl=DetailCrawl(
            **console_args,
            details=details,
            settle_seconds=config.CRAWL_SETTLE_SECONDS,
            scroll_step=config.CRAWL_SCROLL_STEP,
            scroll_delay_ms=config.CRAWL_SCROLL_DELAY_MS,
        ),
        price_comparison_crawl=PriceComparisonCrawl(
            **console_args,
            comparisons=comparisons,
            page_delay=config.COMPARISON_PAGE_DELAY_SECONDS,
        ),
        purge=NonConformingPurge(
            **console_args,
            api=api,
            products=products,
            rows_timeout_ms=config.PURGE_ROWS_TIMEOUT_MS,
        ),
    )
