"""
Seller admin console ("Wing") page primitives.

Every CSS selector and DOM text match used against the console lives here.
Workflows call the semantic operations below and never touch selectors, so a
console UI change is fixed in one place.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from playwright.async_api import ElementHandle, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from core.errors import SectionNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://wing.coupang.com"

# Login (xauth)
LOGIN_USERNAME = "#username"
LOGIN_PASSWORD = "#password"
LOGIN_SUBMIT = "#kc-login"

# Delivery management
DELIVERY_PATH = "/tenants/sfl-portal/delivery/management"
PAYMENT_COMPLETE_CHECKBOX = '.search-table tbody span[data-wuic-props="name:check"] input[type="checkbox"]'
CONFIRM_ORDER_BUTTON = "#confirmOrder"
COURIER_SELECT = "select[data-v-305197cb]"
JUSTIFICATION_TEXTAREA = 'textarea[placeholder="Enter reason in detail"]'
SUBMIT_CONFIRM_BUTTON = (
    'button#submitConfirm[style="float: right; margin: 0px 0px 0px 8px; padding: 6px 16px 8px;"]'
    '[data-wuic-props*="icon-name:download"]'
)
PROCESSING_TAB_TEXT = "Processing"
ORDER_TABLE = "#tableContext"
ORDER_ROWS = "#tableContext tr"
ROW_CHECKBOX = 'input[type="checkbox"]'
ROW_SELECT = "select"
ROW_TRACKING_EDIT = 'i[data-wuic-props*="name:ico icon:edit"]'
ROW_TRACKING_INPUT = 'div[deliverytrackingmodal] input[type="text"]'
APPLY_BUTTON = 'button[data-wuic-props*="name:btn type:primary"]'
TABLE_PAGE_LINK = 'span[data-wuic-attrs^="page:{index}"] a'

# Inventory listing
INVENTORY_PATH = "/vendor-inventory/list"
INVENTORY_ROW = "tr.inventory-line"
INVENTORY_PRODUCT_ID = ".ip-right .ip-content div:nth-child(3)"
INVENTORY_TITLE = ".ip-title"
INVENTORY_WINNER = ".ies-container .ies-top"
INVENTORY_PRICE = ".isp-top"
INVENTORY_SHIPPING = ".isp-bottom"
INVENTORY_PAGE_SIZE = 50

# Price management
PRICE_MANAGEMENT_PATH = "/tenants/seller-price-management/"
PRICE_LIST_RESPONSE = "getProductList"
PRICE_PAGE_SIZE = 100

EXPOSURE_ALL = "ALL"
EXPOSURE_NON_CONFORMING = "NON_CONFORMING_ATTR"
SORT_BY_UNITS_SOLD = "SORT_BY_ITEM_LEVEL_UNIT_SOLD"
SORT_BY_REGISTRATION = "SORT_BY_REGISTRATION_DATE"


def inventory_url(base_url: str, page_index: int, exposure_status: str, sort_method: str) -> str:
    # The console expects every filter present, including the literal "null" dates.
    query = [
        ("searchKeywordType", "ALL"),
        ("searchKeywords", ""),
        ("salesMethod", "ALL"),
        ("productStatus", "ALL"),
        ("stockSearchType", "ALL"),
        ("shippingFeeSearchType", "ALL"),
        ("displayCategoryCodes", ""),
        ("listingStartTime", "null"),
        ("listingEndTime", "null"),
        ("saleEndDateSearchType", "ALL"),
        ("bundledShippingSearchType", "ALL"),
        ("displayDeletedProduct", "false"),
        ("shippingMethod", "ALL"),
        ("exposureStatus", exposure_status),
        ("locale", "ko_KR"),
        ("sortMethod", sort_method),
        ("countPerPage", INVENTORY_PAGE_SIZE),
        ("page", page_index),
    ]
    return f"{base_url}{INVENTORY_PATH}?{urlencode(query)}"


def price_comparison_url(base_url: str, winner_status: str, page_index: int) -> str:
    # searchPresets and isTopGMV are sent as bare keys.
    return (
        f"{base_url}{PRICE_MANAGEMENT_PATH}?searchInputValue=&searchInputType=KEYWORD"
        f"&itemWinnerStatus={winner_status}&salesMethod=ALL&autoPriceStatus=ALL"
        f"&salesStatus=ON_SALE&alarmStatus=ALL&listingDate.startDate=&listingDate.endDate="
        f"&searchPresets&isTopGMV&page={page_index}&pageSize={PRICE_PAGE_SIZE}"
        f"&sortingType=MY_VI_SALES_DESC"
    )


class WingConsole:
    """
    Semantic operations against one logged-in console page.

    Args:
        page: Playwright page owned by the current session
        base_url: Console origin
        ui_settle: Pause after clicks that re-render the order table (seconds)
    """

    def __init__(self, page: Page, base_url: str = DEFAULT_BASE_URL, ui_settle: float = 1.0):
        self.page = page
        self.base_url = base_url.rstrip("/")
        self.ui_settle = ui_settle

    async def _settle(self):
        if self.ui_settle > 0:
            await asyncio.sleep(self.ui_settle)

    # === Login ===

    async def login(self, login_url: str, username: str, password: str, timeout_ms: int = 60000):
        """Fill the sign-in form and wait until the console origin is reached."""
        await self.page.goto(login_url, timeout=timeout_ms)
        await self.page.fill(LOGIN_USERNAME, username)
        await self.page.fill(LOGIN_PASSWORD, password)
        await self.page.click(LOGIN_SUBMIT)
        await self.page.wait_for_url(f"{self.base_url}/**", timeout=timeout_ms)
        await self.page.wait_for_load_state("domcontentloaded")

    # === Order confirmation ===

    async def open_delivery_management(self):
        await self.page.goto(f"{self.base_url}{DELIVERY_PATH}", timeout=0)
        await self.page.wait_for_load_state("networkidle")

    async def find_payment_complete_checkboxes(self, timeout_ms: int = 10000) -> List[ElementHandle]:
        """Row checkboxes of paid orders; empty when none render in time."""
        try:
            await self.page.wait_for_selector(PAYMENT_COMPLETE_CHECKBOX, state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            logger.info("No payment-complete checkboxes on the delivery page")
        return await self.page.query_selector_all(PAYMENT_COMPLETE_CHECKBOX)

    async def force_select(self, checkbox: ElementHandle):
        """Clear a ``disabled`` flag if present, then click regardless of actionability."""
        if await checkbox.is_disabled():
            await checkbox.evaluate("el => el.removeAttribute('disabled')")
        await checkbox.click(force=True)

    async def confirm_orders(self):
        await self.page.wait_for_selector(CONFIRM_ORDER_BUTTON, state="visible")
        await self.page.click(CONFIRM_ORDER_BUTTON)
        await self.page.wait_for_load_state("networkidle")

    async def choose_courier(self, value: str):
        await self.page.wait_for_selector(COURIER_SELECT, state="visible")
        await self.page.select_option(COURIER_SELECT, value)

    async def fill_justification(self, text: str):
        await self.page.wait_for_selector(JUSTIFICATION_TEXTAREA, state="visible")
        await self.page.fill(JUSTIFICATION_TEXTAREA, text)

    async def submit_confirmation(self):
        clicked = await self.page.evaluate(
            """selector => {
                const button = document.querySelector(selector);
                if (!button) return false;
                button.click();
                return true;
            }""",
            SUBMIT_CONFIRM_BUTTON,
        )
        if not clicked:
            raise SectionNotFoundError("confirmation submit button")

    # === Invoice upload ===

    async def open_processing_tab(self):
        clicked = await self.page.evaluate(
            """text => {
                const target = Array.from(document.querySelectorAll('span'))
                    .find(el => el.textContent === text);
                if (!target) return false;
                target.click();
                return true;
            }""",
            PROCESSING_TAB_TEXT,
        )
        if not clicked:
            raise SectionNotFoundError("processing tab")
        await self._settle()

    async def find_row_matching(self, first: str, second: str) -> Optional[ElementHandle]:
        """First order row whose text contains both values, or ``None``."""
        handle = await self.page.evaluate_handle(
            """([selector, first, second]) => {
                const rows = Array.from(document.querySelectorAll(selector));
                return rows.find(row => {
                    const text = row.textContent || '';
                    return text.includes(first) && text.includes(second);
                }) || null;
            }""",
            [ORDER_ROWS, first, second],
        )
        return handle.as_element()

    async def select_row_checkbox(self, row: ElementHandle) -> bool:
        checkbox = await row.query_selector(ROW_CHECKBOX)
        if checkbox is None:
            return False
        await self.force_select(checkbox)
        return True

    async def choose_row_option(self, row: ElementHandle, text: str) -> bool:
        """Select the dropdown option whose trimmed text equals ``text``; no-op if absent."""
        dropdown = await row.query_selector(ROW_SELECT)
        if dropdown is None:
            return False
        return await dropdown.evaluate(
            """(select, wanted) => {
                const option = Array.from(select.options)
                    .find(o => (o.textContent || '').trim() === wanted.trim());
                if (!option) return false;
                option.selected = true;
                select.dispatchEvent(new Event('change', { bubbles: true }));
                return true;
            }""",
            text,
        )

    async def fill_row_tracking_number(self, row: ElementHandle, tracking_number: str) -> bool:
        edit_icon = await row.query_selector(ROW_TRACKING_EDIT)
        if edit_icon is None:
            return False
        await edit_icon.click()
        tracking_input = await row.query_selector(ROW_TRACKING_INPUT)
        filled = False
        if tracking_input is not None:
            await tracking_input.fill(tracking_number)
            filled = True
        await self._settle()
        return filled

    async def apply_row_changes(self, timeout_ms: int = 5000):
        try:
            button = await self.page.wait_for_selector(APPLY_BUTTON, state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise SectionNotFoundError("apply button", timeout_ms) from None
        await button.click()
        await self._settle()

    async def reload_table(self):
        await self.page.reload(wait_until="domcontentloaded")

    async def go_to_table_page(self, index: int, timeout_ms: int = 5000) -> bool:
        """Click the pager link for ``index``; ``False`` when there is no such page."""
        await self._settle()
        link = await self.page.query_selector(TABLE_PAGE_LINK.format(index=index))
        if link is None:
            return False
        await link.click()
        await self.page.wait_for_selector(ORDER_TABLE, timeout=timeout_ms)
        await self._settle()
        return True

    # === Inventory listing ===

    async def open_inventory_page(
        self,
        page_index: int,
        exposure_status: str = EXPOSURE_ALL,
        sort_method: str = SORT_BY_UNITS_SOLD,
        wait_until: str = "load",
    ):
        url = inventory_url(self.base_url, page_index, exposure_status, sort_method)
        await self.page.goto(url, timeout=0, wait_until=wait_until)

    async def scroll_full_height(self, step: int = 100, delay_ms: int = 100):
        """Scroll the whole document in ``step`` pixel increments so lazy rows render."""
        await self.page.evaluate(
            """async ([step, delay]) => {
                for (let y = 0; y < document.body.scrollHeight; y += step) {
                    window.scrollBy(0, step);
                    await new Promise(resolve => setTimeout(resolve, delay));
                }
            }""",
            [step, delay_ms],
        )

    async def extract_inventory_rows(self) -> List[Dict[str, Any]]:
        """Raw text of every listing row; parsing happens in Python."""
        return await self.page.evaluate(
            """(s) => Array.from(document.querySelectorAll(s.row)).map(row => {
                const text = sel => {
                    const el = row.querySelector(sel);
                    return el ? el.textContent : null;
                };
                return {
                    idText: text(s.id),
                    titleText: text(s.title),
                    winnerText: text(s.winner),
                    priceText: text(s.price),
                    shippingText: text(s.shipping),
                };
            })""",
            {
                "row": INVENTORY_ROW,
                "id": INVENTORY_PRODUCT_ID,
                "title": INVENTORY_TITLE,
                "winner": INVENTORY_WINNER,
                "price": INVENTORY_PRICE,
                "shipping": INVENTORY_SHIPPING,
            },
        )

    async def wait_for_inventory_rows(self, timeout_ms: int = 6000) -> bool:
        try:
            await self.page.wait_for_selector(INVENTORY_ROW, timeout=timeout_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    # === Price management ===

    async def capture_price_comparison_page(self, winner_status: str, page_index: int) -> Dict[str, Any]:
        """Navigate to one price-management page and return its product-list JSON."""
        url = price_comparison_url(self.base_url, winner_status, page_index)
        async with self.page.expect_response(
            lambda response: PRICE_LIST_RESPONSE in response.url and response.status == 200
        ) as response_info:
            await self.page.goto(url)
        response = await response_info.value
        return await response.json()
