"""
Marketplace REST API client.

Wraps the seller API gateway with:
- HMAC signing per request (see ``core.signer``)
- cursor pagination for list endpoints, each page retried a bounded number of
  times, the whole fetch failing as a unit once a page gives up
- throttling between successful pages
- single-shot mutations (stop-sale, delete, partial update, price update,
  order acknowledgement, invoice submit)
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import aiohttp

from core.errors import InvoiceSubmitError, MarketplaceApiError, PaginationError
from core.models import ApiInvoice, JobContext, MarketplaceProduct
from core.retry import async_retry
from core.signer import RequestSigner, SignedRequest

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-gateway.coupang.com"

SELLER_PRODUCTS_PATH = "/v2/providers/seller_api/apis/api/v1/marketplace/seller-products"
VENDOR_ITEMS_PATH = "/v2/providers/seller_api/apis/api/v1/marketplace/vendor-items"
VENDORS_PATH = "/v2/providers/openapi/apis/api/v4/vendors"

ORDER_PAGE_SIZE = 50


class MarketplaceApiClient:
    """
    Signed client for the marketplace seller API.

    ``job`` arguments are only used to tag log lines.

    Example:
        signer = RequestSigner(access_key, secret_key, vendor_id)
        async with MarketplaceApiClient(signer) as client:
            products = await client.list_products(JobContext("job-1", "CONFORM"))
    """

    def __init__(
        self,
        signer: RequestSigner,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[aiohttp.ClientSession] = None,
        max_attempts: int = 3,
        retry_delay: float = 2.0,
        page_throttle: float = 1.0,
        timeout_seconds: float = 90.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.signer = signer
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.page_throttle = page_throttle
        self.timeout_seconds = timeout_seconds
        self._sleep = sleep
        self._session = session
        self._owns_session = session is None

    @property
    def vendor_id(self) -> str:
        return self.signer.vendor_id

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # === Transport ===

    async def _send(self, signed: SignedRequest, body: Optional[Dict[str, Any]] = None) -> Any:
        """Send exactly the signed method/path/query and return the decoded JSON body."""
        url = f"{self.base_url}{signed.path}"
        if signed.query:
            url = f"{url}?{signed.query}"

        session = await self._get_session()
        try:
            async with session.request(
                signed.method,
                url,
                headers=signed.headers(),
                json=body,
            ) as resp:
                text = await resp.text()
                payload = _decode(text)
                if not 200 <= resp.status < 300:
                    raise MarketplaceApiError(
                        f"{signed.method} {signed.path} failed",
                        status=resp.status,
                        payload=payload,
                    )
                return payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise MarketplaceApiError(f"{signed.method} {signed.path} transport error: {e}") from e

    # === Pagination ===

    async def _paginate(
        self,
        job: JobContext,
        label: str,
        sign_page: Callable[[str], SignedRequest],
    ) -> List[Dict[str, Any]]:
        """
        Follow ``nextToken`` until it is absent or a page comes back empty.

        Raises:
            PaginationError: a page failed ``max_attempts`` times; nothing
                accumulated so far is returned
        """

        def _log_retry(attempt: int, max_attempts: int, error: BaseException):
            logger.warning(
                f"{job.tag} {label}: page request failed, retry {attempt}/{max_attempts - 1}: {error}"
            )

        @async_retry(
            max_attempts=self.max_attempts,
            delay=self.retry_delay,
            exceptions=(MarketplaceApiError,),
            on_retry=_log_retry,
            sleep=self._sleep,
        )
        async def fetch_page(token: str) -> Dict[str, Any]:
            # Signed inside the retry so every attempt carries a fresh signed-date.
            payload = await self._send(sign_page(token))
            if not isinstance(payload, dict):
                raise MarketplaceApiError(f"{label}: unexpected response body", payload=payload)
            return payload

        collected: List[Dict[str, Any]] = []
        seen_tokens = set()
        token = ""
        pages = 0

        while True:
            try:
                payload = await fetch_page(token)
            except MarketplaceApiError as e:
                logger.error(f"{job.tag} {label}: giving up after {pages} pages (nextToken={token or '-'}): {e}")
                raise PaginationError(
                    f"{label} failed after {self.max_attempts} attempts",
                    pages_fetched=pages,
                    next_token=token,
                ) from e

            page = payload.get("data") or []
            collected.extend(page)
            pages += 1
            seen_tokens.add(token)

            if pages % 10 == 0:
                logger.info(f"{job.tag} {label}: page {pages}, {len(collected)} collected")

            token = str(payload.get("nextToken") or "")
            if not token or not page:
                break
            if token in seen_tokens:
                raise PaginationError(
                    f"{label}: cursor repeated ({token})",
                    pages_fetched=pages,
                    next_token=token,
                )

            await self._sleep(self.page_throttle)

        logger.info(f"{job.tag} {label}: {len(collected)} records over {pages} pages")
        return collected

    # === List endpoints ===

    async def list_products(self, job: JobContext) -> List[MarketplaceProduct]:
        """All approved seller products, in server order."""
        logger.info(f"{job.tag} Listing marketplace products...")
        rows = await self._paginate(
            job,
            "list-products",
            lambda token: self.signer.sign("GET", SELLER_PRODUCTS_PATH, next_token=token),
        )
        return [MarketplaceProduct.from_dict(row) for row in rows]

    async def list_orders(
        self,
        job: JobContext,
        status: str,
        created_from: str,
        created_to: str,
    ) -> List[Dict[str, Any]]:
        """Order sheets in ``status`` created between two ``YYYY-MM-DD`` dates."""
        path = f"{VENDORS_PATH}/{self.vendor_id}/ordersheets"

        def sign_page(token: str) -> SignedRequest:
            return self.signer.sign_params(
                "GET",
                path,
                {
                    "vendorId": self.vendor_id,
                    "createdAtFrom": created_from,
                    "createdAtTo": created_to,
                    "status": status,
                    "nextToken": token,
                    "maxPerPage": ORDER_PAGE_SIZE,
                },
            )

        return await self._paginate(job, "list-orders", sign_page)

    # === Detail ===

    async def get_product_detail(self, job: JobContext, seller_product_id: int) -> MarketplaceProduct:
        path = f"{SELLER_PRODUCTS_PATH}/{seller_product_id}"
        try:
            payload = await self._send(self.signer.sign("GET", path, use_query=False))
        except MarketplaceApiError as e:
            logger.error(f"{job.tag} Product detail failed for {seller_product_id}: {e}")
            raise
        data = (payload or {}).get("data") or {}
        if "sellerProductId" not in data:
            data = {**data, "sellerProductId": seller_product_id}
        return MarketplaceProduct.from_dict(data)

    # === Mutations ===

    async def stop_sale_item(self, job: JobContext, vendor_item_id: int) -> bool:
        """
        Stop selling one vendor item.

        Failures are logged and swallowed so a batch of stop-sales is never
        aborted by one item; the return value says whether it worked.
        """
        path = f"{VENDOR_ITEMS_PATH}/{vendor_item_id}/sales/stop"
        try:
            await self._send(self.signer.sign("PUT", path, use_query=False))
            return True
        except MarketplaceApiError as e:
            logger.error(f"{job.tag} Stop-sale failed for item {vendor_item_id}: {e} {e.payload or ''}")
            return False

    async def delete_product(self, job: JobContext, seller_product_id: int) -> Any:
        """Delete a seller product. Failures propagate."""
        path = f"{SELLER_PRODUCTS_PATH}/{seller_product_id}"
        return await self._send(self.signer.sign("DELETE", path, use_query=False))

    async def update_return_charge(self, job: JobContext, seller_product_id: int, return_charge: int) -> Any:
        """Partial product update setting the return shipping charge. Failures propagate."""
        path = f"{SELLER_PRODUCTS_PATH}/{seller_product_id}/partial"
        body = {"sellerProductId": seller_product_id, "returnCharge": return_charge}
        return await self._send(self.signer.sign("PUT", path, use_query=False), body=body)

    async def update_price(self, job: JobContext, vendor_item_id: int, new_price: int) -> Any:
        """Set the sale price of one vendor item. Failures propagate."""
        path = f"{VENDOR_ITEMS_PATH}/{vendor_item_id}/prices/{new_price}"
        return await self._send(self.signer.sign("PUT", path, use_query=False))

    async def acknowledge_orders(self, job: JobContext, shipment_box_ids: Iterable[int]) -> Any:
        """Move paid orders to "preparing". Failures propagate."""
        ids = [int(box_id) for box_id in shipment_box_ids]
        path = f"{VENDORS_PATH}/{self.vendor_id}/ordersheets/acknowledgement"
        body = {"vendorId": self.vendor_id, "shipmentBoxIds": ids}
        logger.info(f"{job.tag} Acknowledging {len(ids)} orders")
        payload = await self._send(self.signer.sign("PUT", path, use_query=False), body=body)
        return (payload or {}).get("data")

    async def submit_invoice(self, job: JobContext, invoice: ApiInvoice) -> Any:
        """
        Attach a tracking number to an order.

        Raises:
            MarketplaceApiError: transport or HTTP failure
            InvoiceSubmitError: the gateway answered but rejected the row
        """
        path = f"{VENDORS_PATH}/{self.vendor_id}/orders/invoices"
        body = {
            "vendorId": self.vendor_id,
            "orderSheetInvoiceApplyDtos": [invoice.to_request_row()],
        }
        payload = await self._send(self.signer.sign("POST", path, use_query=False), body=body)

        data = (payload or {}).get("data") or {}
        rejected = [row for row in data.get("responseList") or [] if not row.get("succeed", True)]
        if rejected:
            reason = rejected[0].get("resultMessage") or rejected[0].get("resultCode") or "rejected"
            raise InvoiceSubmitError(f"Invoice rejected for order {invoice.order_id}: {reason}", payload=payload)
        return data


def _decode(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
