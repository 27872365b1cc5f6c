#!/usr/bin/env python3
"""
Shared Data Models for Storefront Sync

Every model converts to and from the marketplace's camelCase wire shape with
``from_dict`` / ``to_dict`` so that workflows, the dispatcher and persistence
share one representation.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional


# ============== Enums ==============

class JobPattern(str, Enum):
    """Operations a job descriptor can name."""
    ORDER_STATUS_UPDATE = "order-status-update"
    INVOICE_UPLOAD = "invoice-upload"
    UPLOAD_INVOICES = "upload-invoices"
    DETAIL_CRAWL = "detail-crawl"
    PRICE_COMPARISON_CRAWL = "price-comparison-crawl"
    NON_CONFORMING_PURGE = "non-conforming-purge"
    LIST_PRODUCTS = "list-products"
    PRODUCT_DETAIL = "product-detail"
    LIST_ORDERS = "list-orders"
    STOP_SALE = "stop-sale"
    STOP_SALE_PRODUCTS = "stop-sale-products"
    DELETE_PRODUCTS = "delete-products"
    PRICE_CONTROL = "price-control"
    SHIPPING_COST_CONTROL = "shipping-cost-control"
    CLEAR_COMPARISON_DATA = "clear-comparison-data"
    SAVE_UPDATE_ITEMS = "save-update-items"
    GET_COMPARISON_COUNT = "get-comparison-count"
    ACKNOWLEDGE_ORDER = "acknowledge-order"


class JobType(str, Enum):
    """Scheduling origin of a job; used for log correlation only."""
    ORDER = "ORDER"
    INVOICE = "INVOICE"
    CRAWL = "CRAWL"
    PRICE = "PRICE"
    SOLDOUT = "SOLDOUT"
    CONFORM = "CONFORM"
    SHIPPING = "SHIPPING"
    MANUAL = "MANUAL"


class ResultStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


# ============== Job Models ==============

@dataclass(frozen=True)
class JobContext:
    """Identifies the job a log line or API call belongs to."""
    job_id: str
    job_type: str = JobType.MANUAL.value

    @property
    def tag(self) -> str:
        return f"[{self.job_type}:{self.job_id}]"

    def derive(self, job_type: "JobType") -> "JobContext":
        """Same job id, different job type (e.g. a purge reusing the product list)."""
        return JobContext(job_id=self.job_id, job_type=job_type.value)


@dataclass(frozen=True)
class JobDescriptor:
    """One inbound operation invocation. Immutable once dispatched."""
    pattern: JobPattern
    job_id: str
    job_type: JobType
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Freeze the payload mapping so handlers cannot mutate the descriptor.
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> "JobDescriptor":
        """
        Parse ``{pattern, payload: {jobId, jobType, data?, ...}}``.

        Raises:
            ValueError: unknown pattern, unknown job type, or missing job id
        """
        if not isinstance(message, Mapping):
            raise ValueError("job message must be an object")
        raw_pattern = str(message.get("pattern") or "")
        try:
            pattern = JobPattern(raw_pattern)
        except ValueError:
            raise ValueError(f"unknown pattern: {raw_pattern}") from None

        raw_payload = message.get("payload") or {}
        if not isinstance(raw_payload, Mapping):
            raise ValueError("payload must be an object")
        payload = dict(raw_payload)
        job_id = str(payload.pop("jobId", "") or "")
        if not job_id:
            raise ValueError("missing jobId")

        raw_type = str(payload.pop("jobType", "") or JobType.MANUAL.value)
        try:
            job_type = JobType(raw_type)
        except ValueError:
            raise ValueError(f"unknown job type: {raw_type}") from None

        return cls(pattern=pattern, job_id=job_id, job_type=job_type, payload=payload)

    @property
    def context(self) -> JobContext:
        return JobContext(job_id=self.job_id, job_type=self.job_type.value)

    @property
    def data(self) -> Any:
        return self.payload.get("data")


# ============== Marketplace Models ==============

@dataclass
class MarketplaceItem:
    """A sellable option (vendor item) of a marketplace product."""
    vendor_item_id: int
    item_name: Optional[str] = None
    sale_price: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MarketplaceItem":
        return cls(
            vendor_item_id=int(data["vendorItemId"]),
            item_name=data.get("itemName"),
            sale_price=data.get("salePrice"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendorItemId": self.vendor_item_id,
            "itemName": self.item_name,
            "salePrice": self.sale_price,
        }


@dataclass
class MarketplaceProduct:
    """A seller product as known to the marketplace API (authoritative identity)."""
    seller_product_id: int
    seller_product_name: str = ""
    items: List[MarketplaceItem] = field(default_factory=list)
    price: Optional[int] = None
    shipping_cost: Optional[int] = None
    is_winner: Optional[bool] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MarketplaceProduct":
        items = [
            MarketplaceItem.from_dict(item)
            for item in (data.get("items") or [])
            if item.get("vendorItemId") is not None
        ]
        return cls(
            seller_product_id=int(data["sellerProductId"]),
            seller_product_name=str(data.get("sellerProductName") or ""),
            items=items,
            price=data.get("price"),
            shipping_cost=data.get("shippingCost"),
            is_winner=data.get("isWinner"),
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sellerProductId": self.seller_product_id,
            "sellerProductName": self.seller_product_name,
            "items": [item.to_dict() for item in self.items],
            "price": self.price,
            "shippingCost": self.shipping_cost,
            "isWinner": self.is_winner,
        }


@dataclass
class ProductDetailRecord:
    """One inventory row scraped from the admin console listing."""
    seller_product_id: Optional[str]
    product_code: Optional[str]
    is_winner: bool
    price: Optional[int]
    shipping_cost: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProductDetailRecord":
        return cls(
            seller_product_id=data.get("sellerProductId"),
            product_code=data.get("productCode"),
            is_winner=bool(data.get("isWinner")),
            price=data.get("price"),
            shipping_cost=int(data.get("shippingCost") or 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sellerProductId": self.seller_product_id,
            "productCode": self.product_code,
            "isWinner": self.is_winner,
            "price": self.price,
            "shippingCost": self.shipping_cost,
        }


@dataclass
class PriceComparisonRecord:
    """One row of the seller price-management view."""
    vendor_item_id: Optional[int]
    vendor_inventory_id: Optional[int]
    product_name: Optional[str]
    winner_status: str
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], winner_status: str) -> "PriceComparisonRecord":
        return cls(
            vendor_item_id=_optional_int(data.get("vendorItemId")),
            vendor_inventory_id=_optional_int(data.get("vendorInventoryId")),
            product_name=data.get("productName") or data.get("vendorInventoryName"),
            winner_status=winner_status,
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendorItemId": self.vendor_item_id,
            "vendorInventoryId": self.vendor_inventory_id,
            "productName": self.product_name,
            "winnerStatus": self.winner_status,
        }


@dataclass
class PriceUpdateItem:
    """A pending price change decided upstream, applied by price control."""
    vendor_item_id: int
    new_price: int
    job_id: str
    current_price: Optional[int] = None
    winner_price: Optional[int] = None
    seller_price: Optional[int] = None
    seller_product_id: Optional[str] = None
    product_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], job_id: Optional[str] = None) -> "PriceUpdateItem":
        return cls(
            vendor_item_id=int(data["vendorItemId"]),
            new_price=int(data["newPrice"]),
            job_id=str(job_id or data.get("jobId") or ""),
            current_price=_optional_int(data.get("currentPrice")),
            winner_price=_optional_int(data.get("winnerPrice")),
            seller_price=_optional_int(data.get("sellerPrice")),
            seller_product_id=data.get("sellerProductId"),
            product_name=data.get("productName") or data.get("itemName"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendorItemId": self.vendor_item_id,
            "sellerProductId": self.seller_product_id,
            "productName": self.product_name,
            "newPrice": self.new_price,
            "currentPrice": self.current_price,
            "winnerPrice": self.winner_price,
            "sellerPrice": self.seller_price,
            "jobId": self.job_id,
        }


# ============== Order / Invoice Models ==============

@dataclass
class Courier:
    name: str
    tracking_number: str


@dataclass
class Receiver:
    name: str
    safe_number: str


@dataclass
class InvoiceOrder:
    """An order whose tracking number is entered through the admin console."""
    order_id: str
    courier: Courier
    receiver: Receiver

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InvoiceOrder":
        courier = data.get("courier") or {}
        receiver = data.get("receiver") or {}
        return cls(
            order_id=str(data.get("orderId") or ""),
            courier=Courier(
                name=str(courier.get("name") or courier.get("courier") or ""),
                tracking_number=str(
                    courier.get("trackingNumber") or courier.get("trackNumber") or ""
                ),
            ),
            receiver=Receiver(
                name=str(receiver.get("name") or ""),
                safe_number=str(receiver.get("safeNumber") or ""),
            ),
        )

    def result_fields(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "courierName": self.courier.name,
            "trackingNumber": self.courier.tracking_number,
            "name": self.receiver.name,
            "safeNumber": self.receiver.safe_number,
        }


@dataclass
class ApiInvoice:
    """An invoice submitted through the REST API rather than the console."""
    shipment_box_id: int
    order_id: str
    vendor_item_id: int
    delivery_company_code: str
    invoice_number: str
    receiver_name: str = ""
    safe_number: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ApiInvoice":
        return cls(
            shipment_box_id=int(data["shipmentBoxId"]),
            order_id=str(data["orderId"]),
            vendor_item_id=int(data["vendorItemId"]),
            delivery_company_code=str(data["deliveryCompanyCode"]),
            invoice_number=str(data["invoiceNumber"]),
            receiver_name=str(data.get("receiverName") or ""),
            safe_number=str(data.get("safeNumber") or ""),
        )

    def to_request_row(self) -> Dict[str, Any]:
        return {
            "shipmentBoxId": self.shipment_box_id,
            "orderId": int(self.order_id) if self.order_id.isdigit() else self.order_id,
            "vendorItemId": self.vendor_item_id,
            "deliveryCompanyCode": self.delivery_company_code,
            "invoiceNumber": self.invoice_number,
            "splitShipping": False,
            "preSplitShipped": False,
            "estimatedShippingDate": "",
        }

    def result_fields(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "courierName": self.delivery_company_code,
            "trackingNumber": self.invoice_number,
            "name": self.receiver_name,
            "safeNumber": self.safe_number,
        }


# ============== Results ==============

RESULT_KEYS = frozenset({"status", "error", "data"})


@dataclass
class WorkflowResult:
    """Terminal outcome of one workflow invocation or one batch item."""
    status: ResultStatus
    error: str = ""
    data: Any = None

    @classmethod
    def success(cls, data: Any = None) -> "WorkflowResult":
        return cls(status=ResultStatus.SUCCESS, data=data)

    @classmethod
    def failed(cls, error: str, data: Any = None) -> "WorkflowResult":
        return cls(status=ResultStatus.FAILED, error=error, data=data)

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Flatten dict data beside status/error; nest it under ``data`` when keys collide."""
        if isinstance(self.data, dict) and not RESULT_KEYS.intersection(self.data):
            return {**self.data, "status": self.status.value, "error": self.error}
        out: Dict[str, Any] = {"status": self.status.value, "error": self.error}
        if self.data is not None:
            out["data"] = self.data
        return out


@dataclass
class BatchSummary:
    """Aggregate outcome of a batch orchestrator run."""
    total: int = 0
    success_count: int = 0
    failed_count: int = 0
    results: List[WorkflowResult] = field(default_factory=list, repr=False)

    def record(self, result: WorkflowResult):
        self.results.append(result)
        self.total += 1
        if result.ok:
            self.success_count += 1
        else:
            self.failed_count += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successCount": self.success_count,
            "failedCount": self.failed_count,
        }


_DIGITS = re.compile(r"[^0-9]")


def digits_only(text: Optional[str]) -> str:
    """Strip everything but ASCII digits ("12,900원" -> "12900")."""
    return _DIGITS.sub("", text or "")


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
