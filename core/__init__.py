"""
Core components for marketplace storefront synchronization.

Modules:
- signer: HMAC request signing
- api_client: Signed, paginated, retrying REST client
- retry: Bounded async retry decorator
- product_service: Stop-sale, delete and API invoice batches
- price_control: Price update batch with background report
- shipping_cost: Return charge batch
- models / errors: Shared data types and error taxonomy
"""

from .api_client import MarketplaceApiClient
from .errors import (
    InvoiceSubmitError,
    MarketplaceApiError,
    PaginationError,
    SectionNotFoundError,
    SessionAcquisitionError,
    StepFailed,
    StoreSyncError,
)
from .price_control import PriceControl
from .product_service import ProductService
from .shipping_cost import ShippingCostControl
from .signer import RequestSigner, SignedRequest

__all__ = [
    "MarketplaceApiClient",
    "RequestSigner",
    "SignedRequest",
    "ProductService",
    "PriceControl",
    "ShippingCostControl",
    "StoreSyncError",
    "MarketplaceApiError",
    "PaginationError",
    "InvoiceSubmitError",
    "SessionAcquisitionError",
    "SectionNotFoundError",
    "StepFailed",
]
