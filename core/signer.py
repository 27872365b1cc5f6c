"""
HMAC request signing for the marketplace REST API.

Every call produces a fresh timestamp/signature pair; the gateway rejects
stale signed dates, so nothing here is cached.
"""

import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import urlencode

ALGORITHM = "HmacSHA256"
PAGE_SIZE = 100
APPROVED_STATUS = "APPROVED"


@dataclass(frozen=True)
class SignedRequest:
    """Authentication material for one REST call. Never persisted."""
    method: str
    path: str
    query: str
    timestamp: str
    signature: str
    authorization: str

    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": self.authorization,
            "Content-Type": "application/json;charset=UTF-8",
            "X-EXTENDED-TIMEOUT": "90000",
            "X-Coupang-Date": self.timestamp,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """
    Compact signed-date: two-digit year, no separators, trailing ``Z``.

    ``2024-05-01T12:34:56Z`` -> ``240501T123456Z``
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%y%m%dT%H%M%SZ")


def canonical_query(params: Optional[Mapping[str, Any]]) -> str:
    """
    Form-urlencode params in insertion order; ``None`` becomes empty.

    Spaces become ``+`` and ``*`` stays literal, as in a browser form
    encoder. ``~`` is also left literal.
    """
    if not params:
        return ""
    pairs = [(key, "" if value is None else str(value)) for key, value in params.items()]
    return urlencode(pairs, safe="*")


def compute_signature(secret_key: str, timestamp: str, method: str, path: str, query: str) -> str:
    message = f"{timestamp}{method}{path}{query}"
    return hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


class RequestSigner:
    """
    Builds the ``CEA`` authorization header for marketplace API calls.

    Two modes:
    - ``sign``: paging mode, always signs the fixed vendor/cursor/page-size/status
      query (or nothing at all when ``use_query`` is False)
    - ``sign_params``: signs an arbitrary parameter map for bespoke endpoints

    The caller must send exactly the query string that was signed; use
    ``SignedRequest.query``.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        vendor_id: str,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.access_key = access_key
        self._secret_key = secret_key
        self.vendor_id = vendor_id
        self._clock = clock or _utcnow

    def paging_params(self, next_token: str = "") -> Dict[str, Any]:
        return {
            "vendorId": self.vendor_id,
            "nextToken": next_token or "",
            "maxPerPage": PAGE_SIZE,
            "status": APPROVED_STATUS,
        }

    def sign(
        self,
        method: str,
        path: str,
        next_token: str = "",
        use_query: bool = True,
    ) -> SignedRequest:
        query = canonical_query(self.paging_params(next_token)) if use_query else ""
        return self._build(method, path, query)

    def sign_params(self, method: str, path: str, params: Mapping[str, Any]) -> SignedRequest:
        return self._build(method, path, canonical_query(params))

    def _build(self, method: str, path: str, query: str) -> SignedRequest:
        method = method.upper()
        timestamp = format_timestamp(self._clock())
        signature = compute_signature(self._secret_key, timestamp, method, path, query)
        authorization = (
            f"CEA algorithm={ALGORITHM}, access-key={self.access_key}, "
            f"signed-date={timestamp}, signature={signature}"
        )
        return SignedRequest(
            method=method,
            path=path,
            query=query,
            timestamp=timestamp,
            signature=signature,
            authorization=authorization,
        )
