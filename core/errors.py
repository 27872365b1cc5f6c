"""
Error types for storefront synchronization.

Missing page elements are usually control flow (empty lists, ``None``, ``False``)
and only become exceptions when a required page section never shows up.
"""

from typing import Any, Optional


class StoreSyncError(Exception):
    """Base class for every error raised by this service."""


class MarketplaceApiError(StoreSyncError):
    """A signed REST call returned a non-2xx response or failed in transport."""

    def __init__(self, message: str, status: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status = status
        self.payload = payload

    def __str__(self) -> str:
        base = super().__str__()
        if self.status is not None:
            return f"{base} (status={self.status})"
        return base


class PaginationError(StoreSyncError):
    """A cursor-paginated fetch gave up; accumulated pages are discarded."""

    def __init__(self, message: str, pages_fetched: int = 0, next_token: str = ""):
        super().__init__(message)
        self.pages_fetched = pages_fetched
        self.next_token = next_token


class InvoiceSubmitError(MarketplaceApiError):
    """The marketplace accepted the request but rejected the invoice row."""


class SessionAcquisitionError(StoreSyncError):
    """Logging into the admin console failed; terminal for the job."""


class SectionNotFoundError(StoreSyncError):
    """An expected page section did not appear before its timeout."""

    def __init__(self, section: str, timeout_ms: Optional[int] = None):
        detail = f" within {timeout_ms}ms" if timeout_ms is not None else ""
        super().__init__(f"Page section not found: {section}{detail}")
        self.section = section
        self.timeout_ms = timeout_ms


class StepFailed(StoreSyncError):
    """Wraps an exception raised while a workflow was in a given state."""

    def __init__(self, workflow: str, state: str, cause: BaseException):
        super().__init__(f"{workflow} failed in state {state}: {cause}")
        self.workflow = workflow
        self.state = state
        self.cause = cause
