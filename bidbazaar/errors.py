"""
Error taxonomy for the BidBazaar client.

Local rejections (``BidRejected`` and its subclasses) never reach the
network. ``NetworkOrServerError`` wraps every failed API call.
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class BidBazaarError(Exception):
    """Base class for all client errors."""

    reason = "BidBazaarError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BidRejected(BidBazaarError):
    """A bid attempt refused locally, before any network call."""

    reason = "BidRejected"


class NotAuthenticated(BidRejected):
    reason = "NotAuthenticated"

    def __init__(self, auth_snapshot: Optional[Dict[str, Any]] = None,
                 message: str = "Please log in to place a bid"):
        super().__init__(message)
        self.auth_snapshot = auth_snapshot or {}


class AuctionClosed(BidRejected):
    reason = "AuctionClosed"

    def __init__(self, status: str):
        super().__init__(f"This auction is not open for bidding ({status})")
        self.status = status


class InvalidListing(BidRejected):
    reason = "InvalidListing"

    def __init__(self, starting_price: Any):
        super().__init__(f"Listing has an invalid starting price ({starting_price})")
        self.starting_price = starting_price


class InvalidAmount(BidRejected):
    reason = "InvalidAmount"

    def __init__(self, raw: Any = None):
        super().__init__("Please select a valid bid amount")
        self.raw = raw


class NotOnIncrement(BidRejected):
    reason = "NotOnIncrement"

    def __init__(self, amount: Decimal, suggested: Decimal, message: Optional[str] = None):
        super().__init__(message or f"Bid must follow the increment steps. Minimum bid amount is {suggested}")
        self.amount = amount
        self.suggested = suggested


class BelowCurrentPrice(BidRejected):
    reason = "BelowCurrentPrice"

    def __init__(self, amount: Decimal, current_price: Decimal, message: Optional[str] = None):
        super().__init__(message or f"Bid amount must be higher than current price ({current_price})")
        self.amount = amount
        self.current_price = current_price


class SubmissionInProgress(BidRejected):
    reason = "SubmissionInProgress"

    def __init__(self):
        super().__init__("A bid for this listing is already being processed")


class NetworkOrServerError(BidBazaarError):
    """A failed API call: non-2xx status, transport failure or bad payload."""

    reason = "NetworkOrServerError"

    def __init__(self, message: str, status_code: Optional[int] = None,
                 payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def needs_reauth(self) -> bool:
        return self.status_code == 401

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.status_code}: {self.message}"


class RefreshFailure(BidBazaarError):
    """A best-effort refresh that failed after the primary action succeeded."""

    reason = "RefreshFailure"

    def __init__(self, what: str, cause: BaseException):
        super().__init__(f"Failed to refresh {what}: {cause}")
        self.what = what
        self.cause = cause
