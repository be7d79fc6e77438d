"""BidBazaar client core: bid validation, auction lifecycle tracking and API access."""

from .api import ApiClient
from .auth import AuthState, AuthStore
from .bidding import BidAttempt, BidSubmitter, BidValidator
from .config import Config, configure_logging
from .increments import increment, is_valid_amount, next_valid_bid, valid_amounts
from .lifecycle import AuctionTracker, Ticker, effective_status
from .models import Bid, EffectiveStatus, Listing, ListingStatus
from .notifications import NotificationStore
from .view import ListingView

__version__ = "0.1.0"

__all__ = [
    "ApiClient",
    "AuctionTracker",
    "AuthState",
    "AuthStore",
    "Bid",
    "BidAttempt",
    "BidSubmitter",
    "BidValidator",
    "Config",
    "EffectiveStatus",
    "Listing",
    "ListingStatus",
    "ListingView",
    "NotificationStore",
    "Ticker",
    "configure_logging",
    "effective_status",
    "increment",
    "is_valid_amount",
    "next_valid_bid",
    "valid_amounts",
]
