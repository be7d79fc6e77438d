"""
Bid submission.

``BidValidator`` decides whether a bid may leave the client at all.
``BidSubmitter`` holds the state of one bidding widget (the typed amount,
the visible error, whether a submission is outstanding) and runs a full
attempt: validate, place, then refresh bid history and listing.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from threading import Lock
from typing import Any, Callable, Optional

from . import increments
from .auth import AuthState
from .errors import (
    AuctionClosed,
    BelowCurrentPrice,
    BidBazaarError,
    BidRejected,
    InvalidAmount,
    InvalidListing,
    NetworkOrServerError,
    NotAuthenticated,
    NotOnIncrement,
    RefreshFailure,
    SubmissionInProgress,
)
from .formatting import format_currency
from .models import BidPlacement, EffectiveStatus, Listing

logger = logging.getLogger(__name__)

FAILED_TO_PLACE_BID = "Failed to place bid"
REAUTH_HINT = "Authentication error. Please try logging in again."


class BidValidator:
    """Checks a candidate bid against auth state, auction status and the increment grid."""

    def parse_amount(self, raw: Any) -> Decimal:
        if raw is None or isinstance(raw, bool):
            raise InvalidAmount(raw)
        if isinstance(raw, str):
            raw = raw.strip()
            if not raw:
                raise InvalidAmount(raw)
        try:
            amount = Decimal(str(raw))
        except InvalidOperation:
            raise InvalidAmount(raw)
        if not amount.is_finite() or amount <= 0:
            raise InvalidAmount(raw)
        return amount

    def validate(self, raw_amount: Any, auth: AuthState, listing: Listing,
                 status: EffectiveStatus) -> Decimal:
        """Return the validated amount or raise the first failing check."""
        if not auth.is_authenticated:
            raise NotAuthenticated(auth.snapshot())

        if status != EffectiveStatus.ACTIVE:
            raise AuctionClosed(status.value)

        if listing.starting_price <= 0:
            raise InvalidListing(listing.starting_price)

        amount = self.parse_amount(raw_amount)
        starting_price = listing.starting_price
        current_price = listing.current_price

        if not increments.is_valid_amount(starting_price, current_price, amount):
            suggested = increments.next_valid_bid(starting_price, current_price)
            raise NotOnIncrement(
                amount, suggested,
                f"Bids must follow {format_currency(increments.increment(starting_price))} steps. "
                f"Minimum bid amount is {format_currency(suggested)}",
            )

        # The grid may predate the latest current price.
        if amount <= current_price:
            raise BelowCurrentPrice(
                amount, current_price,
                f"Bid amount must be higher than current price ({format_currency(current_price)})",
            )
        return amount


@dataclass
class BidAttempt:
    """Outcome of one submission."""
    accepted: bool
    amount: Optional[Decimal] = None
    error: Optional[BidBazaarError] = None
    placement: Optional[BidPlacement] = None
    message: Optional[str] = None

    @property
    def reason(self) -> Optional[str]:
        return self.error.reason if self.error else None

    @property
    def suggested_amount(self) -> Optional[Decimal]:
        return getattr(self.error, "suggested", None)

    @property
    def needs_reauth(self) -> bool:
        return bool(getattr(self.error, "needs_reauth", False))

    @property
    def hint(self) -> Optional[str]:
        """Follow-up advice shown alongside ``message``."""
        return REAUTH_HINT if self.needs_reauth else None


def placement_message(placement: BidPlacement) -> str:
    deducted = format_currency(placement.amount_deducted)
    if placement.raised_existing_bid:
        return f"Bid increased! {deducted} deducted from wallet"
    return f"Bid placed! {deducted} deducted from wallet"


class BidSubmitter:
    """
    State and behaviour of a bidding widget for one listing.

    ``get_listing`` and ``get_status`` read the owner's current listing and
    effective status; ``refresh_bids`` and ``refresh_listing`` are run after
    an accepted bid, in that order, and may fail without affecting the result.
    """

    def __init__(self, bid_service, auth: Callable[[], AuthState],
                 get_listing: Callable[[], Listing], get_status: Callable[[], EffectiveStatus],
                 refresh_bids: Optional[Callable[[], object]] = None,
                 refresh_listing: Optional[Callable[[], object]] = None,
                 validator: Optional[BidValidator] = None):
        self.bid_service = bid_service
        self._auth = auth
        self._get_listing = get_listing
        self._get_status = get_status
        self._refresh_bids = refresh_bids
        self._refresh_listing = refresh_listing
        self.validator = validator or BidValidator()

        self.amount_input: Any = ""
        self.error: Optional[BidBazaarError] = None
        self._pending = Lock()

    @property
    def pending(self) -> bool:
        return self._pending.locked()

    def minimum_bid(self) -> Optional[Decimal]:
        listing = self._get_listing()
        if listing.starting_price <= 0:
            return None
        return increments.next_valid_bid(listing.starting_price, listing.current_price)

    def submit(self, amount: Any = None) -> BidAttempt:
        """Validate and place a bid; ``amount`` defaults to ``amount_input``."""
        raw = self.amount_input if amount is None else amount

        if not self._pending.acquire(blocking=False):
            return BidAttempt(accepted=False, error=SubmissionInProgress())
        try:
            self.error = None
            return self._submit(raw)
        finally:
            self._pending.release()

    def _submit(self, raw: Any) -> BidAttempt:
        listing = self._get_listing()
        try:
            value = self.validator.validate(raw, self._auth(), listing, self._get_status())
        except BidRejected as e:
            logger.info("Bid on %s rejected (%s): %s", listing.id, e.reason, e.message)
            self.error = e
            return BidAttempt(accepted=False, error=e, message=e.message)

        try:
            placement = self.bid_service.place_bid(listing.id, value)
        except NetworkOrServerError as e:
            logger.error("Error placing bid on %s: %s", listing.id, e)
            if not e.message:
                e.message = FAILED_TO_PLACE_BID
            self.error = e
            return BidAttempt(accepted=False, amount=value, error=e, message=e.message)

        logger.info("Bid of %s placed on %s", value, listing.id)
        self.error = None
        self.amount_input = ""
        self._best_effort("bid history", self._refresh_bids)
        self._best_effort("listing", self._refresh_listing)
        return BidAttempt(accepted=True, amount=value, placement=placement,
                          message=placement_message(placement))

    @staticmethod
    def _best_effort(what: str, refresh: Optional[Callable[[], object]]) -> None:
        if refresh is None:
            return
        try:
            refresh()
        except BidBazaarError as e:
            logger.warning("%s", RefreshFailure(what, e))
