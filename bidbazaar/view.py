"""
A displayed listing.

``ListingView`` owns everything one open listing page needs: the cached
listing and bid history, the lifecycle tracker and its ticker, and the bid
submitter. Cached data is a soft copy of the backend's records and is only
ever replaced wholesale by a fresh fetch.
"""

import logging
from datetime import datetime
from threading import RLock
from typing import Callable, List, Optional, Union

from .api import ApiClient
from .auth import AuthState, AuthStore
from .bidding import BidAttempt, BidSubmitter
from .config import Config
from .errors import NetworkOrServerError
from .lifecycle import AuctionTracker, Ticker, utcnow
from .models import Bid, EffectiveStatus, Listing, sort_bid_history

logger = logging.getLogger(__name__)


class ListingView:
    def __init__(self, api: ApiClient, listing_id: str, auth: Union[AuthState, AuthStore, Callable[[], AuthState]],
                 config=Config, clock: Callable[[], datetime] = utcnow):
        self.api = api
        self.listing_id = listing_id
        self.config = config
        self._clock = clock
        self._auth = self._auth_source(auth)

        self.bids: List[Bid] = []
        self.tracker: Optional[AuctionTracker] = None
        self.submitter: Optional[BidSubmitter] = None
        self._ticker: Optional[Ticker] = None
        self._closed = False
        self._lock = RLock()

    @staticmethod
    def _auth_source(auth) -> Callable[[], AuthState]:
        if isinstance(auth, AuthState):
            return lambda: auth
        if isinstance(auth, AuthStore):
            return lambda: auth.state
        return auth

    @property
    def listing(self) -> Optional[Listing]:
        return self.tracker.listing if self.tracker else None

    @property
    def status(self) -> Optional[EffectiveStatus]:
        return self.tracker.status if self.tracker else None

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self, start_ticker: bool = True) -> "ListingView":
        """Load the listing and its bids, then start tracking its status."""
        listing = self.api.get_listing(self.listing_id)
        self.tracker = AuctionTracker(
            listing,
            on_ended=self.refresh_listing,
            clock=self._clock,
            active_interval=self.config.ACTIVE_TICK_SECONDS,
            idle_interval=self.config.IDLE_TICK_SECONDS,
        )
        self.submitter = BidSubmitter(
            self.api,
            auth=self._auth,
            get_listing=lambda: self.tracker.listing,
            get_status=lambda: self.tracker.status,
            refresh_bids=self.refresh_bids,
            refresh_listing=self.refresh_listing,
        )
        try:
            self.refresh_bids()
        except NetworkOrServerError as e:
            logger.error("Error fetching bids for %s: %s", self.listing_id, e)

        self.tracker.tick()
        if start_ticker:
            self._ticker = Ticker(self.tick, self.tracker.interval, name=f"listing-{self.listing_id}")
            self._ticker.start()
        return self

    def tick(self) -> Optional[EffectiveStatus]:
        if self._closed or self.tracker is None:
            return None
        return self.tracker.tick()

    def refresh_listing(self) -> Optional[Listing]:
        """Fetch the listing and replace the cached copy."""
        listing = self.api.get_listing(self.listing_id)
        with self._lock:
            if self._closed:
                logger.debug("Discarding listing %s fetched after close", self.listing_id)
                return None
        self.tracker.update(listing)
        return listing

    def refresh_bids(self) -> Optional[List[Bid]]:
        """Fetch bid history and replace the cached list."""
        bids = sort_bid_history(self.api.get_listing_bids(self.listing_id))
        with self._lock:
            if self._closed:
                logger.debug("Discarding bids for %s fetched after close", self.listing_id)
                return None
            self.bids = bids
        return bids

    def place_bid(self, amount=None) -> BidAttempt:
        if self.submitter is None:
            raise RuntimeError("ListingView.open() must be called before bidding")
        return self.submitter.submit(amount)

    def close(self) -> None:
        """Stop tracking; results of requests still in flight are discarded."""
        with self._lock:
            self._closed = True
        if self._ticker is not None:
            self._ticker.stop(timeout=self.config.REQUEST_TIMEOUT)
            self._ticker = None

    def __enter__(self) -> "ListingView":
        if self.tracker is None:
            self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()
