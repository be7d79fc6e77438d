"""
Auction lifecycle tracking.

The backend owns every status change; the client only observes them. The
one transition the client derives itself is ``active -> ended``, computed
from the wall clock so a listing stops being biddable the moment its end
time passes, before the backend record catches up.
"""

import logging
from datetime import datetime, timezone
from threading import Event, RLock, Thread, current_thread
from typing import Callable, Optional, Union

from .config import Config
from .errors import BidBazaarError, RefreshFailure
from .models import EffectiveStatus, Listing, ListingStatus

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def effective_status(listing: Listing, now: Optional[datetime] = None) -> EffectiveStatus:
    """Derive the display status of a listing at ``now``."""
    now = now or utcnow()
    if listing.status == ListingStatus.ACTIVE:
        if now >= listing.end_time:
            return EffectiveStatus.ENDED
        return EffectiveStatus.ACTIVE
    if listing.status == ListingStatus.ENDED:
        return EffectiveStatus.SOLD if listing.winner_id else EffectiveStatus.EXPIRED
    if listing.status == ListingStatus.REJECTED:
        return EffectiveStatus.REJECTED
    return EffectiveStatus.PENDING


class AuctionTracker:
    """
    Per-listing status tracker.

    Holds the latest listing snapshot and its effective status. The first
    time the derived ``ended`` status is observed, ``on_ended`` is called
    once so the owner can fetch the backend's settled record.
    """

    def __init__(self, listing: Listing, on_ended: Optional[Callable[[], None]] = None,
                 clock: Callable[[], datetime] = utcnow,
                 active_interval: Optional[float] = None, idle_interval: Optional[float] = None):
        self._listing = listing
        self._on_ended = on_ended
        self._clock = clock
        self._active_interval = active_interval if active_interval is not None else Config.ACTIVE_TICK_SECONDS
        self._idle_interval = idle_interval if idle_interval is not None else Config.IDLE_TICK_SECONDS
        self._status = effective_status(listing, clock())
        self._ended_fired = False
        self._lock = RLock()

    @property
    def listing(self) -> Listing:
        with self._lock:
            return self._listing

    @property
    def status(self) -> EffectiveStatus:
        with self._lock:
            return self._status

    @property
    def is_biddable(self) -> bool:
        return self.status == EffectiveStatus.ACTIVE

    @property
    def ended_refresh_fired(self) -> bool:
        with self._lock:
            return self._ended_fired

    def interval(self) -> float:
        """Seconds until the next recomputation."""
        return self._active_interval if self.is_biddable else self._idle_interval

    def update(self, listing: Listing) -> EffectiveStatus:
        """Replace the cached listing with a freshly fetched one and recompute."""
        with self._lock:
            self._listing = listing
        return self.tick()

    def tick(self, now: Optional[datetime] = None) -> EffectiveStatus:
        """Recompute the effective status, firing the ended refresh on its first observation."""
        with self._lock:
            previous = self._status
            self._status = effective_status(self._listing, now or self._clock())
            fire = self._status == EffectiveStatus.ENDED and not self._ended_fired
            if fire:
                self._ended_fired = True
            status = self._status

        if status != previous:
            logger.info("Listing %s status %s -> %s", self._listing.id, previous.value, status.value)
        if fire:
            self._refresh_after_end()
        # The refresh may have replaced the listing.
        return self.status

    def _refresh_after_end(self) -> None:
        if self._on_ended is None:
            return
        try:
            self._on_ended()
        except BidBazaarError as e:
            failure = RefreshFailure("listing after auction end", e)
            logger.warning("%s; keeping derived ended status", failure)


class Ticker(Thread):
    """
    Background thread calling ``callback`` every ``interval`` seconds until stopped.

    ``interval`` may be a callable, re-read before every wait, so the
    cadence can follow the state being polled.
    """

    def __init__(self, callback: Callable[[], object], interval: Union[float, Callable[[], float]],
                 name: Optional[str] = None):
        super().__init__(daemon=True, name=name)
        self._callback = callback
        self._interval = interval
        self._stop_event = Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def _next_interval(self) -> float:
        if callable(self._interval):
            return self._interval()
        return self._interval

    def run(self) -> None:
        """Main ticker loop"""
        while not self._stop_event.wait(self._next_interval()):
            try:
                self._callback()
            except Exception:
                logger.exception("Ticker %s callback failed", self.name)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the ticker and wait for a running callback to finish."""
        self._stop_event.set()
        if self.is_alive() and current_thread() is not self:
            self.join(timeout)
