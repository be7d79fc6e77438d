import threading
from datetime import timedelta
from decimal import Decimal

import pytest

from bidbazaar.auth import AuthState
from bidbazaar.bidding import BidSubmitter, BidValidator
from bidbazaar.errors import (
    AuctionClosed,
    BelowCurrentPrice,
    InvalidAmount,
    InvalidListing,
    NetworkOrServerError,
    NotAuthenticated,
    NotOnIncrement,
)
from bidbazaar.models import BidPlacement, EffectiveStatus, Listing, User
from test_api import LISTING_ID, listing_payload

BUYER = User(id="u2", name="Buyer", email="buyer@example.com", role="buyer")
SIGNED_IN = AuthState(token="buyer-token", user=BUYER, is_authenticated=True)
SIGNED_OUT = AuthState()


class FakeBidService:
    """Records place_bid calls and answers with a canned placement or error."""

    def __init__(self, error=None, previous_bid=0):
        self.calls = []
        self.error = error
        self.previous_bid = previous_bid

    def place_bid(self, listing_id, amount):
        self.calls.append((listing_id, amount))
        if self.error is not None:
            raise self.error
        return BidPlacement(amountDeducted=amount - self.previous_bid, previousBid=self.previous_bid)


def make_listing(starting_price=1000, current_price=None, status="active"):
    return Listing.model_validate(
        listing_payload(status=status, starting_price=starting_price, current_price=current_price)
    )


class Widget:
    """A submitter wired to fakes, recording refresh order."""

    def __init__(self, listing=None, auth=SIGNED_IN, status=EffectiveStatus.ACTIVE,
                 service=None, refresh_error=None):
        self.listing = listing or make_listing()
        self.auth = auth
        self.status = status
        self.service = service or FakeBidService()
        self.refreshes = []
        self.refresh_error = refresh_error
        self.submitter = BidSubmitter(
            self.service,
            auth=lambda: self.auth,
            get_listing=lambda: self.listing,
            get_status=lambda: self.status,
            refresh_bids=lambda: self._refresh("bids"),
            refresh_listing=lambda: self._refresh("listing"),
        )

    def _refresh(self, what):
        self.refreshes.append(what)
        if self.refresh_error is not None:
            raise self.refresh_error


@pytest.fixture
def validator():
    return BidValidator()


class TestBidValidator:
    def test_accepts_next_valid_bid(self, validator):
        amount = validator.validate("1050", SIGNED_IN, make_listing(), EffectiveStatus.ACTIVE)
        assert amount == Decimal(1050)

    def test_unauthenticated_rejected_before_amount_is_parsed(self, validator, monkeypatch):
        def parse_amount(raw):
            raise AssertionError("amount must not be parsed")

        monkeypatch.setattr(validator, "parse_amount", parse_amount)

        with pytest.raises(NotAuthenticated) as excinfo:
            validator.validate("1050", SIGNED_OUT, make_listing(), EffectiveStatus.ACTIVE)

        assert excinfo.value.reason == "NotAuthenticated"
        assert excinfo.value.auth_snapshot == {
            "isAuthenticated": False, "hasToken": False, "hasUser": False, "userRole": "unknown",
        }

    @pytest.mark.parametrize("status", [
        EffectiveStatus.ENDED, EffectiveStatus.SOLD, EffectiveStatus.EXPIRED,
        EffectiveStatus.PENDING, EffectiveStatus.REJECTED,
    ])
    def test_closed_auction_rejected(self, validator, status):
        with pytest.raises(AuctionClosed) as excinfo:
            validator.validate("1050", SIGNED_IN, make_listing(), status)
        assert excinfo.value.reason == "AuctionClosed"

    def test_non_positive_starting_price_refused(self, validator):
        listing = make_listing(starting_price=0)
        with pytest.raises(InvalidListing) as excinfo:
            validator.validate("50", SIGNED_IN, listing, EffectiveStatus.ACTIVE)
        assert excinfo.value.reason == "InvalidListing"

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "0", "-50", "NaN", "Infinity", True])
    def test_invalid_amounts(self, validator, raw):
        with pytest.raises(InvalidAmount) as excinfo:
            validator.validate(raw, SIGNED_IN, make_listing(), EffectiveStatus.ACTIVE)
        assert excinfo.value.reason == "InvalidAmount"

    def test_off_increment_suggests_next_valid_bid(self, validator):
        listing = make_listing(current_price=1200)
        with pytest.raises(NotOnIncrement) as excinfo:
            validator.validate("1175", SIGNED_IN, listing, EffectiveStatus.ACTIVE)

        assert excinfo.value.reason == "NotOnIncrement"
        assert excinfo.value.suggested == Decimal(1250)
        assert "₹1,250" in excinfo.value.message

    def test_on_grid_but_not_above_current_price(self, validator):
        listing = make_listing(current_price=1200)
        with pytest.raises(BelowCurrentPrice) as excinfo:
            validator.validate("1200", SIGNED_IN, listing, EffectiveStatus.ACTIVE)

        assert excinfo.value.reason == "BelowCurrentPrice"
        assert excinfo.value.current_price == Decimal(1200)

    def test_below_current_price_checked_independently(self, validator):
        listing = make_listing(current_price=1200)
        with pytest.raises(BelowCurrentPrice) as excinfo:
            validator.validate(1100, SIGNED_IN, listing, EffectiveStatus.ACTIVE)
        assert excinfo.value.reason == "BelowCurrentPrice"

    def test_decimal_input_is_not_truncated(self, validator):
        with pytest.raises(NotOnIncrement) as excinfo:
            validator.validate("1050.01", SIGNED_IN, make_listing(), EffectiveStatus.ACTIVE)
        assert excinfo.value.reason == "NotOnIncrement"

    @pytest.mark.parametrize("raw", [
        "1" + "0" * 30,
        "1E+100",
        10 ** 40,
        "1050." + "0" * 40 + "1",
        "1E-30",
    ])
    def test_extreme_amounts_are_off_the_grid(self, validator, raw):
        with pytest.raises(NotOnIncrement) as excinfo:
            validator.validate(raw, SIGNED_IN, make_listing(), EffectiveStatus.ACTIVE)
        assert excinfo.value.suggested == Decimal(1050)

    @pytest.mark.parametrize("raw", ["1.05E+3", "1050.000", Decimal("1050")])
    def test_equivalent_notations_accepted(self, validator, raw):
        amount = validator.validate(raw, SIGNED_IN, make_listing(), EffectiveStatus.ACTIVE)
        assert amount == Decimal(1050)


class TestBidSubmitter:
    def test_rejection_makes_no_network_call(self):
        widget = Widget(listing=make_listing(current_price=1200))

        attempt = widget.submitter.submit("1175")

        assert not attempt.accepted
        assert attempt.reason == "NotOnIncrement"
        assert attempt.suggested_amount == Decimal(1250)
        assert widget.service.calls == []
        assert widget.refreshes == []
        assert widget.submitter.error is attempt.error

    def test_unauthenticated_makes_no_network_call(self):
        widget = Widget(auth=SIGNED_OUT)

        attempt = widget.submitter.submit("1050")

        assert attempt.reason == "NotAuthenticated"
        assert widget.service.calls == []

    @pytest.mark.parametrize("raw", ["1E+100", "1" + "0" * 30])
    def test_huge_amount_is_rejected_locally(self, raw):
        widget = Widget()

        attempt = widget.submitter.submit(raw)

        assert not attempt.accepted
        assert attempt.reason == "NotOnIncrement"
        assert widget.service.calls == []
        assert widget.submitter.error is attempt.error

    def test_ended_auction_makes_no_network_call(self):
        widget = Widget(status=EffectiveStatus.ENDED)

        attempt = widget.submitter.submit("1050")

        assert attempt.reason == "AuctionClosed"
        assert widget.service.calls == []

    def test_accepted_bid_places_then_refreshes_bids_then_listing(self):
        widget = Widget()
        widget.submitter.amount_input = "1050"

        attempt = widget.submitter.submit()

        assert attempt.accepted
        assert attempt.amount == Decimal(1050)
        assert widget.service.calls == [(LISTING_ID, Decimal(1050))]
        assert widget.refreshes == ["bids", "listing"]
        assert widget.submitter.amount_input == ""
        assert widget.submitter.error is None
        assert attempt.message == "Bid placed! ₹1,050 deducted from wallet"

    def test_raised_bid_message(self):
        widget = Widget(service=FakeBidService(previous_bid=1050))

        attempt = widget.submitter.submit("1100")

        assert attempt.message == "Bid increased! ₹50 deducted from wallet"

    def test_refresh_failures_do_not_fail_the_bid(self):
        widget = Widget(refresh_error=NetworkOrServerError("Service unavailable", status_code=503))

        attempt = widget.submitter.submit("1050")

        assert attempt.accepted
        assert attempt.error is None
        assert widget.refreshes == ["bids", "listing"]
        assert widget.submitter.error is None

    def test_server_error_is_returned_not_raised(self):
        error = NetworkOrServerError("Insufficient wallet balance", status_code=400)
        widget = Widget(service=FakeBidService(error=error))
        widget.submitter.amount_input = "1050"

        attempt = widget.submitter.submit()

        assert not attempt.accepted
        assert attempt.error is error
        assert attempt.message == "Insufficient wallet balance"
        assert widget.refreshes == []
        assert widget.submitter.amount_input == "1050"

    def test_unauthorized_suggests_reauthentication(self):
        error = NetworkOrServerError("Not authorized", status_code=401)
        widget = Widget(service=FakeBidService(error=error))

        attempt = widget.submitter.submit("1050")

        assert attempt.needs_reauth
        assert attempt.message == "Not authorized"
        assert "logging in again" in attempt.hint

    def test_empty_server_message_falls_back(self):
        widget = Widget(service=FakeBidService(error=NetworkOrServerError("", status_code=500)))

        attempt = widget.submitter.submit("1050")

        assert attempt.message == "Failed to place bid"
        assert not attempt.needs_reauth
        assert attempt.hint is None

    def test_new_attempt_clears_previous_error(self):
        widget = Widget()
        widget.submitter.submit("1075")
        assert widget.submitter.error is not None

        attempt = widget.submitter.submit("1050")

        assert attempt.accepted
        assert widget.submitter.error is None

    def test_only_one_error_visible(self):
        widget = Widget()
        widget.submitter.submit("abc")
        widget.submitter.submit("1075")

        assert widget.submitter.error.reason == "NotOnIncrement"

    def test_second_submission_while_pending_is_refused(self):
        entered = threading.Event()
        release = threading.Event()

        class SlowService(FakeBidService):
            def place_bid(self, listing_id, amount):
                entered.set()
                release.wait(2)
                return super().place_bid(listing_id, amount)

        widget = Widget(service=SlowService())
        results = []
        worker = threading.Thread(target=lambda: results.append(widget.submitter.submit("1050")))
        worker.start()
        assert entered.wait(2)

        assert widget.submitter.pending
        second = widget.submitter.submit("1100")

        release.set()
        worker.join(2)

        assert second.reason == "SubmissionInProgress"
        assert results[0].accepted
        assert len(widget.service.calls) == 1
        assert not widget.submitter.pending

    def test_minimum_bid(self):
        widget = Widget(listing=make_listing(current_price=1200))
        assert widget.submitter.minimum_bid() == Decimal(1250)

    def test_minimum_bid_unavailable_for_invalid_listing(self):
        widget = Widget(listing=make_listing(starting_price=0))
        assert widget.submitter.minimum_bid() is None
