"""
Wire models for the BidBazaar REST API.

Each model mirrors one JSON document returned by the backend. Field names
follow Python conventions; aliases carry the camelCase (and Mongo ``_id``)
names used on the wire.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ListingStatus(str, Enum):
    """Status persisted by the backend"""
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"
    ENDED = "ended"


class EffectiveStatus(str, Enum):
    """Status as derived on the client from stored status and the clock"""
    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"
    SOLD = "sold"
    REJECTED = "rejected"
    EXPIRED = "expired"


class BidStatus(str, Enum):
    ACTIVE = "active"
    WON = "won"
    LOST = "lost"


class UserRole(str, Enum):
    ADMIN = "admin"
    BUYER = "buyer"
    VENDOR = "vendor"


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserRef(WireModel):
    """A populated user reference (bidder, vendor or winner)"""
    id: str = Field(..., alias="_id")
    name: Optional[str] = None
    email: Optional[str] = None


class User(WireModel):
    """The authenticated user as returned by ``/users/me``"""
    id: str = Field(..., alias="_id")
    name: str
    email: Optional[str] = None
    role: UserRole = UserRole.BUYER
    phone: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_plain_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and "_id" not in data and "id" in data:
            data = {**data, "_id": data["id"]}
        return data


class Listing(WireModel):
    """An item offered for auction ("product" on the wire)"""
    id: str = Field(..., alias="_id")
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    status: ListingStatus = ListingStatus.PENDING
    starting_price: Decimal = Field(..., alias="startingPrice")
    current_price: Optional[Decimal] = Field(None, alias="currentPrice")
    start_time: Optional[datetime] = Field(None, alias="startTime")
    end_time: datetime = Field(..., alias="endTime")
    duration: Optional[int] = None
    winner: Optional[Union[UserRef, str]] = None
    vendor: Optional[Union[UserRef, str]] = None
    admin_remarks: Optional[str] = Field(None, alias="adminRemarks")

    @field_validator("start_time", "end_time")
    @classmethod
    def _default_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @model_validator(mode="after")
    def _default_current_price(self) -> "Listing":
        if self.current_price is None:
            self.current_price = self.starting_price
        return self

    @property
    def winner_id(self) -> Optional[str]:
        if isinstance(self.winner, UserRef):
            return self.winner.id
        return self.winner or None


class Bid(WireModel):
    """A single bid on a listing"""
    id: str = Field(..., alias="_id")
    product: Optional[Union[str, dict]] = None
    bidder: Optional[Union[UserRef, str]] = None
    amount: Decimal
    status: BidStatus = BidStatus.ACTIVE
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    @field_validator("created_at")
    @classmethod
    def _default_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @property
    def product_id(self) -> Optional[str]:
        if isinstance(self.product, dict):
            return self.product.get("_id")
        return self.product


class BidPlacement(WireModel):
    """The ``data`` block of a successful ``POST /bids``"""
    bid: Optional[Bid] = None
    wallet_balance: Optional[Decimal] = Field(None, alias="walletBalance")
    amount_deducted: Decimal = Field(Decimal(0), alias="amountDeducted")
    previous_bid: Decimal = Field(Decimal(0), alias="previousBid")

    @property
    def raised_existing_bid(self) -> bool:
        return self.previous_bid > 0


class Notification(WireModel):
    id: str = Field(..., alias="_id")
    message: Optional[str] = None
    type: Optional[str] = None
    read: bool = False
    read_at: Optional[datetime] = Field(None, alias="readAt")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    link: Optional[str] = None


def sort_bid_history(bids: List[Bid]) -> List[Bid]:
    """Most recent first; bids without a timestamp fall back to amount."""
    epoch = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(bids, key=lambda b: (b.created_at or epoch, b.amount), reverse=True)
