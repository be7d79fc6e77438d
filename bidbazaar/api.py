"""
HTTP client for the BidBazaar REST API, built on requests.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from .config import Config
from .errors import NetworkOrServerError
from .increments import to_decimal
from .models import Bid, BidPlacement, Listing, Notification, User

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Request failed"

MIN_RELIST_MINUTES = 1
MAX_RELIST_MINUTES = 60


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or GENERIC_ERROR
    if isinstance(payload, dict):
        return payload.get("error") or payload.get("message") or GENERIC_ERROR
    if isinstance(payload, str) and payload:
        return payload
    return GENERIC_ERROR


def _unwrap(payload: Any) -> Any:
    """Most endpoints answer ``{success, data}``; a few answer the bare value."""
    if isinstance(payload, dict) and "data" in payload:
        return payload["data"]
    return payload


class ApiClient:
    """Helper class for making API requests with bearer authentication."""

    def __init__(self, base_url: Optional[str] = None, token: Optional[str] = None,
                 timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or Config.API_URL).rstrip('/')
        self.token = token
        self.timeout = timeout if timeout is not None else Config.REQUEST_TIMEOUT
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, data: Optional[dict] = None,
                params: Optional[dict] = None) -> Any:
        """Send a request and return the decoded JSON body, raising on failure."""
        url = f"{self.base_url}{path}"
        logger.debug("API request %s %s params=%s data=%s", method, url, params, data)
        try:
            response = self.session.request(
                method, url, json=data, params=params,
                headers=self._headers(), timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("API transport error %s %s: %s", method, url, e)
            raise NetworkOrServerError(f"Could not reach server: {e}") from e

        logger.debug("API response %s %s -> %s", method, url, response.status_code)
        if not response.ok:
            message = _error_message(response)
            logger.warning("API error %s %s -> %s: %s", method, url, response.status_code, message)
            raise NetworkOrServerError(message, status_code=response.status_code,
                                       payload=response.text)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise NetworkOrServerError("Malformed response from server",
                                       status_code=response.status_code) from e

    def get(self, path: str, params: Optional[dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, data: Optional[dict] = None) -> Any:
        return self.request("POST", path, data=data)

    def put(self, path: str, data: Optional[dict] = None) -> Any:
        return self.request("PUT", path, data=data)

    def patch(self, path: str, data: Optional[dict] = None) -> Any:
        return self.request("PATCH", path, data=data)

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    @staticmethod
    def _parse(model, payload: Any):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise NetworkOrServerError(f"Malformed {model.__name__} in response: {e}") from e

    # Listings

    def get_listing(self, listing_id: str) -> Listing:
        return self._parse(Listing, _unwrap(self.get(f"/products/{listing_id}")))

    def get_listings(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Listing]:
        params = {}
        if status:
            params["status"] = status
        if limit:
            params["limit"] = limit
        items = _unwrap(self.get("/products", params=params or None)) or []
        return [self._parse(Listing, item) for item in items]

    def relist_listing(self, listing_id: str, starting_price: int, duration: int) -> Listing:
        """Relist an ended listing with a new starting price and a duration in minutes."""
        price = to_decimal(starting_price) if starting_price is not None else Decimal(0)
        if not price.is_finite() or price <= 0 or price != price.to_integral_value():
            raise ValueError("Starting price must be a positive whole number")
        if not MIN_RELIST_MINUTES <= int(duration) <= MAX_RELIST_MINUTES:
            raise ValueError(f"Duration must be between {MIN_RELIST_MINUTES} and {MAX_RELIST_MINUTES} minutes")
        payload = self.post(f"/products/{listing_id}/relist",
                            {"startingPrice": int(price), "duration": int(duration)})
        return self._parse(Listing, _unwrap(payload))

    # Bids

    def get_listing_bids(self, listing_id: str) -> List[Bid]:
        items = _unwrap(self.get(f"/bids/product/{listing_id}")) or []
        return [self._parse(Bid, item) for item in items]

    def get_user_bids(self) -> List[Bid]:
        items = _unwrap(self.get("/bids/user")) or []
        return [self._parse(Bid, item) for item in items]

    def place_bid(self, listing_id: str, amount: Decimal) -> BidPlacement:
        amount = Decimal(str(amount))
        # The backend stores plain JSON numbers.
        number = int(amount) if amount == amount.to_integral_value() else float(amount)
        payload = self.post("/bids", {"productId": listing_id, "amount": number})
        return self._parse(BidPlacement, _unwrap(payload) or {})

    # Auth

    def login(self, email: str, password: str) -> str:
        payload = self.post("/auth/login", {"email": email, "password": password})
        return self._token(payload)

    def register(self, data: dict) -> str:
        payload = self.post("/auth/register", data)
        return self._token(payload)

    @staticmethod
    def _token(payload: Any) -> str:
        token = payload.get("token") if isinstance(payload, dict) else None
        if not token:
            raise NetworkOrServerError("No token in authentication response")
        return token

    def get_me(self) -> User:
        return self._parse(User, _unwrap(self.get("/users/me")))

    def update_password(self, current_password: str, new_password: str) -> None:
        self.put("/auth/updatepassword",
                 {"currentPassword": current_password, "newPassword": new_password})

    def update_profile(self, data: dict) -> User:
        return self._parse(User, _unwrap(self.put("/users/updateprofile", data)))

    # Notifications

    def get_notifications(self, page: int = 1, unread_only: bool = False) -> Dict[str, Any]:
        payload = self.get("/notifications",
                           params={"page": page, "unreadOnly": str(unread_only).lower()}) or {}
        items = [self._parse(Notification, item) for item in payload.get("data") or []]
        unread = (payload.get("pagination") or {}).get("unreadCount", 0)
        return {"notifications": items, "unread_count": unread}

    def get_unread_count(self) -> int:
        payload = self.get("/notifications/unread-count") or {}
        return int(payload.get("count") or 0)

    def mark_notification_read(self, notification_id: str) -> None:
        self.patch(f"/notifications/{notification_id}/read")

    def mark_all_notifications_read(self) -> None:
        self.patch("/notifications/mark-all-read")

    def delete_notification(self, notification_id: str) -> None:
        self.delete(f"/notifications/{notification_id}")
