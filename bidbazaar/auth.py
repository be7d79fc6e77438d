"""
Authentication state.

``AuthState`` is an immutable snapshot handed explicitly to whatever needs
to know who is signed in. ``AuthStore`` produces new snapshots as the user
logs in and out.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .api import ApiClient
from .errors import NetworkOrServerError
from .models import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthState:
    token: Optional[str] = None
    user: Optional[User] = None
    is_authenticated: bool = False
    loading: bool = False
    error: Optional[str] = None

    def snapshot(self) -> Dict[str, Any]:
        """Summary attached to authentication rejections."""
        return {
            "isAuthenticated": self.is_authenticated,
            "hasToken": bool(self.token),
            "hasUser": self.user is not None,
            "userRole": self.user.role.value if self.user else "unknown",
        }


class AuthStore:
    """Holds the current ``AuthState`` and keeps the API client's token in sync."""

    def __init__(self, api: ApiClient, token: Optional[str] = None):
        self.api = api
        self.state = AuthState(token=token, loading=bool(token))
        self.api.token = token

    def _logged_out(self, error: Optional[str] = None) -> AuthState:
        self.api.token = None
        self.state = AuthState(error=error)
        return self.state

    def load_user(self) -> AuthState:
        """Fetch the current user for the stored token."""
        if not self.state.token:
            return self._logged_out()
        try:
            user = self.api.get_me()
        except NetworkOrServerError as e:
            logger.warning("Error loading user: %s", e)
            return self._logged_out()
        self.state = replace(self.state, user=user, is_authenticated=True, loading=False)
        return self.state

    def _signed_in(self, token: str) -> AuthState:
        self.api.token = token
        self.state = AuthState(token=token, is_authenticated=True, loading=True)
        return self.load_user()

    def login(self, email: str, password: str) -> AuthState:
        self.state = replace(self.state, loading=True, error=None)
        try:
            token = self.api.login(email, password)
        except NetworkOrServerError as e:
            logger.warning("Login failed: %s", e)
            return self._logged_out(e.message or "Login failed")
        logger.info("Signed in successfully")
        return self._signed_in(token)

    def register(self, data: dict) -> AuthState:
        self.state = replace(self.state, loading=True, error=None)
        try:
            token = self.api.register(data)
        except NetworkOrServerError as e:
            logger.warning("Registration failed: %s", e)
            return self._logged_out(e.message or "Registration failed")
        return self._signed_in(token)

    def logout(self) -> AuthState:
        logger.info("Signed out")
        return self._logged_out()

    def update_password(self, current_password: str, new_password: str) -> AuthState:
        try:
            self.api.update_password(current_password, new_password)
        except NetworkOrServerError as e:
            self.state = replace(self.state, loading=False, error=e.message or "Password update failed")
            return self.state
        self.state = replace(self.state, loading=False, error=None)
        return self.state

    def update_profile(self, data: dict) -> AuthState:
        self.state = replace(self.state, loading=True)
        try:
            user = self.api.update_profile(data)
        except NetworkOrServerError as e:
            self.state = replace(self.state, loading=False, error=e.message or "Failed to update profile")
            raise
        self.state = replace(self.state, user=user, loading=False, error=None)
        return self.state

    def clear_errors(self) -> AuthState:
        self.state = replace(self.state, error=None)
        return self.state
