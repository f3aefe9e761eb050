"""Process-wide counter session: the auth token and the canteen it serves."""

import logging
from typing import Dict, Optional

from canteen_pos.errors import NotLoggedIn

logger = logging.getLogger(__name__)


class CanteenSession:
    """
    Holds the token issued by the backend after OTP login.

    Created once per process and passed explicitly to the gateway and the
    reconciler. login() and logout() are the only mutators.
    """

    def __init__(self):
        self.token: Optional[str] = None
        self.canteen_id: Optional[int] = None
        self.canteen_name: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return bool(self.token)

    def login(self, token: str, canteen_id: int, canteen_name: Optional[str] = None) -> None:
        if not token:
            raise NotLoggedIn("empty token")
        self.token = token
        self.canteen_id = canteen_id
        self.canteen_name = canteen_name
        logger.info(f"Session started for canteen {canteen_id}")

    def logout(self) -> None:
        if self.is_active:
            logger.info(f"Session ended for canteen {self.canteen_id}")
        self.token = None
        self.canteen_id = None
        self.canteen_name = None

    def require_token(self) -> str:
        if not self.token:
            raise NotLoggedIn("no active session; log in first")
        return self.token

    def require_canteen_id(self) -> int:
        self.require_token()
        if self.canteen_id is None:
            raise NotLoggedIn("session has no canteen")
        return self.canteen_id

    def auth_headers(self) -> Dict[str, str]:
        # Backend expects the raw token, no "Bearer" prefix
        return {"Authorization": self.require_token()}

    def to_dict(self) -> Dict[str, object]:
        return {
            "active": self.is_active,
            "canteen_id": self.canteen_id,
            "canteen_name": self.canteen_name,
        }
