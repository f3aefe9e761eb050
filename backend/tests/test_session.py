"""Tests for the process-wide counter session."""

import pytest

from canteen_pos.errors import NotLoggedIn
from canteen_pos.session import CanteenSession


class TestCanteenSession:
    def test_starts_logged_out(self):
        session = CanteenSession()

        assert not session.is_active
        with pytest.raises(NotLoggedIn):
            session.require_token()
        with pytest.raises(NotLoggedIn):
            session.require_canteen_id()

    def test_login_and_headers(self):
        session = CanteenSession()
        session.login("abc", 3, "North Block")

        assert session.require_canteen_id() == 3
        assert session.auth_headers() == {"Authorization": "abc"}
        assert session.to_dict() == {"active": True, "canteen_id": 3, "canteen_name": "North Block"}

    def test_empty_token_rejected(self):
        with pytest.raises(NotLoggedIn):
            CanteenSession().login("", 3)

    def test_logout_clears_everything(self, session):
        session.logout()

        assert session.to_dict() == {"active": False, "canteen_id": None, "canteen_name": None}
