"""Counter session API: hand over a backend token, inspect or end the session."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from canteen_pos.api.dependencies import get_session, http_error
from canteen_pos.errors import CanteenError
from canteen_pos.session import CanteenSession


router = APIRouter(prefix="/api/session", tags=["session"])


class LoginRequest(BaseModel):
    """Token already issued by the backend's OTP flow."""
    token: str
    canteen_id: int
    canteen_name: Optional[str] = None


@router.post("", summary="Start a session")
async def login(body: LoginRequest, session: CanteenSession = Depends(get_session)):
    try:
        session.login(body.token, body.canteen_id, body.canteen_name)
    except CanteenError as e:
        raise http_error(e)
    return session.to_dict()


@router.get("", summary="Current session")
async def current_session(session: CanteenSession = Depends(get_session)):
    return session.to_dict()


@router.delete("", summary="End the session")
async def logout(session: CanteenSession = Depends(get_session)):
    session.logout()
    return session.to_dict()
