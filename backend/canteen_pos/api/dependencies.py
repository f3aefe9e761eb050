"""FastAPI dependencies pulling the shared services off app.state."""

from fastapi import HTTPException, Request

from canteen_pos.errors import CanteenError
from canteen_pos.gateway import OrderGateway
from canteen_pos.services.completion import OrderCompletionWorkflow
from canteen_pos.services.summary import SummaryAggregator
from canteen_pos.services.sync import SyncReconciler
from canteen_pos.services.walkins import WalkinService
from canteen_pos.session import CanteenSession
from canteen_pos.storage import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_session(request: Request) -> CanteenSession:
    return request.app.state.session


def get_gateway(request: Request) -> OrderGateway:
    return request.app.state.gateway


def get_reconciler(request: Request) -> SyncReconciler:
    return request.app.state.reconciler


def get_workflow(request: Request) -> OrderCompletionWorkflow:
    return request.app.state.workflow


def get_summary(request: Request) -> SummaryAggregator:
    return request.app.state.summary


def get_walkins(request: Request) -> WalkinService:
    return request.app.state.walkins


def http_error(e: CanteenError) -> HTTPException:
    """Translate a domain error into the HTTPException the routers raise."""
    return HTTPException(status_code=e.status_code, detail=str(e))
