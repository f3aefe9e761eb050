"""
Error taxonomy for the canteen POS sync service.

Every failure raised by the store, the gateway or the services derives from
CanteenError. Routers translate them to HTTP responses using status_code.
"""


class CanteenError(Exception):
    """Base class for all service errors."""

    status_code = 500


class MalformedResponse(CanteenError):
    """Gateway payload is missing the expected shape."""

    status_code = 502


class NetworkFailure(CanteenError):
    """Gateway unreachable or answered with a non-2xx status."""

    status_code = 502


class SessionExpired(NetworkFailure):
    """Backend rejected the auth token."""

    status_code = 401


class StorageFailure(CanteenError):
    """Local store read or write failed."""

    status_code = 500


class OrderNotFound(CanteenError):
    status_code = 404


class AlreadyCompleted(CanteenError):
    status_code = 409


class OrderCancelled(CanteenError):
    status_code = 409


class PrintFailure(CanteenError):
    """Print collaborator reported a failure; no state was changed."""

    status_code = 502


class OrderNotPlaced(CanteenError):
    """Order is in a status the counter cannot hand over."""

    status_code = 409


class SyncInProgress(CanteenError):
    status_code = 409


class NotLoggedIn(CanteenError):
    status_code = 401


class InvalidWalkin(CanteenError):
    status_code = 422


__all__ = [
    "CanteenError",
    "MalformedResponse",
    "NetworkFailure",
    "SessionExpired",
    "StorageFailure",
    "OrderNotFound",
    "AlreadyCompleted",
    "OrderCancelled",
    "OrderNotPlaced",
    "PrintFailure",
    "SyncInProgress",
    "NotLoggedIn",
    "InvalidWalkin",
]
