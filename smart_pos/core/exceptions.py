"""
Domain Exceptions

Raised by the service layer and translated into the
``{"success": false, "error": ...}`` envelope by the HTTP exception
handlers in ``smart_pos.main`` and into negative acknowledgements by
the socket handlers.
"""


class PosError(Exception):
    """Base class for errors a client can act on."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequestError(PosError):
    status_code = 400


class NotFoundError(PosError):
    status_code = 404


class ConflictError(PosError):
    status_code = 409


class InvalidTransitionError(ConflictError):
    """Order status change not allowed by the lifecycle."""

    def __init__(self, order_id: str, current: str, requested: str):
        super().__init__(
            f"Order {order_id} cannot move from '{current}' to '{requested}'"
        )
        self.order_id = order_id
        self.current = current
        self.requested = requested
