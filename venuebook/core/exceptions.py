"""
Typed failures raised by the reservation core.

Services never raise HTTPException; the API layer maps each class to a
status code through a single exception handler (see venuebook.main).
"""


class ReservationError(Exception):
    """Base class for every failure the core reports to its caller."""

    status_code = 500
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "detail": self.message}


class ValidationError(ReservationError):
    """Malformed or missing input, e.g. end time before start time."""

    status_code = 400


class NotFoundError(ReservationError):
    status_code = 404


class ConflictError(ReservationError):
    """Venue not bookable, or the interval overlaps an active booking."""

    status_code = 409


class PolicyViolationError(ReservationError):
    """A configured booking policy was breached. `rule` names which one."""

    status_code = 422

    def __init__(self, rule: str, message: str):
        self.rule = rule
        super().__init__(message)

    def to_dict(self) -> dict:
        return {**super().to_dict(), "rule": self.rule}


class AuthorizationError(ReservationError):
    status_code = 403


class InvalidStateTransitionError(ReservationError):
    status_code = 409


class PaymentError(ReservationError):
    status_code = 400


class TransientStorageError(ReservationError):
    """Contention or a deadline hit inside the storage transaction.

    Nothing was written; the same request can be retried.
    """

    status_code = 503
    retryable = True
