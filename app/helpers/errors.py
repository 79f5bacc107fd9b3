class CompError(Exception):
    """Base class for failures surfaced to the calling climber/admin."""

    status_code = 400
    message = "Request could not be completed"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class BadRequest(CompError):
    status_code = 400
    message = "Bad request"


class NotAllowed(CompError):
    status_code = 403
    message = "Not allowed"


class NotFound(CompError):
    status_code = 404
    message = "Not found"


class AttemptLocked(CompError):
    # Non-retryable: validated entries only change through an admin override
    status_code = 409
    message = "Cannot modify a validated boulder"


class InvalidToken(CompError):
    status_code = 404
    message = "Invalid or expired code"


class BoulderInUse(CompError):
    status_code = 409
    message = "Boulder has recorded attempts; deactivate it instead of deleting"


class NotAuthenticated(CompError):
    status_code = 401
    message = "You must be logged in"
