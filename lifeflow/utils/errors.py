class LifeFlowError(Exception):
    """Base class for errors reported back to the caller as JSON."""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class PermissionDenied(LifeFlowError):
    """Raised when the caller is not the party allowed to perform the action."""
    status_code = 403


class NotFound(LifeFlowError):
    status_code = 404


class Conflict(LifeFlowError):
    """Raised on illegal state transitions and duplicate records."""
    status_code = 409
