"""
Exceptions raised by the service layer.

Routers translate these to HTTP errors via `app.api.errors.raise_http`.
"""


class WorkflowError(Exception):
    """Base class for expected, user-facing failures."""
    status_code = 400


class NotFoundError(WorkflowError):
    status_code = 404


class PermissionDeniedError(WorkflowError):
    status_code = 403


class ConflictError(WorkflowError):
    """The target is in a state that does not allow the operation."""
    status_code = 409


class ValidationFailedError(WorkflowError):
    status_code = 422
