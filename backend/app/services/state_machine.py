"""
State machine for correspondence requests.
ALL request status changes must go through this module.
"""
import logging
from datetime import datetime
from typing import Optional, Dict, Any
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.request import Request, RequestStatus
from app.services.errors import ConflictError, NotFoundError

# Configure logger
logger = logging.getLogger(__name__)


# Define allowed status transitions
ALLOWED_TRANSITIONS: Dict[RequestStatus, list[RequestStatus]] = {
    RequestStatus.PENDING: [
        RequestStatus.PROCESSING,
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.RETURNED,
    ],
    RequestStatus.PROCESSING: [
        RequestStatus.PROCESSING,  # Advanced past another intermediate step
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.RETURNED,
    ],
    RequestStatus.RETURNED: [RequestStatus.PENDING],  # Requester resubmits
    RequestStatus.APPROVED: [],  # Terminal state
    RequestStatus.REJECTED: [],  # Terminal state
}

TERMINAL_STATUSES = {RequestStatus.APPROVED, RequestStatus.REJECTED}


class InvalidTransitionError(ConflictError):
    """Raised when an invalid status transition is attempted"""
    pass


_KEEP_STEP = object()


def transition_request(
    request: Request,
    to_status: RequestStatus,
    next_step_id: Any = _KEEP_STEP,
    metadata: Optional[Dict[str, Any]] = None
) -> Request:
    """
    Move a request to a new status with validation.

    The caller owns the transaction: nothing is committed here, so the
    status change lands atomically with the RequestAction that caused it.

    Args:
        request: The request to transition (already loaded in the session)
        to_status: Target status
        next_step_id: New step pointer. Omit to keep the current step.
            Terminal statuses always clear the pointer.
        metadata: Optional data included in the transition log line

    Returns:
        The same Request, mutated

    Raises:
        InvalidTransitionError: If transition is not allowed
    """
    current_status = RequestStatus(request.status)

    if to_status not in ALLOWED_TRANSITIONS.get(current_status, []):
        raise InvalidTransitionError(
            f"Invalid transition from {current_status.value} to {to_status.value}"
        )

    request.status = to_status.value
    request.updated_at = datetime.utcnow()

    if to_status in TERMINAL_STATUSES:
        request.current_step_id = None
    elif next_step_id is not _KEEP_STEP:
        request.current_step_id = next_step_id

    log_data = {
        "request_id": str(request.id),
        "reference_no": request.reference_no,
        "from_status": current_status.value,
        "to_status": to_status.value,
        "current_step_id": str(request.current_step_id) if request.current_step_id else None,
    }
    if metadata:
        log_data["metadata"] = metadata

    logger.info(f"Request status transition: {current_status.value} → {to_status.value}", extra=log_data)

    return request


def can_transition(from_status: RequestStatus, to_status: RequestStatus) -> bool:
    """Check if a transition is allowed without modifying anything"""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, [])


def is_terminal(status: str) -> bool:
    return RequestStatus(status) in TERMINAL_STATUSES


async def load_request(db: AsyncSession, request_id: UUID) -> Request:
    """Fetch a request or raise NotFoundError."""
    request = await db.get(Request, request_id)
    if not request:
        raise NotFoundError(f"Request {request_id} not found")
    return request
