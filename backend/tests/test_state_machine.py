"""
Tests for the request state machine.

Validates:
- All valid status transitions
- Invalid transitions raise InvalidTransitionError
- Terminal statuses clear the step pointer
- Step pointer is kept unless a new one is given
"""
import uuid

import pytest

from app.models.request import Request, RequestStatus
from app.services.errors import ConflictError, NotFoundError
from app.services.state_machine import (
    InvalidTransitionError,
    can_transition,
    is_terminal,
    load_request,
    transition_request,
)


def make_request(status: RequestStatus, step_id=None) -> Request:
    return Request(
        id=uuid.uuid4(),
        reference_no="REQ-TEST",
        requester_id=uuid.uuid4(),
        status=status.value,
        current_step_id=step_id,
        submission_data={},
    )


# =============================================================================
# Valid Transitions
# =============================================================================

def test_pending_to_processing_moves_step():
    old_step, new_step = uuid.uuid4(), uuid.uuid4()
    request = make_request(RequestStatus.PENDING, old_step)

    transition_request(request, RequestStatus.PROCESSING, next_step_id=new_step)

    assert request.status == "processing"
    assert request.current_step_id == new_step
    assert request.updated_at is not None


def test_processing_to_processing_for_intermediate_steps():
    request = make_request(RequestStatus.PROCESSING, uuid.uuid4())
    third_step = uuid.uuid4()

    transition_request(request, RequestStatus.PROCESSING, next_step_id=third_step)

    assert request.current_step_id == third_step


def test_returned_keeps_current_step():
    step = uuid.uuid4()
    request = make_request(RequestStatus.PENDING, step)

    transition_request(request, RequestStatus.RETURNED)

    assert request.status == "returned"
    assert request.current_step_id == step


def test_resubmission_goes_back_to_pending():
    step = uuid.uuid4()
    request = make_request(RequestStatus.RETURNED, step)

    transition_request(request, RequestStatus.PENDING)

    assert request.status == "pending"
    assert request.current_step_id == step


@pytest.mark.parametrize("terminal", [RequestStatus.APPROVED, RequestStatus.REJECTED])
def test_terminal_status_clears_step(terminal):
    request = make_request(RequestStatus.PROCESSING, uuid.uuid4())

    transition_request(request, terminal, next_step_id=uuid.uuid4())

    assert request.status == terminal.value
    assert request.current_step_id is None


# =============================================================================
# Invalid Transitions
# =============================================================================

@pytest.mark.parametrize("terminal", [RequestStatus.APPROVED, RequestStatus.REJECTED])
@pytest.mark.parametrize("target", list(RequestStatus))
def test_terminal_statuses_have_no_exits(terminal, target):
    request = make_request(terminal)

    with pytest.raises(InvalidTransitionError):
        transition_request(request, target)

    assert request.status == terminal.value


def test_returned_cannot_be_approved_directly():
    request = make_request(RequestStatus.RETURNED, uuid.uuid4())

    with pytest.raises(InvalidTransitionError) as exc_info:
        transition_request(request, RequestStatus.APPROVED)

    assert "returned to approved" in str(exc_info.value)


def test_invalid_transition_is_a_conflict():
    assert issubclass(InvalidTransitionError, ConflictError)
    assert InvalidTransitionError.status_code == 409


def test_can_transition_and_is_terminal():
    assert can_transition(RequestStatus.PENDING, RequestStatus.RETURNED)
    assert can_transition(RequestStatus.RETURNED, RequestStatus.PENDING)
    assert not can_transition(RequestStatus.PENDING, RequestStatus.PENDING)
    assert not can_transition(RequestStatus.APPROVED, RequestStatus.PENDING)

    assert is_terminal("approved")
    assert is_terminal("rejected")
    assert not is_terminal("returned")


@pytest.mark.asyncio
async def test_load_request_missing_raises_not_found(db):
    with pytest.raises(NotFoundError):
        await load_request(db, uuid.uuid4())
