"""
Delegations API endpoints.
Admin-managed delegations and self-service delegation requests.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_client_ip, get_current_user, require_admin
from app.api.errors import raise_http
from app.database import get_db
from app.models.delegation import Delegation
from app.models.user import User
from app.schemas.delegation import (
    DelegationCreate,
    DelegationRequestCreate,
    DelegationResponse,
    DelegationToggle,
    DelegationUpdate,
)
from app.schemas.request import RequestResponse
from app.services import delegations as delegation_service
from app.services.audit import log_audit_action
from app.services.errors import WorkflowError

logger = logging.getLogger(__name__)
router = APIRouter()


def build_delegation_response(delegation: Delegation) -> DelegationResponse:
    """Build DelegationResponse from a Delegation model."""
    return DelegationResponse(
        id=delegation.id,
        grantor_id=delegation.grantor_id,
        grantee_id=delegation.grantee_id,
        grantor_name=delegation.grantor.full_name if delegation.grantor else None,
        grantee_name=delegation.grantee.full_name if delegation.grantee else None,
        starts_at=delegation.starts_at,
        ends_at=delegation.ends_at,
        is_active=delegation.is_active,
        is_current=delegation.is_current(),
        request_id=delegation.request_id,
        created_at=delegation.created_at,
    )


async def _load_managed(db: AsyncSession, delegation_id: UUID, user: User) -> Delegation:
    """Admins manage every delegation; grantors manage their own."""
    try:
        delegation = await delegation_service.get_delegation(db, delegation_id)
    except WorkflowError as e:
        raise_http(e)
    if not user.is_admin() and delegation.grantor_id != user.id:
        raise HTTPException(status_code=403, detail="You cannot manage this delegation")
    return delegation


@router.get("/", response_model=list[DelegationResponse])
async def list_my_delegations(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delegations where the current user is grantor or grantee."""
    delegations = await delegation_service.list_user_delegations(db, current_user.id, include_inactive)
    return [build_delegation_response(d) for d in delegations]


@router.get("/all", response_model=list[DelegationResponse])
async def list_all_delegations(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return [build_delegation_response(d) for d in await delegation_service.list_all_delegations(db)]


@router.post("/", response_model=DelegationResponse, status_code=201)
async def create_delegation(
    body: DelegationCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        delegation = await delegation_service.create_delegation(
            db, body.grantor_id, body.grantee_id, body.starts_at, body.ends_at
        )
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(
        db, admin.id, "CREATE", "DELEGATION", str(delegation.id),
        {"grantor_id": str(body.grantor_id), "grantee_id": str(body.grantee_id)},
        get_client_ip(request),
    )
    return build_delegation_response(delegation)


@router.patch("/{delegation_id}", response_model=DelegationResponse)
async def update_delegation(
    delegation_id: UUID,
    body: DelegationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await _load_managed(db, delegation_id, current_user)
    try:
        delegation = await delegation_service.update_delegation(
            db, delegation_id, body.starts_at, body.ends_at, body.is_active
        )
    except WorkflowError as e:
        raise_http(e)
    return build_delegation_response(delegation)


@router.post("/{delegation_id}/toggle", response_model=DelegationResponse)
async def toggle_delegation(
    delegation_id: UUID,
    body: DelegationToggle,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await _load_managed(db, delegation_id, current_user)
    delegation = await delegation_service.set_delegation_active(db, delegation_id, body.is_active)
    return build_delegation_response(delegation)


@router.delete("/{delegation_id}", response_model=DelegationResponse)
async def deactivate_delegation(
    delegation_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Delegations are deactivated, never removed."""
    await _load_managed(db, delegation_id, current_user)
    delegation = await delegation_service.set_delegation_active(db, delegation_id, False)
    return build_delegation_response(delegation)


@router.post("/requests", response_model=RequestResponse, status_code=201)
async def request_delegation(
    body: DelegationRequestCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    File a delegation request for the dean (or, for deans, an admin)
    to approve. Approval creates the delegation.
    """
    try:
        return await delegation_service.submit_delegation_request(
            db, current_user, body.grantee_id, body.starts_at, body.ends_at, body.reason
        )
    except WorkflowError as e:
        raise_http(e)
