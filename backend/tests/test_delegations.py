"""
Tests for delegations: admin management, self-service delegation
requests and the grant that follows their approval.
"""
import uuid
from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.models.audit_log import AuditLog
from app.models.delegation import Delegation
from app.models.request_action import ActionType
from app.services.approvals import process_action
from app.services.delegations import (
    active_delegations_for,
    create_delegation,
    grant_from_request,
    submit_delegation_request,
)
from app.services.errors import NotFoundError, ValidationFailedError


def window(days: int = 7):
    start = datetime.utcnow() - timedelta(minutes=5)
    return start, start + timedelta(days=days)


# =============================================================================
# Admin-managed delegations
# =============================================================================

@pytest.mark.asyncio
async def test_admin_creates_delegation(async_client, login, db, admin, head, employee):
    starts_at, ends_at = window()
    login(admin)

    response = await async_client.post("/api/delegations/", json={
        "grantor_id": str(head.id),
        "grantee_id": str(employee.id),
        "starts_at": starts_at.isoformat(),
        "ends_at": ends_at.isoformat(),
    })

    assert response.status_code == 201
    data = response.json()
    assert data["grantor_name"] == "Hana Head"
    assert data["grantee_name"] == "Erin Employee"
    assert data["is_active"] is True
    assert data["is_current"] is True
    assert data["request_id"] is None

    audit = (await db.execute(select(AuditLog).where(AuditLog.entity_type == "DELEGATION"))).scalar_one()
    assert audit.action == "CREATE"
    assert audit.user_id == admin.id


@pytest.mark.asyncio
async def test_only_admin_creates_delegations(async_client, login, head, employee):
    starts_at, ends_at = window()
    login(head)

    response = await async_client.post("/api/delegations/", json={
        "grantor_id": str(head.id),
        "grantee_id": str(employee.id),
        "starts_at": starts_at.isoformat(),
        "ends_at": ends_at.isoformat(),
    })

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_window_must_be_forward(async_client, login, admin, head, employee):
    starts_at, ends_at = window()
    login(admin)

    response = await async_client.post("/api/delegations/", json={
        "grantor_id": str(head.id),
        "grantee_id": str(employee.id),
        "starts_at": ends_at.isoformat(),
        "ends_at": starts_at.isoformat(),
    })

    assert response.status_code == 422
    assert "End date must be after start date" in response.json()["error"]


@pytest.mark.asyncio
async def test_timezone_aware_window_is_stored_as_utc(async_client, login, db, admin, head, employee):
    login(admin)

    response = await async_client.post("/api/delegations/", json={
        "grantor_id": str(head.id),
        "grantee_id": str(employee.id),
        "starts_at": "2030-01-01T10:00:00+03:00",
        "ends_at": "2030-01-02T10:00:00+03:00",
    })

    assert response.status_code == 201
    delegation = (await db.execute(select(Delegation))).scalar_one()
    assert delegation.starts_at == datetime(2030, 1, 1, 7, 0)
    assert delegation.is_current() is False


@pytest.mark.asyncio
async def test_cannot_delegate_to_self(db, head):
    starts_at, ends_at = window()

    with pytest.raises(ValidationFailedError):
        await create_delegation(db, head.id, head.id, starts_at, ends_at)


@pytest.mark.asyncio
async def test_unknown_user_is_not_found(db, head):
    starts_at, ends_at = window()

    with pytest.raises(NotFoundError):
        await create_delegation(db, head.id, uuid.uuid4(), starts_at, ends_at)


@pytest.mark.asyncio
async def test_grantor_manages_own_delegation(async_client, login, db, head, employee, student):
    starts_at, ends_at = window()
    delegation = await create_delegation(db, head.id, employee.id, starts_at, ends_at)

    # Grantee and strangers cannot toggle it
    for user in (employee, student):
        login(user)
        response = await async_client.post(f"/api/delegations/{delegation.id}/toggle", json={"is_active": False})
        assert response.status_code == 403

    login(head)
    response = await async_client.post(f"/api/delegations/{delegation.id}/toggle", json={"is_active": False})
    assert response.status_code == 200
    assert response.json()["is_active"] is False

    response = await async_client.patch(
        f"/api/delegations/{delegation.id}",
        json={"ends_at": (ends_at + timedelta(days=3)).isoformat(), "is_active": True},
    )
    assert response.status_code == 200
    assert response.json()["is_active"] is True

    response = await async_client.patch(
        f"/api/delegations/{delegation.id}",
        json={"ends_at": (starts_at - timedelta(days=1)).isoformat()},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_deactivates(async_client, login, db, admin, head, employee):
    starts_at, ends_at = window()
    delegation = await create_delegation(db, head.id, employee.id, starts_at, ends_at)
    login(admin)

    response = await async_client.delete(f"/api/delegations/{delegation.id}")

    assert response.status_code == 200
    assert response.json()["is_active"] is False
    await db.refresh(delegation)
    assert delegation.is_active is False
    assert await active_delegations_for(db, employee.id) == []


@pytest.mark.asyncio
async def test_list_my_delegations(async_client, login, db, admin, head, employee, student):
    starts_at, ends_at = window()
    await create_delegation(db, head.id, employee.id, starts_at, ends_at)
    inactive = await create_delegation(db, student.id, employee.id, starts_at, ends_at)
    inactive.is_active = False
    await db.commit()

    login(employee)
    response = await async_client.get("/api/delegations/")
    assert [d["grantor_name"] for d in response.json()] == ["Hana Head"]

    response = await async_client.get("/api/delegations/", params={"include_inactive": True})
    assert len(response.json()) == 2

    login(head)
    assert len((await async_client.get("/api/delegations/")).json()) == 1

    response = await async_client.get("/api/delegations/all")
    assert response.status_code == 403

    login(admin)
    response = await async_client.get("/api/delegations/all")
    assert len(response.json()) == 2


@pytest.mark.asyncio
async def test_active_delegations_respect_window(db, head, employee):
    now = datetime.utcnow()
    await create_delegation(db, head.id, employee.id, now + timedelta(days=1), now + timedelta(days=2))

    assert await active_delegations_for(db, employee.id, now) == []
    assert len(await active_delegations_for(db, employee.id, now + timedelta(days=1, hours=1))) == 1
    assert await active_delegations_for(db, employee.id, now + timedelta(days=3)) == []


# =============================================================================
# Delegation requests
# =============================================================================

@pytest.mark.asyncio
async def test_delegation_request_goes_to_dean(async_client, login, db, head, employee, dean):
    starts_at, ends_at = window()
    login(head)

    response = await async_client.post("/api/delegations/requests", json={
        "grantee_id": str(employee.id),
        "starts_at": starts_at.isoformat(),
        "ends_at": ends_at.isoformat(),
        "reason": "Annual leave",
    })

    assert response.status_code == 201
    data = response.json()
    assert data["request_type"] == "delegation"
    assert data["form_name"] == "Delegation request"
    assert data["status"] == "pending"
    assert data["current_step"]["sla_hours"] == 24
    assert data["current_step"]["is_final"] is True
    assert data["submission_data"]["grantee_name"] == "Erin Employee"
    assert data["submission_data"]["reason"] == "Annual leave"

    # Only the dean can act on it
    login(dean)
    inbox = (await async_client.get("/api/inbox/")).json()
    assert [r["id"] for r in inbox] == [data["id"]]


@pytest.mark.asyncio
async def test_approved_delegation_request_grants_delegation(db, head, employee, dean):
    starts_at, ends_at = window()
    request = await submit_delegation_request(db, head, employee.id, starts_at, ends_at, "Conference")

    result = await process_action(db, request.id, dean, ActionType.APPROVE)

    assert result.request.status == "approved"
    delegation = (await db.execute(select(Delegation))).scalar_one()
    assert delegation.grantor_id == head.id
    assert delegation.grantee_id == employee.id
    assert delegation.request_id == request.id
    assert delegation.starts_at == starts_at
    assert delegation.ends_at == ends_at
    assert delegation.is_current()


@pytest.mark.asyncio
async def test_rejected_delegation_request_grants_nothing(db, head, employee, dean):
    starts_at, ends_at = window()
    request = await submit_delegation_request(db, head, employee.id, starts_at, ends_at, "Conference")

    await process_action(db, request.id, dean, ActionType.REJECT)

    assert (await db.execute(select(Delegation))).scalars().all() == []


@pytest.mark.asyncio
async def test_approve_with_changes_closes_delegation_request_without_grant(db, head, employee, dean):
    starts_at, ends_at = window()
    request = await submit_delegation_request(db, head, employee.id, starts_at, ends_at, "Conference")

    result = await process_action(db, request.id, dean, ActionType.APPROVE_WITH_CHANGES)

    assert result.request.status == "approved"
    assert (await db.execute(select(Delegation))).scalars().all() == []


@pytest.mark.asyncio
async def test_dean_delegation_request_goes_to_admin(db, dean, employee, admin):
    starts_at, ends_at = window()

    request = await submit_delegation_request(db, dean, employee.id, starts_at, ends_at, "Travel")

    assert request.current_step.approver_user_id == admin.id


@pytest.mark.asyncio
async def test_delegation_request_without_dean(db, head, employee):
    starts_at, ends_at = window()

    with pytest.raises(ValidationFailedError) as exc_info:
        await submit_delegation_request(db, head, employee.id, starts_at, ends_at, "Travel")

    assert exc_info.value.status_code == 422


@pytest.mark.asyncio
async def test_malformed_delegation_request_data(db, head, employee, dean):
    starts_at, ends_at = window()
    request = await submit_delegation_request(db, head, employee.id, starts_at, ends_at, "Travel")
    request.submission_data = {"grantee_id": "not-a-uuid"}

    with pytest.raises(ValidationFailedError):
        grant_from_request(db, request)
