"""
Tests for the approver inbox.
"""
from datetime import datetime, timedelta

import pytest

from app.models.form_template import FormTemplate
from app.models.request_action import ActionType
from app.models.workflow import Workflow, WorkflowStep
from app.services.approvals import process_action
from app.services.delegations import create_delegation
from app.services.inbox import action_history_for_actor, get_inbox, inbox_stats
from app.services.requests import resubmit_request, submit_request


@pytest.mark.asyncio
async def test_inbox_by_role(db, student, head, dean, employee, form, leave_data):
    request = await submit_request(db, student, form.id, leave_data)

    assert [r.id for r in await get_inbox(db, head)] == [request.id]
    assert await get_inbox(db, dean) == []
    assert await get_inbox(db, employee) == []

    await process_action(db, request.id, head, ActionType.APPROVE)

    assert await get_inbox(db, head) == []
    assert [r.id for r in await get_inbox(db, dean)] == [request.id]


@pytest.mark.asyncio
async def test_inbox_by_named_user(db, student, employee, roles):
    workflow = Workflow(name="Lab access", is_active=True)
    db.add(workflow)
    await db.flush()
    db.add(WorkflowStep(workflow_id=workflow.id, name="Lab manager", order=1, approver_user_id=employee.id))
    form = FormTemplate(name="Lab access", schema={"fields": []}, is_active=True, workflow_id=workflow.id)
    db.add(form)
    await db.commit()

    request = await submit_request(db, student, form.id, {})

    assert [r.id for r in await get_inbox(db, employee)] == [request.id]


@pytest.mark.asyncio
async def test_grantee_sees_grantor_items(db, student, head, employee, form, leave_data):
    request = await submit_request(db, student, form.id, leave_data)
    now = datetime.utcnow()
    await create_delegation(db, head.id, employee.id, now - timedelta(hours=1), now + timedelta(days=1))

    assert [r.id for r in await get_inbox(db, employee)] == [request.id]


@pytest.mark.asyncio
async def test_deactivated_grantor_passes_nothing(db, student, head, employee, form, leave_data):
    await submit_request(db, student, form.id, leave_data)
    now = datetime.utcnow()
    await create_delegation(db, head.id, employee.id, now - timedelta(hours=1), now + timedelta(days=1))
    head.is_active = False
    await db.commit()

    assert await get_inbox(db, employee) == []


@pytest.mark.asyncio
async def test_admin_sees_stepless_requests(db, student, admin, head):
    general = FormTemplate(name="General enquiry", schema={"fields": []}, is_active=True)
    db.add(general)
    await db.commit()

    request = await submit_request(db, student, general.id, {})

    assert request.current_step_id is None
    assert [r.id for r in await get_inbox(db, admin)] == [request.id]
    assert await get_inbox(db, head) == []


@pytest.mark.asyncio
async def test_inbox_oldest_first(db, student, employee, head, form, leave_data):
    newer = await submit_request(db, student, form.id, leave_data)
    older = await submit_request(db, employee, form.id, leave_data)
    older.submitted_at = newer.submitted_at - timedelta(hours=3)
    await db.commit()

    assert [r.id for r in await get_inbox(db, head)] == [older.id, newer.id]


@pytest.mark.asyncio
async def test_inbox_skips_returned_and_finished(db, student, head, form, leave_data):
    returned = await submit_request(db, student, form.id, leave_data)
    rejected = await submit_request(db, student, form.id, leave_data)
    waiting = await submit_request(db, student, form.id, leave_data)
    await process_action(db, returned.id, head, ActionType.REJECT_WITH_CHANGES)
    await process_action(db, rejected.id, head, ActionType.REJECT)

    assert [r.id for r in await get_inbox(db, head)] == [waiting.id]


@pytest.mark.asyncio
async def test_inbox_stats(db, student, head, form, leave_data):
    first = await submit_request(db, student, form.id, leave_data)
    second = await submit_request(db, student, form.id, leave_data)
    await submit_request(db, student, form.id, leave_data)
    await process_action(db, first.id, head, ActionType.APPROVE_WITH_CHANGES, "Trimmed to 2 days")
    await process_action(db, second.id, head, ActionType.REJECT)

    stats = await inbox_stats(db, head)

    assert stats == {"total_actions": 2, "approvals": 1, "rejections": 1, "pending_inbox": 1}


@pytest.mark.asyncio
async def test_history_keeps_latest_action_per_request(db, student, head, form, leave_data):
    request = await submit_request(db, student, form.id, leave_data)
    await process_action(db, request.id, head, ActionType.REJECT_WITH_CHANGES, "Add dates")
    await resubmit_request(db, request.id, student, leave_data)
    await process_action(db, request.id, head, ActionType.APPROVE, "Looks good")

    history = await action_history_for_actor(db, head.id)

    assert len(history) == 1
    assert history[0].comment == "Looks good"


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_inbox_endpoints(async_client, login, db, student, head, form, leave_data):
    request = await submit_request(db, student, form.id, leave_data)
    login(head)

    response = await async_client.get("/api/inbox/")
    assert response.status_code == 200
    assert [r["reference_no"] for r in response.json()] == [request.reference_no]
    assert response.json()[0]["current_step"]["name"] == "Head of department review"

    response = await async_client.post(f"/api/requests/{request.id}/actions", json={"action": "approve"})
    assert response.status_code == 200

    response = await async_client.get("/api/inbox/stats")
    assert response.json() == {"total_actions": 1, "approvals": 1, "rejections": 0, "pending_inbox": 0}

    response = await async_client.get("/api/inbox/history")
    history = response.json()
    assert len(history) == 1
    assert history[0]["action"] == "approve"
    assert history[0]["actor_name"] == "Hana Head"


@pytest.mark.asyncio
async def test_inbox_requires_login(async_client, db):
    response = await async_client.get("/api/inbox/")

    assert response.status_code == 401
