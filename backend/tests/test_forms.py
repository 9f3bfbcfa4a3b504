"""
Tests for form templates: drafts, publishing, audience filtering.
"""
import pytest

from app.models.form_template import FormTemplate
from app.models.workflow import Workflow
from app.services.forms import is_available_to, missing_required_fields
from app.services.requests import submit_request


LEAVE_SCHEMA = {
    "fields": [
        {"name": "reason", "label": "Reason", "type": "textarea", "required": True},
        {"name": "from", "label": "From", "type": "date", "required": True},
    ]
}


def audience(**overrides):
    config = {"student": None, "employee": None, "colleges": [], "departments": []}
    config.update(overrides)
    return config


# =============================================================================
# Audience
# =============================================================================

@pytest.mark.asyncio
async def test_audience_rules(student, employee, head, college, department, other_department):
    form = FormTemplate(name="Any", schema={"fields": []}, is_active=True)

    form.audience_config = None
    assert is_available_to(form, student)

    form.audience_config = audience(student=False)
    assert not is_available_to(form, student)
    assert is_available_to(form, employee)
    # Flag applies to the literal role only
    assert is_available_to(form, head)

    form.audience_config = audience(employee=False)
    assert is_available_to(form, student)
    assert not is_available_to(form, employee)

    form.audience_config = audience(colleges=[str(college.id)])
    assert is_available_to(form, student)

    form.audience_config = audience(departments=[str(other_department.id)])
    assert not is_available_to(form, student)

    form.audience_config = audience(colleges=[str(other_department.college_id)])
    assert not is_available_to(form, employee)


@pytest.mark.asyncio
async def test_users_without_department_fail_org_filters(admin, department):
    form = FormTemplate(name="Any", schema={"fields": []}, is_active=True,
                        audience_config=audience(departments=[str(department.id)]))

    assert not is_available_to(form, admin)


def test_missing_required_fields():
    form = FormTemplate(name="Leave", schema=LEAVE_SCHEMA)

    assert missing_required_fields(form, {"reason": "x", "from": "2025-01-01"}) == []
    assert missing_required_fields(form, {"reason": "  "}) == ["Reason", "From"]
    assert missing_required_fields(form, {"reason": [], "from": {}}) == ["Reason", "From"]
    # Zero and False are real answers
    assert missing_required_fields(
        FormTemplate(name="n", schema={"fields": [{"name": "n", "required": True}]}), {"n": 0}
    ) == []


@pytest.mark.asyncio
async def test_available_forms_endpoint(async_client, login, db, student, employee, form):
    staff_only = FormTemplate(name="Overtime claim", schema={"fields": []}, is_active=True,
                              audience_config=audience(student=False))
    draft = FormTemplate(name="Draft form", schema={"fields": []}, is_active=False)
    db.add_all([staff_only, draft])
    await db.commit()

    login(student)
    response = await async_client.get("/api/forms/available")
    assert response.status_code == 200
    assert [f["name"] for f in response.json()] == ["Leave Request"]

    login(employee)
    response = await async_client.get("/api/forms/available")
    assert [f["name"] for f in response.json()] == ["Leave Request", "Overtime claim"]


# =============================================================================
# Admin lifecycle
# =============================================================================

@pytest.mark.asyncio
async def test_create_draft(async_client, login, admin):
    login(admin)

    response = await async_client.post("/api/forms/", json={"name": "Leave", "schema": LEAVE_SCHEMA})

    assert response.status_code == 201
    data = response.json()
    assert data["is_active"] is False
    assert data["schema"]["fields"][0]["name"] == "reason"
    assert data["workflow_id"] is None


@pytest.mark.asyncio
async def test_update_draft(async_client, login, admin, workflow):
    login(admin)
    created = (await async_client.post("/api/forms/", json={"name": "Leave", "schema": LEAVE_SCHEMA})).json()

    response = await async_client.put(f"/api/forms/{created['id']}", json={
        "name": "Leave (staff)",
        "schema": {"fields": []},
        "workflow_id": str(workflow.id),
    })

    assert response.status_code == 200
    assert response.json()["name"] == "Leave (staff)"
    assert response.json()["workflow_id"] == str(workflow.id)


@pytest.mark.asyncio
async def test_draft_with_unknown_workflow(async_client, login, admin):
    login(admin)

    response = await async_client.post("/api/forms/", json={
        "name": "Leave",
        "schema": LEAVE_SCHEMA,
        "workflow_id": "00000000-0000-0000-0000-000000000000",
    })

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_publish_with_existing_workflow(async_client, login, admin, workflow):
    login(admin)
    draft = (await async_client.post("/api/forms/", json={"name": "Leave", "schema": LEAVE_SCHEMA})).json()

    response = await async_client.post(f"/api/forms/{draft['id']}/publish", json={
        "audience_config": audience(employee=False),
        "workflow_mode": "existing",
        "workflow_id": str(workflow.id),
    })

    assert response.status_code == 200
    data = response.json()
    assert data["is_active"] is True
    assert data["workflow_id"] == str(workflow.id)
    assert data["audience_config"]["employee"] is False

    missing = await async_client.post(f"/api/forms/{draft['id']}/publish", json={
        "audience_config": audience(), "workflow_mode": "existing",
    })
    assert missing.status_code == 422


@pytest.mark.asyncio
async def test_publish_with_new_workflow(async_client, login, db, admin, roles):
    login(admin)
    draft = (await async_client.post("/api/forms/", json={"name": "Certificate", "schema": {"fields": []}})).json()

    response = await async_client.post(f"/api/forms/{draft['id']}/publish", json={
        "audience_config": audience(),
        "workflow_mode": "new",
        "new_workflow": {
            "name": "Certificate flow",
            "steps": [{"name": "Registrar", "order": 1, "approver_role_id": str(roles["employee"].id)}],
        },
    })

    assert response.status_code == 200
    workflow = await db.get(Workflow, response.json()["workflow_id"])
    assert workflow.name == "Certificate flow"
    assert [s.name for s in workflow.steps] == ["Registrar"]


@pytest.mark.asyncio
async def test_publish_new_workflow_failure_leaves_form_draft(async_client, login, db, admin):
    login(admin)
    draft = (await async_client.post("/api/forms/", json={"name": "Certificate", "schema": {"fields": []}})).json()

    response = await async_client.post(f"/api/forms/{draft['id']}/publish", json={
        "audience_config": audience(),
        "workflow_mode": "new",
        "new_workflow": {"name": "Broken flow", "steps": [{"name": "Nobody", "order": 1}]},
    })

    assert response.status_code == 422
    form = await db.get(FormTemplate, draft["id"])
    assert form.is_active is False
    assert form.workflow_id is None


@pytest.mark.asyncio
async def test_publish_without_workflow(async_client, login, admin, form):
    login(admin)

    response = await async_client.post(f"/api/forms/{form.id}/publish", json={
        "audience_config": audience(), "workflow_mode": "none",
    })

    assert response.status_code == 200
    assert response.json()["workflow_id"] is None


@pytest.mark.asyncio
async def test_toggle_form(async_client, login, admin, form):
    login(admin)

    response = await async_client.post(f"/api/forms/{form.id}/toggle", json={"is_active": False})

    assert response.status_code == 200
    assert response.json()["is_active"] is False


@pytest.mark.asyncio
async def test_delete_unused_form(async_client, login, db, admin, form):
    login(admin)

    response = await async_client.delete(f"/api/forms/{form.id}")

    assert response.json()["deleted"] is True
    assert (await async_client.get(f"/api/forms/{form.id}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_used_form_deactivates(async_client, login, db, admin, student, form, leave_data):
    await submit_request(db, student, form.id, leave_data)
    login(admin)

    response = await async_client.delete(f"/api/forms/{form.id}")

    assert response.json() == {
        "deleted": False,
        "deactivated": True,
        "message": "Form has requests and was deactivated",
    }
    assert (await async_client.get(f"/api/forms/{form.id}")).json()["is_active"] is False


@pytest.mark.asyncio
async def test_form_schema_endpoint(async_client, login, db, student, form):
    empty = FormTemplate(name="Empty", schema={}, is_active=True)
    db.add(empty)
    await db.commit()
    login(student)

    response = await async_client.get(f"/api/forms/{form.id}/schema")
    assert response.status_code == 200
    assert response.json()["name"] == "Leave Request"
    assert len(response.json()["schema"]["fields"]) == 3

    response = await async_client.get(f"/api/forms/{empty.id}/schema")
    assert response.status_code == 404
    assert response.json()["error"] == "Form schema not found"


@pytest.mark.asyncio
async def test_admin_endpoints_forbidden_for_others(async_client, login, head, form):
    login(head)

    assert (await async_client.get("/api/forms/")).status_code == 403
    assert (await async_client.post("/api/forms/", json={"name": "Leave", "schema": LEAVE_SCHEMA})).status_code == 403
    assert (await async_client.delete(f"/api/forms/{form.id}")).status_code == 403
