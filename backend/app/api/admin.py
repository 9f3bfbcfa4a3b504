"""
Admin API endpoints.
Users, roles, colleges, departments and the audit trail.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import get_client_ip, require_admin
from app.api.errors import raise_http
from app.database import get_db
from app.models.user import User
from app.schemas.admin import (
    AdminStats,
    AuditLogResponse,
    CollegeCreate,
    CollegeResponse,
    CollegeUpdate,
    DepartmentCreate,
    DepartmentResponse,
    DepartmentUpdate,
    RoleCreate,
    RoleResponse,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserUpdate,
)
from app.services import admin as admin_service
from app.services.audit import list_audit_logs, log_audit_action
from app.services.errors import WorkflowError
from app.services.reports import admin_overview

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/stats", response_model=AdminStats)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return await admin_overview(db)


# Users
@router.get("/users", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    users, total = await admin_service.list_users(db, page, limit)
    return UserListResponse(
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        limit=limit,
    )


@router.post("/users", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        user = await admin_service.create_user(db, body)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(
        db, admin.id, "CREATE", "USER", str(user.id),
        {"university_id": user.university_id, "role": user.role_name}, get_client_ip(request),
    )
    return user


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    body: UserUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        user = await admin_service.update_user(db, user_id, body)
    except WorkflowError as e:
        raise_http(e)

    # Never write the password into the audit trail
    fields = sorted(k for k in body.model_dump(exclude_unset=True) if k != "password")
    await log_audit_action(
        db, admin.id, "UPDATE", "USER", str(user_id),
        {"updated_fields": fields, "password_changed": body.password is not None},
        get_client_ip(request),
    )
    return user


@router.delete("/users/{user_id}", response_model=UserResponse)
async def deactivate_user(
    user_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        user = await admin_service.deactivate_user(db, user_id)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(db, admin.id, "DEACTIVATE", "USER", str(user_id), None, get_client_ip(request))
    return user


# Roles
@router.get("/roles", response_model=list[RoleResponse])
async def list_roles(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return await admin_service.list_roles(db)


@router.post("/roles", response_model=RoleResponse, status_code=201)
async def create_role(
    body: RoleCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        return await admin_service.create_role(db, body.role_name, body.permissions)
    except WorkflowError as e:
        raise_http(e)


# Colleges
@router.get("/colleges", response_model=list[CollegeResponse])
async def list_colleges(
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return await admin_service.list_colleges(db)


@router.post("/colleges", response_model=CollegeResponse, status_code=201)
async def create_college(
    body: CollegeCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        college = await admin_service.create_college(db, body)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(db, admin.id, "CREATE", "COLLEGE", str(college.id), {"name": college.name}, get_client_ip(request))
    return college


@router.patch("/colleges/{college_id}", response_model=CollegeResponse)
async def update_college(
    college_id: UUID,
    body: CollegeUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        return await admin_service.update_college(db, college_id, body)
    except WorkflowError as e:
        raise_http(e)


@router.delete("/colleges/{college_id}", status_code=204)
async def delete_college(
    college_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        await admin_service.delete_college(db, college_id)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(db, admin.id, "DELETE", "COLLEGE", str(college_id), None, get_client_ip(request))


# Departments
@router.get("/departments", response_model=list[DepartmentResponse])
async def list_departments(
    college_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return await admin_service.list_departments(db, college_id)


@router.post("/departments", response_model=DepartmentResponse, status_code=201)
async def create_department(
    body: DepartmentCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        department = await admin_service.create_department(db, body)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(
        db, admin.id, "CREATE", "DEPARTMENT", str(department.id), {"name": department.dept_name}, get_client_ip(request)
    )
    return department


@router.patch("/departments/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: UUID,
    body: DepartmentUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        return await admin_service.update_department(db, department_id, body)
    except WorkflowError as e:
        raise_http(e)


@router.delete("/departments/{department_id}", status_code=204)
async def delete_department(
    department_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    try:
        await admin_service.delete_department(db, department_id)
    except WorkflowError as e:
        raise_http(e)

    await log_audit_action(db, admin.id, "DELETE", "DEPARTMENT", str(department_id), None, get_client_ip(request))


# Audit trail
@router.get("/audit-logs", response_model=list[AuditLogResponse])
async def get_audit_logs(
    entity_type: Optional[str] = None,
    user_id: Optional[UUID] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin)
):
    return await list_audit_logs(db, entity_type, user_id, start_date, end_date, limit)
