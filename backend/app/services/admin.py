"""User, role and organization administration."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.organization import College, Department
from app.models.user import Role, User
from app.schemas.admin import (
    CollegeCreate,
    CollegeUpdate,
    DepartmentCreate,
    DepartmentUpdate,
    UserCreate,
    UserUpdate,
)
from app.services.errors import ConflictError, NotFoundError, ValidationFailedError
from app.services.security import hash_password

logger = logging.getLogger(__name__)


async def _require(db: AsyncSession, model, obj_id: Optional[UUID], label: str):
    if obj_id is None:
        return None
    obj = await db.get(model, obj_id)
    if not obj:
        raise ValidationFailedError(f"{label} {obj_id} not found")
    return obj


# Users

async def list_users(db: AsyncSession, page: int = 1, limit: int = 50) -> tuple[list[User], int]:
    total = (await db.execute(select(func.count(User.id)))).scalar_one()
    result = await db.execute(
        select(User).order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return list(result.scalars().all()), total


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    existing = await db.execute(select(User.id).where(User.university_id == data.university_id))
    if existing.scalar_one_or_none():
        raise ConflictError(f"University ID {data.university_id} is already registered")

    await _require(db, Role, data.role_id, "Role")
    await _require(db, Department, data.department_id, "Department")

    user = User(
        university_id=data.university_id,
        full_name=data.full_name,
        email=data.email,
        phone=data.phone,
        password_hash=hash_password(data.password),
        role_id=data.role_id,
        department_id=data.department_id,
        is_active=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user.university_id} created")
    return user


async def update_user(db: AsyncSession, user_id: UUID, data: UserUpdate) -> User:
    user = await get_user(db, user_id)
    changes = data.model_dump(exclude_unset=True)

    if "role_id" in changes:
        await _require(db, Role, changes["role_id"], "Role")
    if changes.get("department_id"):
        await _require(db, Department, changes["department_id"], "Department")

    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)

    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    return user


async def deactivate_user(db: AsyncSession, user_id: UUID) -> User:
    """Users are never hard-deleted; their actions stay attributable."""
    user = await get_user(db, user_id)
    user.is_active = False
    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user.university_id} deactivated")
    return user


# Roles

async def list_roles(db: AsyncSession) -> list[Role]:
    result = await db.execute(select(Role).order_by(Role.role_name))
    return list(result.scalars().all())


async def create_role(db: AsyncSession, role_name: str, permissions: list[str]) -> Role:
    existing = await db.execute(select(Role.id).where(Role.role_name == role_name))
    if existing.scalar_one_or_none():
        raise ConflictError(f"Role {role_name} already exists")
    role = Role(role_name=role_name, permissions=permissions)
    db.add(role)
    await db.commit()
    await db.refresh(role)
    return role


# Colleges

async def list_colleges(db: AsyncSession) -> list[College]:
    result = await db.execute(select(College).order_by(College.name))
    return list(result.scalars().all())


async def create_college(db: AsyncSession, data: CollegeCreate) -> College:
    await _require(db, User, data.dean_id, "User")
    college = College(name=data.name, dean_id=data.dean_id)
    db.add(college)
    await db.commit()
    await db.refresh(college)
    return college


async def update_college(db: AsyncSession, college_id: UUID, data: CollegeUpdate) -> College:
    college = await db.get(College, college_id)
    if not college:
        raise NotFoundError(f"College {college_id} not found")
    changes = data.model_dump(exclude_unset=True)
    if changes.get("dean_id"):
        await _require(db, User, changes["dean_id"], "User")
    for field, value in changes.items():
        setattr(college, field, value)
    await db.commit()
    await db.refresh(college)
    return college


async def delete_college(db: AsyncSession, college_id: UUID) -> None:
    college = await db.get(College, college_id)
    if not college:
        raise NotFoundError(f"College {college_id} not found")
    departments = await db.execute(
        select(func.count(Department.id)).where(Department.college_id == college_id)
    )
    if departments.scalar_one():
        raise ConflictError("Cannot delete a college that still has departments")
    await db.delete(college)
    await db.commit()


# Departments

async def list_departments(db: AsyncSession, college_id: Optional[UUID] = None) -> list[Department]:
    query = select(Department)
    if college_id:
        query = query.where(Department.college_id == college_id)
    result = await db.execute(query.order_by(Department.dept_name))
    return list(result.scalars().all())


async def create_department(db: AsyncSession, data: DepartmentCreate) -> Department:
    await _require(db, College, data.college_id, "College")
    await _require(db, User, data.manager_id, "User")
    department = Department(dept_name=data.dept_name, college_id=data.college_id, manager_id=data.manager_id)
    db.add(department)
    await db.commit()
    await db.refresh(department)
    return department


async def update_department(db: AsyncSession, department_id: UUID, data: DepartmentUpdate) -> Department:
    department = await db.get(Department, department_id)
    if not department:
        raise NotFoundError(f"Department {department_id} not found")
    changes = data.model_dump(exclude_unset=True)
    if changes.get("college_id"):
        await _require(db, College, changes["college_id"], "College")
    if changes.get("manager_id"):
        await _require(db, User, changes["manager_id"], "User")
    for field, value in changes.items():
        setattr(department, field, value)
    await db.commit()
    await db.refresh(department)
    return department


async def delete_department(db: AsyncSession, department_id: UUID) -> None:
    department = await db.get(Department, department_id)
    if not department:
        raise NotFoundError(f"Department {department_id} not found")
    members = await db.execute(select(func.count(User.id)).where(User.department_id == department_id))
    if members.scalar_one():
        raise ConflictError("Cannot delete a department that still has users")
    await db.delete(department)
    await db.commit()
