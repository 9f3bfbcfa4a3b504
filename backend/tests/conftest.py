"""
Pytest fixtures for testing.
"""
import pytest
import pytest_asyncio
from typing import AsyncGenerator, Optional

import bcrypt
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Import database module BEFORE app to allow override
import app.database
from app.database import Base
# Import ALL models so Base.metadata knows about all tables
import app.models  # noqa: F401
from app.models.form_template import FormTemplate
from app.models.organization import College, Department
from app.models.user import Role, RoleName, User
from app.models.workflow import Workflow, WorkflowStep

# Now import app (after we can override database)
from app.main import app as fastapi_app


# Test database URL (use in-memory SQLite for fast tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "secret123"
# Low cost factor keeps the suite fast
TEST_PASSWORD_HASH = bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database for each test.
    Ensures cleanup happens even if test fails.
    """
    # StaticPool keeps one connection so every session sees the same in-memory DB
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Replace the app's engine and sessionmaker so get_db() uses the test DB
    original_engine = app.database.engine
    original_sessionmaker = app.database.AsyncSessionLocal

    app.database.engine = test_engine
    app.database.AsyncSessionLocal = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    session = app.database.AsyncSessionLocal()

    try:
        yield session
    finally:
        try:
            await session.close()
        except Exception as e:
            print(f"Warning: Failed to close session: {e}")

        try:
            async with test_engine.begin() as conn:
                await conn.run_sync(Base.metadata.drop_all)
        except Exception as e:
            print(f"Warning: Failed to drop tables: {e}")

        try:
            await test_engine.dispose()
        except Exception as e:
            print(f"Warning: Failed to dispose engine: {e}")

        app.database.engine = original_engine
        app.database.AsyncSessionLocal = original_sessionmaker


@pytest_asyncio.fixture
async def async_client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing endpoints.

    The db fixture already replaced app.database.engine with test engine,
    so all endpoints will automatically use the test database.
    """
    transport = ASGITransport(app=fastapi_app)

    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True  # Follow 307 redirects for trailing slashes
    ) as client:
        yield client


def act_as(client: AsyncClient, user: User) -> AsyncClient:
    """Point the client's auth cookie at `user`."""
    client.cookies.set("auth_token", str(user.id))
    return client


async def create_user(
    db: AsyncSession,
    role: Role,
    university_id: str,
    full_name: Optional[str] = None,
    department: Optional[Department] = None,
    **kwargs,
) -> User:
    user = User(
        university_id=university_id,
        full_name=full_name or f"User {university_id}",
        password_hash=TEST_PASSWORD_HASH,
        role_id=role.id,
        department_id=department.id if department else None,
        **kwargs,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def roles(db: AsyncSession) -> dict[str, Role]:
    """The built-in roles, keyed by name."""
    roles = {name.value: Role(role_name=name.value, permissions=[]) for name in RoleName}
    db.add_all(roles.values())
    await db.commit()
    return roles


@pytest_asyncio.fixture
async def college(db: AsyncSession) -> College:
    college = College(name="College of Engineering")
    db.add(college)
    await db.commit()
    await db.refresh(college)
    return college


@pytest_asyncio.fixture
async def department(db: AsyncSession, college: College) -> Department:
    department = Department(dept_name="Computer Science", college_id=college.id)
    db.add(department)
    await db.commit()
    await db.refresh(department)
    return department


@pytest_asyncio.fixture
async def other_department(db: AsyncSession) -> Department:
    """A department in a different college."""
    college = College(name="College of Arts")
    db.add(college)
    await db.flush()
    department = Department(dept_name="History", college_id=college.id)
    db.add(department)
    await db.commit()
    await db.refresh(department)
    return department


@pytest_asyncio.fixture
async def admin(db: AsyncSession, roles) -> User:
    return await create_user(db, roles["admin"], "A0001", "Alice Admin")


@pytest_asyncio.fixture
async def student(db: AsyncSession, roles, department) -> User:
    return await create_user(db, roles["student"], "S1001", "Sam Student", department)


@pytest_asyncio.fixture
async def employee(db: AsyncSession, roles, department) -> User:
    return await create_user(db, roles["employee"], "E2001", "Erin Employee", department)


@pytest_asyncio.fixture
async def head(db: AsyncSession, roles, department) -> User:
    """Head of the Computer Science department."""
    user = await create_user(db, roles["head_of_department"], "H3001", "Hana Head", department)
    department.manager_id = user.id
    await db.commit()
    return user


@pytest_asyncio.fixture
async def dean(db: AsyncSession, roles, college, department) -> User:
    """Dean of the College of Engineering."""
    user = await create_user(db, roles["dean"], "D4001", "Dan Dean", department)
    college.dean_id = user.id
    await db.commit()
    return user


@pytest_asyncio.fixture
async def workflow(db: AsyncSession, roles) -> Workflow:
    """
    Two steps: head of department (24h), then dean (48h, final,
    escalating to admin).
    """
    workflow = Workflow(name="Leave approval", is_active=True)
    db.add(workflow)
    await db.flush()
    db.add_all([
        WorkflowStep(
            workflow_id=workflow.id,
            name="Head of department review",
            order=1,
            approver_role_id=roles["head_of_department"].id,
            sla_hours=24,
            escalation_role_id=roles["dean"].id,
        ),
        WorkflowStep(
            workflow_id=workflow.id,
            name="Dean approval",
            order=2,
            approver_role_id=roles["dean"].id,
            sla_hours=48,
            is_final=True,
            escalation_role_id=roles["admin"].id,
        ),
    ])
    await db.commit()
    await db.refresh(workflow)
    return workflow


@pytest_asyncio.fixture
async def form(db: AsyncSession, workflow: Workflow) -> FormTemplate:
    """Published leave form open to everyone."""
    form = FormTemplate(
        name="Leave Request",
        schema={
            "fields": [
                {"name": "reason", "label": "Reason", "type": "textarea", "required": True},
                {"name": "days", "label": "Number of days", "type": "number", "required": True},
                {"name": "notes", "label": "Notes", "type": "text", "required": False},
            ]
        },
        is_active=True,
        audience_config=None,
        workflow_id=workflow.id,
    )
    db.add(form)
    await db.commit()
    await db.refresh(form)
    return form


@pytest.fixture
def leave_data() -> dict:
    return {"reason": "Family event", "days": 3}


@pytest.fixture
def make_user(db: AsyncSession):
    """Factory fixture: `await make_user(role, university_id, ...)`."""
    async def factory(role: Role, university_id: str, full_name: Optional[str] = None,
                      department: Optional[Department] = None, **kwargs) -> User:
        return await create_user(db, role, university_id, full_name, department, **kwargs)
    return factory


@pytest.fixture
def login(async_client: AsyncClient):
    """`login(user)` authenticates the shared client as `user`."""
    def switch(user: User) -> AsyncClient:
        return act_as(async_client, user)
    return switch
