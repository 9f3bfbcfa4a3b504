"""
Seed entrypoint.
Creates the built-in roles and an initial admin account so the first
login is possible. Safe to run more than once.
"""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.config import settings
from app.models.user import Role, RoleName, User
from app.services.security import hash_password

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def seed_roles(db: AsyncSession) -> dict[str, Role]:
    result = await db.execute(select(Role))
    roles = {role.role_name: role for role in result.scalars().all()}
    for name in RoleName:
        if name.value not in roles:
            roles[name.value] = Role(role_name=name.value, permissions=[])
            db.add(roles[name.value])
            logger.info(f"Role {name.value} created")
    await db.flush()
    return roles


async def seed_admin(db: AsyncSession, admin_role: Role, university_id: str, password: str) -> User:
    result = await db.execute(select(User).where(User.university_id == university_id))
    admin = result.scalar_one_or_none()
    if admin:
        logger.info(f"Admin {university_id} already exists")
        return admin

    admin = User(
        university_id=university_id,
        full_name="System Administrator",
        password_hash=hash_password(password),
        role_id=admin_role.id,
        is_active=True,
    )
    db.add(admin)
    logger.info(f"Admin {university_id} created")
    return admin


async def seed_main(university_id: str, password: str):
    engine = create_async_engine(settings.database_url, echo=settings.debug)
    async_session = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with async_session() as db:
        roles = await seed_roles(db)
        await seed_admin(db, roles[RoleName.ADMIN.value], university_id, password)
        await db.commit()
    await engine.dispose()


if __name__ == "__main__":
    import sys
    if len(sys.argv) < 3:
        print("Usage: python -m app.seed <admin_university_id> <password>")
        sys.exit(1)
    asyncio.run(seed_main(sys.argv[1], sys.argv[2]))
