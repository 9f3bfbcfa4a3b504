"""
Authentication endpoints for credentials login.

Phase 1: Cookie holds the user id
Future: Signed session / JWT

Security features:
- Account lockout after 5 failed attempts (30 min cooldown)
- bcrypt password hashes
- Inactive accounts refused
- IP address logging for audit trail
- Role-based access control (admin vs everyone else)
"""
import logging
from datetime import datetime, timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, Response, Cookie
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.database import get_db
from app.models.user import User
from app.config import settings
from app.schemas.auth import LoginRequest, AuthResponse, CurrentUserResponse
from app.services.audit import log_audit_action
from app.services.security import verify_password

logger = logging.getLogger(__name__)
router = APIRouter()

# Security constants
MAX_FAILED_ATTEMPTS = 5
ACCOUNT_LOCK_MINUTES = 30


# Authentication Dependencies
async def get_current_user(
    auth_token: str = Cookie(None),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency to get current authenticated user from httpOnly cookie.

    Phase 1: Cookie contains just the user_id
    Future: Validate a signed token and extract user_id

    Raises:
        HTTPException 401: If cookie is missing/invalid or user not found
        HTTPException 403: If account is locked or deactivated
    """
    if not auth_token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        user_id = UUID(auth_token)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(status_code=401, detail="Invalid token. User not found.")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    # Check if account is locked
    if user.is_account_locked():
        raise HTTPException(
            status_code=403,
            detail=f"Account temporarily locked due to multiple failed login attempts. Try again after {user.account_locked_until.isoformat()}"
        )

    return user


async def require_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Dependency to require admin role.

    Raises:
        HTTPException 403: If user is not an admin
    """
    if not current_user.is_admin():
        logger.warning(
            f"User {current_user.university_id} (role={current_user.role_name}) "
            f"attempted to access admin endpoint"
        )
        raise HTTPException(
            status_code=403,
            detail="Admin access required. You do not have permission to access this resource."
        )

    return current_user


def require_roles(*role_names: str):
    """Dependency factory: the current user must hold one of `role_names`."""
    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(*role_names):
            raise HTTPException(status_code=403, detail="You do not have permission to access this resource.")
        return current_user
    return checker


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Checks X-Forwarded-For header (for proxies/load balancers) first,
    falls back to direct client IP.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        # X-Forwarded-For can be comma-separated list, take first IP
        return forwarded.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


# Endpoints
@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Authenticate with university id and password.

    Returns:
        200: Credentials valid, cookie set
        401: Unknown user or wrong password
        403: Account locked or deactivated
    """
    client_ip = get_client_ip(request)

    result = await db.execute(
        select(User).where(User.university_id == credentials.university_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        logger.warning(f"Login attempt for unknown user {credentials.university_id} from IP: {client_ip}")
        raise HTTPException(status_code=401, detail="Invalid university ID or password")

    if user.is_account_locked():
        logger.warning(f"Login attempt on locked account: {user.university_id} from IP: {client_ip}")
        raise HTTPException(
            status_code=403,
            detail=f"Account temporarily locked. Try again after {user.account_locked_until.isoformat()}"
        )

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    if not verify_password(credentials.password, user.password_hash):
        user.failed_login_attempts += 1

        # Lock account after too many failed attempts
        if user.failed_login_attempts >= MAX_FAILED_ATTEMPTS:
            user.account_locked_until = datetime.utcnow() + timedelta(minutes=ACCOUNT_LOCK_MINUTES)
            logger.warning(
                f"Account locked due to {MAX_FAILED_ATTEMPTS} failed attempts: {user.university_id}"
            )

        await db.commit()
        raise HTTPException(status_code=401, detail="Invalid university ID or password")

    user.last_login_at = datetime.utcnow()
    user.last_login_ip = client_ip
    user.failed_login_attempts = 0
    user.account_locked_until = None
    await db.commit()
    await db.refresh(user)

    logger.info(f"Successful login: {user.university_id} from IP: {client_ip}")
    await log_audit_action(db, user.id, "LOGIN", "USER", str(user.id), ip_address=client_ip)

    # In production, set secure=True for HTTPS-only
    response.set_cookie(
        key="auth_token",
        value=str(user.id),
        httponly=True,  # Prevents JavaScript access (XSS protection)
        samesite="lax",  # CSRF protection
        max_age=86400 * settings.session_max_age_days,
        secure=False,  # Set to True in production with HTTPS
    )

    return AuthResponse(
        access_token=str(user.id),
        user_id=user.id,
        university_id=user.university_id,
        full_name=user.full_name,
        role=user.role_name,
        department_id=user.department_id,
    )


@router.get("/me", response_model=CurrentUserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return CurrentUserResponse(
        user_id=current_user.id,
        university_id=current_user.university_id,
        full_name=current_user.full_name,
        email=current_user.email,
        phone=current_user.phone,
        role=current_user.role_name,
        department_id=current_user.department_id,
        college_id=current_user.college_id,
    )


@router.post("/logout")
async def logout(
    response: Response,
    current_user: User = Depends(get_current_user)
):
    """Logout user by clearing the authentication cookie."""
    response.delete_cookie(
        key="auth_token",
        httponly=True,
        samesite="lax"
    )

    logger.info(f"User logged out: {current_user.university_id}")

    return {"message": "Successfully logged out"}
