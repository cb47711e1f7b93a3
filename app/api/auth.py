"""Authentication API endpoints"""

import time
import uuid
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cache import Cache, get_cache, blacklist_key, refresh_token_key, user_activity_key
from app.config import settings
from app.database import get_db
from app.errors import AuthenticationError
from app.models.organization import Organization
from app.models.user import User
from app.permissions import ensure_permission
from app.rate_limit import limiter
from app.schemas.auth import AccessToken, LoginRequest, LoginResponse, RefreshRequest, UserResponse

router = APIRouter()
logger = structlog.get_logger()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# OAuth2 scheme
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash password"""
    return pwd_context.hash(password)


def create_access_token(user: User) -> str:
    """Create JWT access token"""
    expire = datetime.utcnow() + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user.id),
        "organization_id": str(user.organization_id),
        "role": getattr(user.role, "value", user.role),
        "exp": expire,
        "type": "access",
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(user: User) -> str:
    """Create JWT refresh token"""
    expire = datetime.utcnow() + timedelta(days=settings.refresh_token_expire_days)
    payload = {
        "sub": str(user.id),
        "exp": expire,
        "type": "refresh",
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, expected_type: str) -> dict:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired", error_code="TOKEN_EXPIRED")
    except JWTError:
        raise AuthenticationError("Could not validate credentials")

    if payload.get("sub") is None or payload.get("type") != expected_type:
        raise AuthenticationError("Could not validate credentials")
    return payload


async def authenticate_token(db: AsyncSession, cache: Cache, token: Optional[str]) -> User:
    """Resolve a bearer access token to an active user

    Shared by REST dependencies and the websocket handshake.
    """
    if not token:
        raise AuthenticationError("No token provided")
    if await cache.exists(blacklist_key(token)):
        raise AuthenticationError("Token has been invalidated", error_code="TOKEN_REVOKED")

    payload = decode_token(token, "access")
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise AuthenticationError("Could not validate credentials")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    await cache.set(user_activity_key(user.id), datetime.utcnow().isoformat(), settings.user_activity_ttl_seconds)
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
) -> User:
    """Get current authenticated user from token"""
    return await authenticate_token(db, cache, token)


async def get_current_organization(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Organization:
    """Organization of the current user"""
    organization = await db.get(Organization, current_user.organization_id)
    if organization is None or not organization.is_active:
        raise AuthenticationError("Organization is inactive")
    return organization


def require_permission(permission: str):
    """Dependency factory for permission-based access control"""
    async def permission_checker(current_user: User = Depends(get_current_user)) -> User:
        ensure_permission(current_user, permission)
        return current_user
    return permission_checker


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Authenticate user and return tokens"""
    result = await db.execute(select(User).where(User.email == credentials.email.lower()))
    user = result.scalar_one_or_none()

    if not user or not user.is_active or not verify_password(credentials.password, user.hashed_password):
        logger.info("Login failed", email=credentials.email)
        raise AuthenticationError("Invalid email or password", error_code="INVALID_CREDENTIALS")

    organization = await db.get(Organization, user.organization_id)
    if organization is None or not organization.is_active:
        raise AuthenticationError("Invalid email or password", error_code="INVALID_CREDENTIALS")

    # Update last login
    user.last_login = datetime.utcnow()
    await db.commit()

    # Generate tokens
    access_token = create_access_token(user)
    refresh_token = create_refresh_token(user)

    # Store refresh token
    await cache.set(
        refresh_token_key(user.id),
        refresh_token,
        settings.refresh_token_expire_days * 24 * 3600,
    )

    logger.info("User logged in", user_id=str(user.id), organization_id=str(user.organization_id))
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/refresh", response_model=AccessToken)
async def refresh_token(
    body: RefreshRequest,
    db: AsyncSession = Depends(get_db),
    cache: Cache = Depends(get_cache),
):
    """Issue a new access token from the stored refresh token"""
    try:
        payload = decode_token(body.refresh_token, "refresh")
    except AuthenticationError:
        raise AuthenticationError("Invalid refresh token")

    stored = await cache.get(refresh_token_key(payload["sub"]))
    if stored != body.refresh_token:
        raise AuthenticationError("Invalid refresh token")

    result = await db.execute(select(User).where(User.id == UUID(payload["sub"])))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise AuthenticationError("Invalid refresh token")

    return AccessToken(
        access_token=create_access_token(user),
        expires_in=settings.access_token_expire_minutes * 60,
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
):
    """Get current user information"""
    return current_user


@router.post("/logout")
async def logout(
    token: Optional[str] = Depends(oauth2_scheme),
    current_user: User = Depends(get_current_user),
    cache: Cache = Depends(get_cache),
):
    """Blacklist the access token for its remaining lifetime and drop the refresh token"""
    payload = decode_token(token, "access")
    remaining = int(payload["exp"] - time.time())
    if remaining > 0:
        await cache.set(blacklist_key(token), "1", remaining)
    await cache.delete(refresh_token_key(current_user.id))

    logger.info("User logged out", user_id=str(current_user.id))
    return {"message": "Successfully logged out"}
