"""FastAPI dependencies."""

from datetime import UTC, datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from carebook.config import settings
from carebook.core.redis_client import CacheManager, get_redis_client
from carebook.core.security import decode_access_token
from carebook.database import get_db
from carebook.services.payment_service import SimulatedPaymentProcessor

# Security
security = HTTPBearer(auto_error=False)


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> dict[str, Any]:
    """
    Resolve the caller from the bearer token.

    Args:
        credentials: Bearer token credentials

    Returns:
        ``{"id": UUID, "role": "patient" | "doctor"}``

    Raises:
        HTTPException: If the token is missing, invalid or expired
    """
    if credentials is None:
        raise _credentials_error("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    user_id_str = payload.get("sub")
    if user_id_str is None or not isinstance(user_id_str, str):
        raise _credentials_error()

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise _credentials_error("Invalid user ID format")

    return {"id": user_id, "role": payload["role"]}


async def get_current_patient(
    user: Annotated[dict[str, Any], Depends(get_current_user)],
) -> dict[str, Any]:
    """Require a patient caller."""
    if user["role"] != "patient":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only patients can perform this action",
        )
    return user


async def get_current_doctor(
    user: Annotated[dict[str, Any], Depends(get_current_user)],
) -> dict[str, Any]:
    """Require a doctor caller."""
    if user["role"] != "doctor":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only doctors can perform this action",
        )
    return user


def get_now() -> datetime:
    """Current wall-clock time; overridden in tests to pin the clock."""
    return datetime.now(UTC)


def get_cache_manager() -> CacheManager:
    """Cache manager backed by the shared Redis client."""
    return CacheManager(get_redis_client())


def get_payment_processor() -> SimulatedPaymentProcessor:
    """Payment gate used ahead of reservations."""
    return SimulatedPaymentProcessor(delay_seconds=settings.payment_delay_seconds)


# Type aliases for dependency injection
DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUser = Annotated[dict, Depends(get_current_user)]
CurrentPatient = Annotated[dict, Depends(get_current_patient)]
CurrentDoctor = Annotated[dict, Depends(get_current_doctor)]
Now = Annotated[datetime, Depends(get_now)]
CacheManagerDep = Annotated[CacheManager, Depends(get_cache_manager)]
PaymentProcessor = Annotated[SimulatedPaymentProcessor, Depends(get_payment_processor)]
