"""
Shared dependencies for FastAPI routes: authentication, rate limiting and
the object-storage handle built at startup.
"""
from typing import Optional
from collections import defaultdict
from datetime import datetime, timedelta

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from cleancheck.infrastructure.database import get_db
from cleancheck.infrastructure.models import User
from cleancheck.infrastructure.storage import StorageService
from cleancheck.domain.services.security import verify_token


# =============================================================================
# Rate Limiting
# =============================================================================

# In-memory rate limit store: key -> list of timestamps
_rate_limit_store: dict[str, list[datetime]] = defaultdict(list)


def check_rate_limit(
    key: str,
    max_requests: int = 5,
    window_seconds: int = 60
) -> None:
    """
    Simple in-memory rate limiter over a sliding window.

    Raises:
        HTTPException: 429 Too Many Requests if limit exceeded
    """
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=window_seconds)

    _rate_limit_store[key] = [t for t in _rate_limit_store[key] if t > cutoff]

    if len(_rate_limit_store[key]) >= max_requests:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many requests. Please wait {window_seconds} seconds before trying again.",
        )

    _rate_limit_store[key].append(now)


# =============================================================================
# Authentication
# =============================================================================

security = HTTPBearer(auto_error=False)


async def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency for every admin route. Everyone on the users allow-list is
    an administrator. Raises 401 if not authenticated.

    Usage:
        @router.get("/protected")
        def protected_route(admin: User = Depends(get_current_admin)):
            ...
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(credentials.credentials, token_type="access")
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user


# =============================================================================
# Storage
# =============================================================================

def get_storage(request: Request) -> StorageService:
    """Storage backend created in the app lifespan. Raises 503 when unavailable."""
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Object storage is not configured",
        )
    return storage


def get_optional_storage(request: Request) -> Optional[StorageService]:
    return getattr(request.app.state, "storage", None)
