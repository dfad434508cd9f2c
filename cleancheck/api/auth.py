"""
Authentication API endpoints.
Google sign-in for administrators on the allow-list, and token management.
"""
from typing import Optional
from pydantic import BaseModel, Field

from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session

from cleancheck.infrastructure.database import get_db
from cleancheck.infrastructure.models import User
from cleancheck.domain.services.auth_service import auth_service
from .deps import get_current_admin, check_rate_limit


router = APIRouter()


# =============================================================================
# Request/Response Models
# =============================================================================

class GoogleAuthRequest(BaseModel):
    """Request for Google OAuth authentication"""
    id_token: str = Field(..., description="Google ID token from client-side sign-in")


class RefreshTokenRequest(BaseModel):
    """Request to refresh access token"""
    refresh_token: str = Field(..., description="Refresh token")


class LogoutRequest(BaseModel):
    """Request to logout (revoke refresh token)"""
    refresh_token: str = Field(..., description="Refresh token to revoke")


class TokenResponse(BaseModel):
    """Response containing auth tokens"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class AdminProfileResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# Google OAuth Endpoints
# =============================================================================

@router.post("/google", response_model=TokenResponse)
async def google_auth(
    request: GoogleAuthRequest,
    http_request: Request,
    db: Session = Depends(get_db)
):
    """
    Exchange a Google ID token for session tokens.

    Only e-mails on the administrator allow-list are accepted.
    Rate limited to 10 attempts per minute per IP address.
    """
    client_ip = http_request.client.host if http_request.client else "unknown"
    check_rate_limit(f"google:{client_ip}", max_requests=10, window_seconds=60)

    google_data = await auth_service.verify_google_token(request.id_token)
    if not google_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Google token"
        )

    user = auth_service.get_allowed_user(google_data, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account is not an administrator"
        )

    return TokenResponse(**auth_service.create_tokens(user, db))


# =============================================================================
# Token Management Endpoints
# =============================================================================

@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """
    Exchange a valid refresh token for new access and refresh tokens.
    The old refresh token is revoked.
    """
    tokens = auth_service.refresh_tokens(request.refresh_token, db)

    if not tokens:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token"
        )

    return TokenResponse(**tokens)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: LogoutRequest,
    db: Session = Depends(get_db)
):
    """Revoke the provided refresh token."""
    if not auth_service.revoke_refresh_token(request.refresh_token, db):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Token not found or already revoked"
        )

    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=AdminProfileResponse)
async def get_current_admin_profile(
    current_user: User = Depends(get_current_admin)
):
    return AdminProfileResponse(
        id=str(current_user.id),
        email=current_user.email,
        name=current_user.name,
        image=current_user.image,
    )
