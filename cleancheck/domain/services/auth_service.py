"""
Authentication Service for administrators.
Google sign-in restricted to the users allow-list, plus token management.
"""
from datetime import datetime, timedelta
from typing import Optional
import logging

import httpx
from sqlalchemy.orm import Session

from cleancheck.infrastructure.models import User, RefreshToken
from cleancheck.core.config import settings
from .security import (
    create_access_token,
    create_refresh_token,
    verify_token,
    hash_token,
)

logger = logging.getLogger(__name__)

GOOGLE_TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


class AuthService:
    """Service for handling all authentication operations"""

    # =========================================================================
    # Google OAuth
    # =========================================================================

    async def verify_google_token(self, id_token: str) -> Optional[dict]:
        """
        Verify Google ID token with Google's servers.

        Returns:
            Google user info if valid, None otherwise
        """
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(
                    GOOGLE_TOKENINFO_URL,
                    params={"id_token": id_token},
                    timeout=10.0
                )
        except httpx.RequestError as e:
            logger.error(f"Google token verification request failed: {e}")
            return None

        if response.status_code != 200:
            return None

        token_info = response.json()

        # Verify the token is for our app
        if settings.GOOGLE_CLIENT_ID and token_info.get("aud") != settings.GOOGLE_CLIENT_ID:
            logger.warning("Google token issued for a different client")
            return None

        if token_info.get("email_verified") not in ("true", True):
            return None

        return {
            "email": token_info.get("email"),
            "name": token_info.get("name"),
            "picture": token_info.get("picture"),
        }

    def get_allowed_user(self, google_data: dict, db: Session) -> Optional[User]:
        """
        Look up the signed-in e-mail on the administrator allow-list.
        Refreshes the stored name/photo on success. Never creates users.
        """
        email = (google_data.get("email") or "").lower()
        if not email:
            return None

        user = db.query(User).filter(User.email == email).first()
        if not user:
            logger.warning(f"Sign-in rejected, not on allow-list: {email}")
            return None

        user.name = google_data.get("name") or user.name
        user.image = google_data.get("picture") or user.image
        user.last_login_at = datetime.utcnow()
        db.commit()
        return user

    # =========================================================================
    # Token Management
    # =========================================================================

    def create_tokens(self, user: User, db: Session) -> dict:
        """
        Create access and refresh tokens for a user.

        Returns:
            Dict with access_token, refresh_token, token_type, and expires_in
        """
        access_token = create_access_token(data={"sub": str(user.id)})
        refresh_token, token_hash = create_refresh_token(str(user.id))

        db_token = RefreshToken(
            token_hash=token_hash,
            user_id=user.id,
            expires_at=datetime.utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )
        db.add(db_token)
        db.commit()

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,  # seconds
        }

    def refresh_tokens(self, refresh_token: str, db: Session) -> Optional[dict]:
        """
        Exchange a refresh token for new tokens (with rotation).

        Returns:
            New tokens dict or None if invalid
        """
        payload = verify_token(refresh_token, token_type="refresh")
        if not payload or not payload.get("sub"):
            return None

        db_token = db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.revoked == False
        ).first()

        if not db_token:
            return None

        if db_token.expires_at < datetime.utcnow():
            db_token.revoked = True
            db.commit()
            return None

        # Revoke the old token (rotation)
        db_token.revoked = True

        # Account may have been removed from the allow-list since
        user = db.query(User).filter(User.id == db_token.user_id).first()
        if not user:
            db.commit()
            return None

        return self.create_tokens(user, db)

    def revoke_refresh_token(self, refresh_token: str, db: Session) -> bool:
        """
        Revoke a refresh token (logout).

        Returns:
            True if revoked, False if not found
        """
        db_token = db.query(RefreshToken).filter(
            RefreshToken.token_hash == hash_token(refresh_token)
        ).first()

        if not db_token or db_token.revoked:
            return False

        db_token.revoked = True
        db.commit()
        return True


auth_service = AuthService()
