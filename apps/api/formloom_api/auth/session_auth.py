"""Session authentication for user-facing endpoints.

Supabase JWT-based session auth.

FLOW:
1. The web app signs the user in with Supabase Auth -> receives JWT access_token
2. The app calls the API with Authorization: Bearer <jwt>
3. The dependency validates the JWT with Supabase and upserts the local User row
4. Returns SessionAuthContext(user_id, email, user)

SECURITY:
- JWT signature and expiry verified by Supabase
- Organization/workspace/form access is enforced separately (auth/access.py)
"""

import logging
from typing import Any, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from formloom_api.context import user_id_var
from formloom_api.db.models import User
from formloom_api.db.session import get_db
from formloom_api.supabase_client import get_supabase_client

logger = logging.getLogger(__name__)

# HTTPBearer scheme for session JWT
session_security = HTTPBearer(auto_error=False, description="Supabase JWT Session Token")


class SessionAuthContext:
    """Session authentication context for user-authenticated requests."""

    def __init__(
        self,
        user_id: str,
        user: User,
        email: Optional[str] = None,
    ):
        self.user_id = user_id
        self.user = user
        self.email = email


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_supabase_jwt(jwt_token: str) -> Any:
    """Resolve a Supabase access token to its auth user.

    Returns:
        Supabase user object (has ``id``, ``email``, ``user_metadata``)

    Raises:
        HTTPException: 401 if the token is invalid, expired or unverifiable
    """
    try:
        supabase = get_supabase_client()
        user_response = supabase.auth.get_user(jwt_token)
    except Exception as e:
        logger.error(f"JWT validation failed: {e}", exc_info=True)
        raise _unauthorized("Session validation failed. Please log in again.")

    if not user_response or not user_response.user:
        raise _unauthorized("Invalid or expired session token. Please log in again.")

    return user_response.user


def upsert_user(db: Session, user_id: str, email: Optional[str], username: Optional[str] = None) -> User:
    """Create the local User row on first sight, refresh email/username after."""
    user = db.get(User, user_id)
    if user is None:
        user = User(id=user_id, email=email, username=username)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(
            "User provisioned from identity provider",
            extra={"event": "user.provisioned", "user_id": user_id},
        )
        return user

    changed = False
    if email and user.email != email:
        user.email = email
        changed = True
    if username and not user.username:
        user.username = username
        changed = True
    if changed:
        db.commit()
        db.refresh(user)
    return user


def _build_context(db: Session, jwt_token: str) -> SessionAuthContext:
    identity = verify_supabase_jwt(jwt_token)
    metadata = getattr(identity, "user_metadata", None) or {}
    user = upsert_user(db, str(identity.id), identity.email, metadata.get("username"))

    user_id_var.set(user.id)
    logger.info(
        "Session authentication successful",
        extra={"event": "session.auth.success", "user_id": user.id},
    )
    return SessionAuthContext(user_id=user.id, user=user, email=user.email)


async def get_session_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
    db: Session = Depends(get_db),
) -> SessionAuthContext:
    """Get session authentication context from Supabase JWT.

    Raises:
        HTTPException: 401 if authentication fails
    """
    if not credentials:
        raise _unauthorized("Authentication required")

    return _build_context(db, credentials.credentials)


async def get_optional_session_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(session_security),
    db: Session = Depends(get_db),
) -> Optional[SessionAuthContext]:
    """Like get_session_auth_context, but anonymous callers get None.

    Used by public endpoints that reveal more to organization members
    (e.g. draft previews). A present but invalid token is still a 401.
    """
    if not credentials:
        return None

    return _build_context(db, credentials.credentials)
