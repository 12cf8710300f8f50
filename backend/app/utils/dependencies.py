import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from ..database import get_db
from ..services.sessions import find_active_session
from .error_handlers import InternalError, UnauthenticatedError, get_error_message
from .jwt import decode_access_token
from .security import parse_bearer_header

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    email: str
    role: str
    session_id: str


def authenticate_token(db: Session, *, token: str, secret: str | None) -> CurrentUser:
    """
    Verify the signed credential, then require a matching active session row.

    A structurally valid JWT is not enough: logout and expiry are enforced
    through the session table.
    """
    if not secret:
        logger.error("JWT secret is not configured")
        raise InternalError()

    try:
        payload = decode_access_token(token, secret=secret)
    except ExpiredSignatureError:
        raise UnauthenticatedError(get_error_message("token_expired"))
    except JWTError as e:
        logger.info("Rejected bearer token: %s", e)
        raise UnauthenticatedError(get_error_message("invalid_token"))

    session_id = payload.get("sessionId")
    try:
        user_id = int(payload.get("userId"))
    except (TypeError, ValueError):
        raise UnauthenticatedError(get_error_message("invalid_token"))
    if not session_id or not isinstance(session_id, str):
        raise UnauthenticatedError(get_error_message("invalid_token"))

    if not find_active_session(db, token=session_id, user_id=user_id):
        raise UnauthenticatedError(get_error_message("session_expired"))

    return CurrentUser(
        user_id=user_id,
        email=str(payload.get("email") or ""),
        role=str(payload.get("role") or ""),
        session_id=session_id,
    )


def get_current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser:
    token = parse_bearer_header(request.headers.get("Authorization"))
    if not token:
        raise UnauthenticatedError(get_error_message("missing_auth_header"))

    user = authenticate_token(db, token=token, secret=request.app.state.settings.jwt_secret)
    request.state.user = user
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser | None:
    """Like get_current_user, but anonymous or invalid callers resolve to None."""
    token = parse_bearer_header(request.headers.get("Authorization"))
    if not token:
        return None
    try:
        user = authenticate_token(db, token=token, secret=request.app.state.settings.jwt_secret)
    except (UnauthenticatedError, InternalError):
        return None
    request.state.user = user
    return user
