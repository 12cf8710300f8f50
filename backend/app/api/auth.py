from datetime import timedelta
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..schemas.auth import LoginRequest
from ..services.application_queries import isoformat_utc
from ..services.sessions import create_session, deactivate_session
from ..utils.dependencies import CurrentUser, get_current_user
from ..utils.error_handlers import (
    AuthorizationError,
    InternalError,
    NotFoundError,
    UnauthenticatedError,
    get_error_message,
)
from ..utils.jwt import create_access_token
from ..utils.security import verify_password
from ..utils.validation import FieldErrors, validate_email, validate_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


def _client_info(request: Request) -> tuple[str, str]:
    user_agent = request.headers.get("user-agent") or "unknown"
    ip_address = request.client.host if request.client else "unknown"
    return user_agent, ip_address


@router.post("/login")
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    settings = request.app.state.settings

    errors = FieldErrors()
    with errors.collect():
        email = validate_email(payload.email)
    with errors.collect():
        validate_password(payload.password)
    errors.raise_if_any()

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise UnauthenticatedError(get_error_message("invalid_credentials"))

    if not user.is_active:
        raise AuthorizationError(get_error_message("account_disabled"))

    if not settings.jwt_secret:
        logger.error("JWT secret is not configured; refusing to issue credentials")
        raise InternalError()

    user_agent, ip_address = _client_info(request)
    session = create_session(
        db,
        user=user,
        user_agent=user_agent,
        ip_address=ip_address,
        ttl_hours=settings.session_ttl_hours,
    )

    token = create_access_token(
        {
            "userId": user.id,
            "email": user.email,
            "role": user.role,
            "sessionId": session.access_token,
        },
        secret=settings.jwt_secret,
        expires_in=timedelta(hours=settings.session_ttl_hours),
    )

    return {
        "token": token,
        "token_type": "bearer",
        "user": {"id": user.id, "email": user.email, "role": user.role},
    }


@router.get("/me")
def me(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    row = db.query(User).filter(User.id == user.user_id).first()
    if not row:
        raise NotFoundError("User not found")

    return {
        "id": row.id,
        "email": row.email,
        "role": row.role,
        "isActive": bool(row.is_active),
        "firstName": row.first_name,
        "lastName": row.last_name,
        "createdAt": isoformat_utc(row.created_at),
        "sessionId": user.session_id,
    }


@router.post("/logout")
def logout(user: CurrentUser = Depends(get_current_user), db: Session = Depends(get_db)):
    deactivate_session(db, token=user.session_id)
    return {"message": "Successfully logged out"}
