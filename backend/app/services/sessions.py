import logging
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy.orm import Session

from ..models.session import UserSession
from ..models.user import User

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def create_session(
    db: Session,
    *,
    user: User,
    user_agent: str | None,
    ip_address: str | None,
    ttl_hours: int,
) -> UserSession:
    now = _utcnow()
    row = UserSession(
        user_id=user.id,
        access_token=uuid4().hex,
        user_agent=(user_agent or None) and user_agent[:500],
        ip_address=ip_address or None,
        is_active=True,
        login_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Session %s opened for user %s", row.id, user.id)
    return row


def find_active_session(db: Session, *, token: str, user_id: int) -> UserSession | None:
    """A session is valid only while active and before its expiry."""
    return (
        db.query(UserSession)
        .filter(
            UserSession.access_token == token,
            UserSession.user_id == int(user_id),
            UserSession.is_active.is_(True),
            UserSession.expires_at > _utcnow(),
        )
        .first()
    )


def deactivate_session(db: Session, *, token: str) -> bool:
    """Mark the session logged out. Returns False if it was already inactive."""
    row = (
        db.query(UserSession)
        .filter(UserSession.access_token == token, UserSession.is_active.is_(True))
        .first()
    )
    if not row:
        return False
    row.is_active = False
    row.logout_at = _utcnow()
    db.commit()
    logger.info("Session %s closed for user %s", row.id, row.user_id)
    return True
