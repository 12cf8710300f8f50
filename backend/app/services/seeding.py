import logging

from sqlalchemy.orm import Session

from ..config import Settings
from ..models.enums import UserRole
from ..models.user import User
from ..utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)

DEMO_STAFF = [
    ("recruiter@demo.com", "recruiter123", UserRole.RECRUITER, "Recruiter"),
    ("interviewer@demo.com", "interviewer123", UserRole.INTERVIEWER, "Interviewer"),
]


def upsert_user(
    db: Session,
    *,
    email: str,
    password: str,
    role: UserRole,
    first_name: str | None = None,
    last_name: str | None = None,
    refresh: bool = False,
) -> User:
    """
    Create the staff account if missing. With `refresh`, an existing account is
    brought back in line: password, role and active flag are reset.
    """
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        if refresh:
            if not verify_password(password, user.password_hash):
                user.password_hash = hash_password(password)
            user.role = role.value
            user.is_active = True
            db.commit()
            db.refresh(user)
            logger.info("Refreshed %s user %s", user.role, user.email)
        return user

    user = User(
        email=email,
        password_hash=hash_password(password),
        role=role.value,
        is_active=True,
        first_name=first_name,
        last_name=last_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Seeded %s user %s", user.role, user.email)
    return user


def seed_staff(db: Session, settings: Settings, *, include_demo: bool = True) -> list[User]:
    users = [
        upsert_user(
            db,
            email=settings.admin_email,
            password=settings.admin_password,
            role=UserRole.ADMIN,
            first_name="Admin",
            last_name="User",
            refresh=True,
        )
    ]
    if include_demo:
        for email, password, role, first_name in DEMO_STAFF:
            users.append(
                upsert_user(db, email=email, password=password, role=role, first_name=first_name, last_name="User")
            )
    return users
