"""
Application status lifecycle.

    PENDING ──approve──▶ WAIT_RESULT ──interview result──▶ PASS_INTERVIEW | REJECT_INTERVIEW
       │                     │
       └──────reject─────────┴──────▶ REJECT

PASS_INTERVIEW, REJECT_INTERVIEW and REJECT are terminal. The only way out of a
terminal state is the admin override, which is always written to the audit trail.

Every mutation goes through `_apply`, which checks nothing itself but records an
ApplicationStatusEvent and keeps Applicant.status in sync with the applicant's
latest application. Concurrent writers are not serialized: last write wins.
"""
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.application import Application
from ..models.enums import ApplicationStatus
from ..models.status_event import ApplicationStatusEvent
from ..utils.error_handlers import (
    DatabaseError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    get_error_message,
)
from ..utils.validation import parse_datetime, validate_status

logger = logging.getLogger(__name__)

S = ApplicationStatus

TRANSITIONS: dict[str, frozenset[str]] = {
    S.PENDING.value: frozenset({S.WAIT_RESULT.value, S.REJECT.value}),
    S.WAIT_RESULT.value: frozenset({S.PASS_INTERVIEW.value, S.REJECT_INTERVIEW.value, S.REJECT.value}),
    S.PASS_INTERVIEW.value: frozenset(),
    S.REJECT_INTERVIEW.value: frozenset(),
    S.REJECT.value: frozenset(),
}

INTERVIEW_OUTCOMES = (S.PASS_INTERVIEW.value, S.REJECT_INTERVIEW.value)

MAX_NOTES_LENGTH = 5000


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def is_terminal(status: str) -> bool:
    return not TRANSITIONS.get(status)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_notes(notes, field_name: str = "notes") -> str | None:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise ValidationError(f"{field_name} must be a string", field=field_name)
    notes = notes.strip()
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"{field_name} must not exceed {MAX_NOTES_LENGTH} characters", field=field_name)
    return notes or None


def get_application(db: Session, application_id: int) -> Application:
    application = db.query(Application).filter(Application.id == int(application_id)).first()
    if not application:
        raise NotFoundError(get_error_message("application_not_found"))
    return application


def _require_transition(application: Application, target: str) -> None:
    if not can_transition(application.status, target):
        raise InvalidTransitionError(application.status, target)


def _sync_applicant(application: Application, *, now: datetime, actor_id: int | None) -> None:
    applicant = application.applicant
    if applicant is None:
        return
    latest = max(applicant.applications, key=lambda a: a.id, default=None)
    if latest is not None and latest.id == application.id:
        applicant.status = application.status
    applicant.updated_at = now
    if actor_id is not None:
        applicant.updated_by_id = actor_id


def _apply(
    db: Session,
    application: Application,
    *,
    action: str,
    target: str,
    notes: str | None,
    actor_id: int | None,
) -> Application:
    now = _utcnow()
    previous = application.status
    application.status = target
    application.updated_at = now
    db.add(
        ApplicationStatusEvent(
            application_id=application.id,
            action=action,
            from_status=previous,
            to_status=target,
            notes=notes,
            actor_id=actor_id,
            created_at=now,
        )
    )
    _sync_applicant(application, now=now, actor_id=actor_id)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during {action} of application {application.id}: {e}")
        raise DatabaseError()

    db.refresh(application)
    logger.info(
        "Application %s: %s -> %s (%s by user %s)",
        application.id, previous, target, action, actor_id,
    )
    return application


def approve(
    db: Session,
    application_id: int,
    *,
    interview_date,
    notes=None,
    actor_id: int | None = None,
) -> Application:
    """PENDING -> WAIT_RESULT. Requires a parseable interview date."""
    scheduled = parse_datetime(interview_date, "interviewDate")
    notes = _clean_notes(notes)

    application = get_application(db, application_id)
    _require_transition(application, S.WAIT_RESULT.value)

    application.interview_date = scheduled
    application.notes = notes
    return _apply(db, application, action="approve", target=S.WAIT_RESULT.value, notes=notes, actor_id=actor_id)


def reject(db: Session, application_id: int, *, notes=None, actor_id: int | None = None) -> Application:
    """Any non-terminal status -> REJECT."""
    notes = _clean_notes(notes)

    application = get_application(db, application_id)
    _require_transition(application, S.REJECT.value)

    application.notes = notes
    return _apply(db, application, action="reject", target=S.REJECT.value, notes=notes, actor_id=actor_id)


def record_interview_result(
    db: Session,
    application_id: int,
    *,
    result,
    feedback=None,
    actor_id: int | None = None,
) -> Application:
    """WAIT_RESULT -> PASS_INTERVIEW | REJECT_INTERVIEW."""
    if not isinstance(result, str) or result.strip().upper() not in INTERVIEW_OUTCOMES:
        raise ValidationError(
            f"result must be one of: {', '.join(INTERVIEW_OUTCOMES)}",
            field="result",
        )
    target = result.strip().upper()
    feedback = _clean_notes(feedback, "feedback")

    application = get_application(db, application_id)
    _require_transition(application, target)

    if feedback is not None:
        application.notes = feedback
    return _apply(db, application, action="interview_result", target=target, notes=feedback, actor_id=actor_id)


def override_status(
    db: Session,
    application_id: int,
    *,
    status,
    notes=None,
    actor_id: int | None = None,
) -> Application:
    """
    Admin escape hatch: set any status without the transition guards or the
    side-effect fields. Always audited.
    """
    target = validate_status(status)
    notes = _clean_notes(notes)

    application = get_application(db, application_id)
    if not can_transition(application.status, target):
        logger.warning(
            "Admin override on application %s: %s -> %s bypasses the lifecycle",
            application.id, application.status, target,
        )
    return _apply(db, application, action="override", target=target, notes=notes, actor_id=actor_id)
