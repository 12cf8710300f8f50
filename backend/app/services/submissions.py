import logging
from datetime import datetime, timezone

from fastapi import UploadFile
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings
from ..models.applicant import Applicant
from ..models.application import Application
from ..models.enums import ApplicationStatus
from ..schemas.applications import SubmissionCommand
from ..utils.error_handlers import DatabaseError, ValidationError, get_error_message
from ..utils.validation import FieldErrors, parse_date, validate_email, validate_string_field
from .uploads import collect_attachments

logger = logging.getLogger(__name__)


async def parse_submission(
    *,
    full_name: str | None,
    email: str | None,
    position: str | None,
    phone: str | None,
    dob: str | None,
    photo: UploadFile | None,
    cv: UploadFile | None,
    settings: Settings,
) -> SubmissionCommand:
    """
    Turn the raw multipart form into a SubmissionCommand, or raise.

    Order: CV presence, file types, file sizes, then the text fields (all of
    their errors reported together).
    """
    if cv is None or not cv.filename:
        raise ValidationError(get_error_message("cv_required"), field="cv")

    attachments = await collect_attachments({"photo": photo, "cv": cv}, settings)

    errors = FieldErrors()
    fields: dict = {}
    with errors.collect():
        fields["full_name"] = validate_string_field(full_name, "fullName", min_length=2, max_length=255)
    with errors.collect():
        fields["email"] = validate_email(email)
    with errors.collect():
        fields["position"] = validate_string_field(position, "position", max_length=255)
    with errors.collect():
        fields["phone"] = validate_string_field(
            phone, "phone", max_length=50, required=False, pattern=r"^[0-9+()\-.\s]{4,50}$"
        )
    with errors.collect():
        fields["date_of_birth"] = parse_date(dob, "dob")
    errors.raise_if_any()

    return SubmissionCommand(
        cv=attachments["cv"],
        photo=attachments.get("photo"),
        **fields,
    )


def _find_applicant_by_email(db: Session, email: str) -> Applicant | None:
    return (
        db.query(Applicant)
        .filter(func.lower(Applicant.email) == email.lower())
        .order_by(Applicant.id.asc())
        .first()
    )


def create_submission(db: Session, command: SubmissionCommand) -> tuple[Applicant, Application]:
    """
    Create (or reuse, by email) the Applicant and always a new PENDING
    Application, in one transaction.
    """
    now = datetime.now(timezone.utc)
    pending = ApplicationStatus.PENDING.value

    try:
        applicant = _find_applicant_by_email(db, command.email)
        if applicant is None:
            applicant = Applicant(email=command.email)
            db.add(applicant)
        else:
            logger.info(f"Applicant {applicant.id} ({command.email}) is re-applying")

        applicant.full_name = command.full_name
        applicant.position = command.position
        applicant.phone = command.phone or applicant.phone
        applicant.date_of_birth = command.date_of_birth or applicant.date_of_birth
        applicant.status = pending
        applicant.applied_at = now
        applicant.updated_at = now

        application = Application(
            applicant=applicant,
            status=pending,
            created_at=now,
            updated_at=now,
        )
        db.add(application)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error creating application for {command.email}: {e}")
        raise DatabaseError(get_error_message("application_failed"))

    db.refresh(applicant)
    db.refresh(application)
    return applicant, application
