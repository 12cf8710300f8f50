import logging
from datetime import date, datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..models.applicant import Applicant
from ..models.application import Application
from ..models.enums import FileType
from ..utils.error_handlers import DatabaseError, ValidationError
from ..utils.validation import validate_status
from .lifecycle import get_application
from .uploads import remove_stored_file

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500


def isoformat_utc(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        # SQLite hands back naive datetimes; everything is stored as UTC.
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def latest_application(applicant: Applicant) -> Application | None:
    return max(applicant.applications, key=lambda a: a.id, default=None)


def file_paths(application: Application | None) -> dict:
    """Latest PHOTO and CV public paths of an application (None when absent)."""
    paths = {"photoPath": None, "cvPath": None}
    if application is None:
        return paths
    for f in application.files:
        key = "photoPath" if f.file_type == FileType.PHOTO.value else "cvPath"
        paths[key] = f.file_path  # files are ordered by id, so the newest wins
    return paths


def public_file(f) -> dict:
    return {
        "id": f.id,
        "filePath": f.file_path,
        "fileType": f.file_type,
        "originalFilename": f.original_filename,
        "contentType": f.content_type,
        "sizeBytes": f.size_bytes,
        "uploadedBy": f.uploaded_by_id,
        "createdAt": isoformat_utc(f.created_at),
    }


def public_applicant(applicant: Applicant) -> dict:
    latest = latest_application(applicant)
    return {
        "id": applicant.id,
        "applicationId": latest.id if latest else None,
        "fullName": applicant.full_name,
        "email": applicant.email,
        "phone": applicant.phone,
        "position": applicant.position,
        "dob": isoformat_utc(applicant.date_of_birth),
        "status": applicant.status,
        "appliedAt": isoformat_utc(applicant.applied_at),
        "updatedAt": isoformat_utc(applicant.updated_at),
        "updatedBy": applicant.updated_by_id,
        "applicationCount": len(applicant.applications),
        **file_paths(latest),
    }


def public_application(application: Application, *, include_history: bool = False) -> dict:
    payload = {
        "id": application.id,
        "applicantId": application.applicant_id,
        "status": application.status,
        "notes": application.notes,
        "interviewDate": isoformat_utc(application.interview_date),
        "createdAt": isoformat_utc(application.created_at),
        "updatedAt": isoformat_utc(application.updated_at),
        "files": [public_file(f) for f in application.files],
        **file_paths(application),
    }
    if include_history:
        payload["applicant"] = public_applicant(application.applicant) if application.applicant else None
        payload["history"] = [
            {
                "id": e.id,
                "action": e.action,
                "fromStatus": e.from_status,
                "toStatus": e.to_status,
                "notes": e.notes,
                "actorId": e.actor_id,
                "createdAt": isoformat_utc(e.created_at),
            }
            for e in sorted(application.events, key=lambda e: e.id, reverse=True)
        ]
    return payload


def list_applicants(
    db: Session,
    *,
    status: str | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[Applicant], int]:
    """
    Applicants (optionally filtered by status), most recently applied first.
    Without `limit` the full result set is returned.
    """
    status = validate_status(status, allow_empty=True)
    if limit is not None and not (1 <= limit <= MAX_PAGE_SIZE):
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", field="limit")
    if offset < 0:
        raise ValidationError("offset must be at least 0", field="offset")

    q = db.query(Applicant)
    if status:
        q = q.filter(Applicant.status == status)
    total = q.count()

    q = (
        q.options(selectinload(Applicant.applications).selectinload(Application.files))
        .order_by(Applicant.applied_at.desc(), Applicant.id.desc())
        .offset(offset)
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all(), total


def delete_application(db: Session, application_id: int, *, upload_dir: str) -> dict:
    """
    Delete an application with its files and history. The applicant goes too
    when this was its last application; otherwise its status is re-synced.
    """
    application = get_application(db, application_id)
    applicant = application.applicant
    applicant_id = applicant.id
    stored_paths = [f.file_path for f in application.files]

    remaining = [a for a in applicant.applications if a.id != application.id]
    applicant_deleted = not remaining

    try:
        if applicant_deleted:
            db.delete(applicant)  # cascades to the application, files and events
        else:
            applicant.applications.remove(application)
            newest = max(remaining, key=lambda a: a.id)
            applicant.status = newest.status
            applicant.updated_at = datetime.now(timezone.utc)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error deleting application {application_id}: {e}")
        raise DatabaseError()

    for path in stored_paths:
        remove_stored_file(upload_dir, path)

    logger.info(
        "Deleted application %s (%d files); applicant %s %s",
        application_id, len(stored_paths), applicant_id,
        "deleted" if applicant_deleted else "kept",
    )
    return {"applicationId": int(application_id), "applicantId": applicant_id, "applicantDeleted": applicant_deleted}
