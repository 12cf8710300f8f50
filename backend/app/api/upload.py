import hmac
import logging

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..database import get_db
from ..models.file import ApplicationFile
from ..schemas.applications import Attachment
from ..services.application_queries import public_file
from ..services.lifecycle import get_application
from ..services.uploads import collect_attachments, remove_stored_file, store_bytes
from ..utils.dependencies import CurrentUser, get_optional_user
from ..utils.error_handlers import InternalError, UnauthenticatedError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Upload"])


def _check_internal_token(request: Request) -> None:
    expected = request.app.state.internal_upload_token
    supplied = request.headers.get("X-Internal-Token") or ""
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        raise UnauthenticatedError("Invalid internal upload token")


def _store_attachments(
    db: Session,
    *,
    application_id: int,
    attachments: dict[str, Attachment],
    upload_dir: str,
    uploader_id: int | None,
) -> dict[str, ApplicationFile]:
    written: list[str] = []
    rows: dict[str, ApplicationFile] = {}
    try:
        for field, attachment in attachments.items():
            public_path, _ = store_bytes(upload_dir, attachment)
            written.append(public_path)
            row = ApplicationFile(
                file_path=public_path,
                file_type=attachment.file_type,
                original_filename=attachment.filename,
                content_type=attachment.content_type,
                size_bytes=attachment.size,
                application_id=application_id,
                uploaded_by_id=uploader_id,
            )
            db.add(row)
            rows[field] = row
        db.commit()
    except (OSError, SQLAlchemyError) as e:
        db.rollback()
        for path in written:
            remove_stored_file(upload_dir, path)
        logger.error(f"Failed to store files for application {application_id}: {e}")
        raise InternalError("Error uploading files")

    for row in rows.values():
        db.refresh(row)
    logger.info(f"Stored {', '.join(rows)} for application {application_id}")
    return rows


@router.post("/upload")
async def upload_files(
    request: Request,
    application_id: int = Query(..., alias="applicationId", ge=1),
    photo: UploadFile | None = File(default=None),
    cv: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    uploader: CurrentUser | None = Depends(get_optional_user),
):
    """Store attachment bytes and record File rows for an existing application."""
    _check_internal_token(request)
    settings = request.app.state.settings

    application = await run_in_threadpool(get_application, db, application_id)

    attachments = await collect_attachments({"photo": photo, "cv": cv}, settings)
    if not attachments:
        raise ValidationError("No files were uploaded", field="files")

    rows = await run_in_threadpool(
        _store_attachments,
        db,
        application_id=application.id,
        attachments=attachments,
        upload_dir=settings.upload_dir,
        uploader_id=uploader.user_id if uploader else None,
    )

    return {
        "success": True,
        "files": {field: public_file(row) for field, row in rows.items()},
    }
