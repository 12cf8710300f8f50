import logging

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..database import get_db
from ..services.application_queries import isoformat_utc
from ..services.submissions import create_submission, parse_submission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/applications", tags=["Applications"])


@router.post("/submit", status_code=201)
async def submit_application(
    request: Request,
    full_name: str | None = Form(default=None, alias="fullName"),
    email: str | None = Form(default=None),
    phone: str | None = Form(default=None),
    dob: str | None = Form(default=None),
    position: str | None = Form(default=None),
    photo: UploadFile | None = File(default=None),
    cv: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
):
    """
    Public application form.

    Records are committed before the attachments are relayed, so a relay
    failure leaves the application in place; the response lists any
    attachment that could not be stored under `failedAttachments`.
    """
    settings = request.app.state.settings
    command = await parse_submission(
        full_name=full_name,
        email=email,
        position=position,
        phone=phone,
        dob=dob,
        photo=photo,
        cv=cv,
        settings=settings,
    )

    applicant, application = await run_in_threadpool(create_submission, db, command)
    logger.info(f"Application {application.id} submitted by applicant {applicant.id}")

    relay = request.app.state.file_relay
    result = await relay.relay(application.id, command.attachments)
    if result.failed:
        logger.warning(
            f"Application {application.id} saved without attachments: {', '.join(sorted(result.failed))}"
        )

    def _path(field: str) -> str | None:
        return (result.stored.get(field) or {}).get("filePath")

    return {
        "success": True,
        "data": {
            "id": applicant.id,
            "applicationId": application.id,
            "fullName": applicant.full_name,
            "email": applicant.email,
            "position": applicant.position,
            "status": application.status,
            "appliedAt": isoformat_utc(applicant.applied_at),
            "photoPath": _path("photo"),
            "cvPath": _path("cv"),
            "failedAttachments": result.failed,
        },
    }
