import logging

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.applications import (
    ApproveRequest,
    InterviewResultRequest,
    RejectRequest,
    StatusUpdateRequest,
)
from ..services import lifecycle
from ..services.application_queries import (
    delete_application,
    list_applicants,
    public_applicant,
    public_application,
)
from ..utils.dependencies import CurrentUser, get_current_user
from ..utils.roles import admin_only, interview_panel, reviewers

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/applications")
def list_applications(
    status: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    offset: int = Query(default=0),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    rows, total = list_applicants(db, status=status, limit=limit, offset=offset)
    return {
        "success": True,
        "applications": [public_applicant(a) for a in rows],
        "total": total,
    }


@router.get("/applications/{application_id}")
def get_application_detail(
    application_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    application = lifecycle.get_application(db, application_id)
    return {"success": True, "application": public_application(application, include_history=True)}


@router.put("/applications/{application_id}/approve")
def approve_application(
    body: ApproveRequest,
    application_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(reviewers),
):
    application = lifecycle.approve(
        db,
        application_id,
        interview_date=body.interview_date,
        notes=body.notes,
        actor_id=user.user_id,
    )
    return {"success": True, "application": public_application(application)}


@router.put("/applications/{application_id}/reject")
def reject_application(
    body: RejectRequest | None = None,
    application_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(reviewers),
):
    application = lifecycle.reject(
        db,
        application_id,
        notes=body.notes if body else None,
        actor_id=user.user_id,
    )
    return {"success": True, "application": public_application(application)}


@router.put("/applications/{application_id}/interview-result")
def record_interview_result(
    body: InterviewResultRequest,
    application_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(interview_panel),
):
    application = lifecycle.record_interview_result(
        db,
        application_id,
        result=body.result,
        feedback=body.feedback,
        actor_id=user.user_id,
    )
    return {"success": True, "application": public_application(application)}


@router.put("/applications/{application_id}/status")
def override_application_status(
    body: StatusUpdateRequest,
    application_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(admin_only),
):
    application = lifecycle.override_status(
        db,
        application_id,
        status=body.status,
        notes=body.notes,
        actor_id=user.user_id,
    )
    return {"success": True, "application": public_application(application)}


@router.delete("/applications/{application_id}")
def remove_application(
    request: Request,
    application_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(admin_only),
):
    result = delete_application(db, application_id, upload_dir=request.app.state.settings.upload_dir)
    logger.info(f"User {user.user_id} deleted application {application_id}")
    return {"success": True, "message": "Application deleted successfully", **result}
