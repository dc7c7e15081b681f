"""Case Studies 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from caseflow.database import get_db, get_session_factory
from caseflow.middleware.auth_middleware import get_current_user, require_roles
from caseflow.models.user import User
from caseflow.schemas.case_study import (
    CaseStudyCreate,
    CaseStudyOut,
    CaseStudyUpdateRequest,
    DeletedCaseOut,
    MutationResult,
)
from caseflow.schemas.propagation import BulkUpdateRequest, PropagationJobOut
from caseflow.schemas.version import CaseStudyVersionOut
from caseflow.services import case_study_service, lifecycle_service, propagation_service, version_service
from caseflow.services.errors import NotFound
from caseflow.utils.permissions import ADMIN_EDITOR, can_view_case_study

router = APIRouter(prefix="/api/case-studies", tags=["case_studies"])


def _get_visible_case(db: Session, case_id: str, current_user: User):
    case = case_study_service.get_case_study(db, case_id, include_deleted=True)
    if not can_view_case_study(case, current_user):
        raise NotFound("케이스 스터디를 찾을 수 없습니다.")
    return case


@router.get("/deleted", response_model=List[DeletedCaseOut])
def list_deleted(
    limit: int = Query(50, ge=1, le=200),
    days_back: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_EDITOR)),
):
    return lifecycle_service.list_deleted(db, limit=limit, days_back=days_back)


@router.post("/bulk-update", response_model=PropagationJobOut, status_code=status.HTTP_202_ACCEPTED)
def bulk_update(
    data: BulkUpdateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
    current_user: User = Depends(require_roles(*ADMIN_EDITOR)),
):
    plan, mutation, _ = case_study_service.bulk_update(
        db,
        data.selector,
        data.updates,
        change_type=data.change_type,
        reason=data.change_reason,
        skip_versioning=data.skip_versioning,
        actor=current_user.emp_id,
    )
    response = PropagationJobOut.model_validate(plan.job)
    if plan.job.status == "pending":
        background_tasks.add_task(
            propagation_service.run_propagation,
            session_factory,
            plan.job.job_id,
            plan.case_ids,
            mutation,
            actor=current_user.emp_id,
        )
    return response


@router.post("", response_model=CaseStudyOut, status_code=status.HTTP_201_CREATED)
def create_case_study(
    data: CaseStudyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_EDITOR)),
):
    return case_study_service.create_case_study(db, data)


@router.get("/{case_id}", response_model=CaseStudyOut)
def get_case_study(case_id: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return _get_visible_case(db, case_id, current_user)


@router.patch("/{case_id}", response_model=MutationResult)
def update_case_study(
    case_id: str,
    data: CaseStudyUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_EDITOR)),
):
    result = case_study_service.update_case_study(
        db,
        case_id,
        data.updates,
        change_type=data.change_type,
        reason=data.change_reason,
        actor=current_user.emp_id,
    )
    result["case_study"] = CaseStudyOut.model_validate(result["case_study"])
    return MutationResult(**result)


@router.delete("/{case_id}")
def delete_case_study(
    case_id: str,
    reason: Optional[str] = Query(None, max_length=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_EDITOR)),
):
    row = lifecycle_service.soft_delete(db, case_id, reason=reason, actor=current_user.emp_id)
    return {"message": "삭제되었습니다.", "case_study_id": case_id, "version": row.version_number}


@router.post("/{case_id}/restore")
def restore_case_study(
    case_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_EDITOR)),
):
    row = lifecycle_service.restore(db, case_id, actor=current_user.emp_id)
    return {"message": "복원되었습니다.", "case_study_id": case_id, "version": row.version_number}


@router.get("/{case_id}/versions", response_model=List[CaseStudyVersionOut])
def list_versions(
    case_id: str,
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _get_visible_case(db, case_id, current_user)
    rows = version_service.list_versions(db, case_study_id=case_id, limit=limit)
    return [version_service.to_response(row) for row in rows]


@router.get("/{case_id}/versions/{version_number}", response_model=CaseStudyVersionOut)
def get_version(
    case_id: str,
    version_number: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _get_visible_case(db, case_id, current_user)
    row = version_service.get_version(db, case_study_id=case_id, version_number=version_number)
    return version_service.to_response(row)
