"""Propagation 작업 조회/취소 API 라우터입니다."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from caseflow.database import get_db
from caseflow.middleware.auth_middleware import require_roles
from caseflow.models.user import User
from caseflow.schemas.propagation import PropagationJobOut
from caseflow.services import propagation_service
from caseflow.utils.permissions import ADMIN_EDITOR

router = APIRouter(prefix="/api/propagation-jobs", tags=["propagation"])


@router.get("", response_model=List[PropagationJobOut])
def list_jobs(
    status: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*ADMIN_EDITOR)),
):
    return propagation_service.list_jobs(db, status=status, limit=limit)


@router.get("/{job_id}", response_model=PropagationJobOut)
def get_job(job_id: str, db: Session = Depends(get_db), current_user: User = Depends(require_roles(*ADMIN_EDITOR))):
    return propagation_service.get_job(db, job_id)


@router.post("/{job_id}/cancel", response_model=PropagationJobOut)
def cancel_job(job_id: str, db: Session = Depends(get_db), current_user: User = Depends(require_roles(*ADMIN_EDITOR))):
    return propagation_service.cancel_job(db, job_id)
