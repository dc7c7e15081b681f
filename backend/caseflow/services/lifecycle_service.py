"""케이스 스터디 소프트 삭제/복원 상태 전이를 담당하는 도메인 서비스입니다."""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from caseflow.config import settings
from caseflow.models.case_study import CaseStudy
from caseflow.models.case_study_version import CaseStudyVersion
from caseflow.services import version_service
from caseflow.services.errors import AlreadyDeleted, NotDeleted, NotFound

logger = logging.getLogger(__name__)

DELETION_FIELDS = ("deleted_at", "deleted_by", "delete_reason")
RESTORE_REASON = "Restored from soft delete"
DEFAULT_DELETE_REASON = "No reason provided"


def _get_case(db: Session, case_id: str) -> CaseStudy:
    case = db.query(CaseStudy).filter(CaseStudy.id == case_id).first()
    if not case:
        raise NotFound("케이스 스터디를 찾을 수 없습니다.")
    return case


def soft_delete(db: Session, case_id: str, *, reason: Optional[str] = None, actor: str = "system") -> CaseStudyVersion:
    case = _get_case(db, case_id)
    if case.is_deleted:
        raise AlreadyDeleted(case_id)
    reason = (reason or "").strip() or DEFAULT_DELETE_REASON

    previous = {
        "deleted_at": case.deleted_at,
        "deleted_by": case.deleted_by,
        "delete_reason": case.delete_reason,
        "is_published": case.is_published,
    }
    new = {
        "deleted_at": datetime.utcnow(),
        "deleted_by": actor,
        "delete_reason": reason,
        "is_published": False,
    }
    row = version_service.record_change(
        db,
        case,
        change_type="soft_delete",
        previous=previous,
        new=new,
        reason=reason,
        actor=actor,
        apply=new,
    )
    logger.info("[lifecycle] case %s soft deleted by %s (version %s)", case_id, actor, row.version_number)
    return row


def restore(db: Session, case_id: str, *, actor: str = "system") -> CaseStudyVersion:
    case = _get_case(db, case_id)
    if not case.is_deleted:
        raise NotDeleted(case_id)

    previous = {name: getattr(case, name) for name in DELETION_FIELDS}
    new = {name: None for name in DELETION_FIELDS}
    row = version_service.record_change(
        db,
        case,
        change_type="restore",
        previous=previous,
        new=new,
        reason=RESTORE_REASON,
        actor=actor,
        apply=new,
    )
    logger.info("[lifecycle] case %s restored by %s (version %s)", case_id, actor, row.version_number)
    return row


def list_deleted(db: Session, *, limit: int = 50, days_back: Optional[int] = None) -> List[CaseStudy]:
    if days_back is None:
        days_back = settings.DELETED_LOOKBACK_DAYS
    cutoff = datetime.utcnow() - timedelta(days=days_back)
    return (
        db.query(CaseStudy)
        .filter(CaseStudy.deleted_at.isnot(None), CaseStudy.deleted_at >= cutoff)
        .order_by(CaseStudy.deleted_at.desc())
        .limit(limit)
        .all()
    )
