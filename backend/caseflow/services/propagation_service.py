"""선택된 케이스 스터디 전체에 동일한 변경을 전파하고 작업 진행 상태를 관리하는 도메인 서비스입니다.

항목은 selector 조회 순서대로 하나씩 처리한다. 한 항목의 실패는 작업 전체를 멈추지 않고
실패 목록에 기록된다. 진행 카운터는 일정 건수마다, 그리고 종료 시 반드시 저장된다.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from caseflow.config import settings
from caseflow.models.case_study import CaseStudy
from caseflow.models.propagation_job import PropagationFailure, PropagationJob
from caseflow.schemas.propagation import Selector
from caseflow.services import version_service
from caseflow.services.errors import (
    IllegalTransition,
    NotFound,
    StoreFailure,
    ValidationFailed,
    VersioningDegraded,
)

logger = logging.getLogger(__name__)

PROPAGATION_TYPES = ("prompt_change", "threshold_change", "bulk_update", "bulk_regenerate")
TERMINAL_STATUSES = ("completed", "failed", "cancelled")
JOB_TRANSITIONS = {
    "pending": ("in_progress", "failed", "cancelled"),
    "in_progress": ("completed", "failed", "cancelled"),
    "completed": (),
    "failed": (),
    "cancelled": (),
}


class FieldUpdateMutation:
    """모든 대상에 같은 필드 값을 덮어쓴다."""

    def __init__(
        self,
        updates: Dict[str, Any],
        *,
        change_type: Optional[str] = None,
        reason: Optional[str] = None,
        versioned: bool = True,
    ):
        self.updates = dict(updates)
        self.change_type = change_type
        self.reason = reason
        self.versioned = versioned

    def compute(self, case: CaseStudy) -> Dict[str, Any]:
        return dict(self.updates)

    def change_type_for(self, changed_fields: List[str]) -> str:
        return self.change_type or version_service.determine_change_type(changed_fields)

    def reason_for(self, changed_fields: List[str]) -> str:
        return self.reason or f"Bulk update: {', '.join(changed_fields)}"


class ConfigRefreshMutation:
    """설정 변경 후 케이스 스터디에 새 설정 해시를 기록하고 재생성 대상으로 표시한다."""

    versioned = True

    def __init__(self, config_hash: str, *, regenerate_images: bool = True, reason: Optional[str] = None):
        self.config_hash = config_hash
        self.regenerate_images = regenerate_images
        self.reason = reason

    def compute(self, case: CaseStudy) -> Dict[str, Any]:
        values: Dict[str, Any] = {"config_version_hash": self.config_hash}
        if self.regenerate_images:
            values["image_generation_status"] = "pending"
        return values

    def change_type_for(self, changed_fields: List[str]) -> str:
        return "full_regenerate"

    def reason_for(self, changed_fields: List[str]) -> str:
        return self.reason or f"Configuration refresh ({self.config_hash[:12]})"


@dataclass
class PropagationPlan:
    job: PropagationJob
    case_ids: List[str] = field(default_factory=list)


def validate_selector(selector: Selector) -> Selector:
    errors: List[str] = []
    if selector.case_ids is not None:
        if not selector.case_ids:
            errors.append("case_ids must not be an empty list")
        blank = [case_id for case_id in selector.case_ids if not str(case_id).strip()]
        if blank:
            errors.append("case_ids must not contain blank ids")
    if selector.before_date and selector.after_date and selector.before_date <= selector.after_date:
        errors.append("before_date must be later than after_date")
    if errors:
        raise ValidationFailed(errors)

    if selector.case_ids:
        # 중복 id는 첫 등장 순서만 남긴다.
        selector = selector.model_copy(update={"case_ids": list(dict.fromkeys(selector.case_ids))})
    return selector


def describe_selector(selector: Selector) -> str:
    parts = []
    if selector.case_ids:
        parts.append(f"ids={len(selector.case_ids)}")
    for name in ("question_type", "difficulty", "industry"):
        value = getattr(selector, name)
        if value:
            parts.append(f"{name}={value}")
    if selector.before_date:
        parts.append(f"before={selector.before_date.isoformat()}")
    if selector.after_date:
        parts.append(f"after={selector.after_date.isoformat()}")
    scope = "all" if selector.include_deleted else "active"
    return f"{scope}: " + (", ".join(parts) if parts else "all records")


def select_case_ids(db: Session, selector: Selector) -> List[str]:
    q = db.query(CaseStudy.id)
    if not selector.include_deleted:
        q = q.filter(CaseStudy.deleted_at.is_(None))
    if selector.case_ids:
        q = q.filter(CaseStudy.id.in_(selector.case_ids))
    if selector.question_type:
        q = q.filter(CaseStudy.question_type == selector.question_type)
    if selector.difficulty:
        q = q.filter(CaseStudy.difficulty == selector.difficulty)
    if selector.industry:
        q = q.filter(CaseStudy.industry == selector.industry)
    if selector.before_date:
        q = q.filter(CaseStudy.created_at < selector.before_date)
    if selector.after_date:
        q = q.filter(CaseStudy.created_at > selector.after_date)

    ids = [row[0] for row in q.order_by(CaseStudy.created_at.desc(), CaseStudy.id.asc()).all()]
    if selector.case_ids:
        order = {case_id: idx for idx, case_id in enumerate(selector.case_ids)}
        ids.sort(key=lambda case_id: order[case_id])
    return ids


def transition_job(job: PropagationJob, new_status: str) -> None:
    if new_status not in JOB_TRANSITIONS.get(job.status, ()):
        raise IllegalTransition(f"작업 상태를 {job.status}에서 {new_status}(으)로 바꿀 수 없습니다.")
    job.status = new_status
    now = datetime.utcnow()
    if new_status == "in_progress" and job.started_at is None:
        job.started_at = now
    if new_status in TERMINAL_STATUSES and job.completed_at is None:
        job.completed_at = now


def start_propagation(
    db: Session,
    selector: Selector,
    mutation,
    *,
    actor: str,
    subject: Optional[str] = None,
    propagation_type: str = "bulk_update",
    previous_version: Optional[int] = None,
    new_version: Optional[int] = None,
) -> PropagationPlan:
    if propagation_type not in PROPAGATION_TYPES:
        raise ValidationFailed([f"unknown propagation_type '{propagation_type}'"])
    selector = validate_selector(selector)

    job = PropagationJob(
        subject=(subject or describe_selector(selector))[:500],
        propagation_type=propagation_type,
        previous_version=previous_version,
        new_version=new_version,
        status="pending",
        created_by=actor,
    )
    try:
        case_ids = select_case_ids(db, selector)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("[propagation] selector query failed (%s): %s", job.subject, exc)
        job.total = 0
        job.error_message = f"selector query failed: {exc}"
        transition_job(job, "failed")
        db.add(job)
        db.commit()
        db.refresh(job)
        return PropagationPlan(job=job)

    job.total = len(case_ids)
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info(
        "[propagation] job %s created: type=%s subject=%s total=%s",
        job.job_id,
        propagation_type,
        job.subject,
        job.total,
    )
    return PropagationPlan(job=job, case_ids=case_ids)


def _describe_error(exc: BaseException) -> str:
    if isinstance(exc, StoreFailure) and exc.cause is not None:
        return f"{exc.detail}: {exc.cause}"
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    return str(exc) or exc.__class__.__name__


def _apply_direct(db: Session, case: CaseStudy, values: Dict[str, Any]) -> None:
    case_id = case.id
    try:
        for key, value in values.items():
            setattr(case, key, value)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreFailure("케이스 스터디 저장에 실패했습니다.", cause=exc) from exc
    logger.debug("[propagation] case %s updated without versioning", case_id)


def _process_one(db: Session, case_id: str, mutation, actor: str) -> str:
    case = db.query(CaseStudy).filter(CaseStudy.id == case_id).first()
    if not case:
        raise NotFound(f"케이스 스터디를 찾을 수 없습니다: {case_id}")

    target = mutation.compute(case)
    previous = {key: getattr(case, key) for key in target}
    diff = version_service.diff_fields(previous, target)
    if not diff:
        return "unchanged"

    if not mutation.versioned:
        _apply_direct(db, case, target)
        return "updated"

    try:
        version_service.record_change(
            db,
            case,
            change_type=mutation.change_type_for(diff.changed_fields),
            previous=previous,
            new=target,
            reason=mutation.reason_for(diff.changed_fields),
            actor=actor,
            apply=target,
        )
    except StoreFailure as exc:
        if not settings.PROPAGATION_DEGRADED_VERSIONING:
            raise
        case = db.query(CaseStudy).filter(CaseStudy.id == case_id).first()
        if not case:
            raise NotFound(f"케이스 스터디를 찾을 수 없습니다: {case_id}")
        _apply_direct(db, case, target)
        version_service.reconcile_current_version(db, case)
        logger.warning("[propagation] %s", VersioningDegraded(case_id, exc.cause or exc))
        return "degraded"
    return "updated"


@dataclass
class _Progress:
    processed: int = 0
    failed: int = 0
    unchanged: int = 0
    degraded: int = 0


def _flush_progress(db: Session, job_id: str, progress: _Progress) -> PropagationJob:
    job = db.query(PropagationJob).filter(PropagationJob.job_id == job_id).first()
    db.refresh(job)
    job.processed = progress.processed
    job.failed = progress.failed
    job.unchanged = progress.unchanged
    job.degraded = progress.degraded
    db.commit()
    return job


def run_propagation(
    session_factory: Callable[[], Session],
    job_id: str,
    case_ids: Iterable[str],
    mutation,
    *,
    actor: str = "system",
) -> None:
    """작업을 in_progress로 전환한 뒤 대상 레코드를 순차 처리한다. 백그라운드 작업에서 호출된다."""
    db = session_factory()
    try:
        job = db.query(PropagationJob).filter(PropagationJob.job_id == job_id).first()
        if not job:
            logger.error("[propagation] job %s not found", job_id)
            return
        if job.status != "pending":
            logger.warning("[propagation] job %s is %s, skipping run", job_id, job.status)
            return
        transition_job(job, "in_progress")
        db.commit()

        batch_size = max(1, settings.PROPAGATION_PROGRESS_BATCH)
        progress = _Progress()
        for index, case_id in enumerate(case_ids, start=1):
            try:
                outcome = _process_one(db, case_id, mutation, actor)
            except Exception as exc:  # 항목 단위 실패는 기록 후 다음 항목으로 진행한다.
                db.rollback()
                progress.failed += 1
                message = _describe_error(exc)
                db.add(PropagationFailure(job_id=job_id, case_study_id=case_id, error=message))
                # 실패 행과 failed 카운터는 같은 커밋으로 남긴다.
                _flush_progress(db, job_id, progress)
                logger.warning("[propagation] job %s case %s failed: %s", job_id, case_id, message)
            else:
                progress.processed += 1
                if outcome == "unchanged":
                    progress.unchanged += 1
                elif outcome == "degraded":
                    progress.degraded += 1

            if index % batch_size == 0:
                job = _flush_progress(db, job_id, progress)
                if job.status == "cancelled":
                    logger.info("[propagation] job %s cancelled after %s records", job_id, index)
                    return

        job = _flush_progress(db, job_id, progress)
        if job.status == "cancelled":
            logger.info("[propagation] job %s cancelled before completion", job_id)
            return
        transition_job(job, "completed")
        db.commit()
        logger.info(
            "[propagation] job %s completed: total=%s processed=%s failed=%s unchanged=%s degraded=%s",
            job_id,
            job.total,
            progress.processed,
            progress.failed,
            progress.unchanged,
            progress.degraded,
        )
    except Exception as exc:
        db.rollback()
        logger.exception("[propagation] job %s aborted", job_id)
        job = db.query(PropagationJob).filter(PropagationJob.job_id == job_id).first()
        if job and job.status not in TERMINAL_STATUSES:
            job.error_message = str(exc)
            transition_job(job, "failed")
            db.commit()
        raise
    finally:
        db.close()


def get_job(db: Session, job_id: str) -> PropagationJob:
    job = db.query(PropagationJob).filter(PropagationJob.job_id == job_id).first()
    if not job:
        raise NotFound("전파 작업을 찾을 수 없습니다.")
    return job


def list_jobs(db: Session, *, status: Optional[str] = None, limit: int = 20) -> List[PropagationJob]:
    q = db.query(PropagationJob)
    if status:
        q = q.filter(PropagationJob.status == status)
    return q.order_by(PropagationJob.created_at.desc()).limit(limit).all()


def cancel_job(db: Session, job_id: str) -> PropagationJob:
    job = get_job(db, job_id)
    transition_job(job, "cancelled")
    db.commit()
    db.refresh(job)
    logger.info("[propagation] job %s cancelled", job_id)
    return job
