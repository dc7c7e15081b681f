"""케이스 스터디 단건/일괄 갱신 요청을 검증하고 버전 이력 엔진으로 위임하는 서비스입니다."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from caseflow.models.case_study import CaseStudy
from caseflow.schemas.case_study import CaseStudyCreate
from caseflow.schemas.propagation import Selector
from caseflow.services import propagation_service, version_service
from caseflow.services.errors import NotFound, StoreFailure, ValidationFailed

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    version_service.CONTENT_FIELDS
    + version_service.METADATA_FIELDS
    + version_service.VISUAL_FIELDS
)

SYSTEM_FIELDS = (
    "id",
    "created_at",
    "updated_at",
    "deleted_at",
    "deleted_by",
    "delete_reason",
    "current_version",
    "prompt_version_hash",
    "config_version_hash",
    "is_published",
    "scheduled_date",
)

VALID_ENUMS = {
    "difficulty": ("beginner", "intermediate", "advanced"),
    "question_type": (
        "Root Cause Analysis (RCA)",
        "Product Design (Open-ended)",
        "Metrics & Measurement",
        "Feature Prioritization",
        "Strategy & Vision",
        "Pricing Strategy",
        "Launch Decision",
        "Growth Strategy",
        "Trade-off Analysis",
        "A/B Test Design",
        "Estimation",
        "Execution",
    ),
    "seniority_level": (0, 1, 2, 3),
    "image_generation_status": ("pending", "generating", "completed", "failed"),
    "source_type": (
        "historical_wikipedia",
        "historical_archive",
        "live_news_techcrunch",
        "live_news_hackernews",
        "live_news_producthunt",
        "company_blog",
        "company_earnings",
        "company_sec_filing",
        "framework_classic",
        "framework_book",
    ),
}

LIST_FIELDS = (
    "tags",
    "frameworks_applicable",
    "answer_approach",
    "interviewer_evaluation",
    "common_mistakes",
    "charts",
)

MANUAL_CHANGE_TYPES = ("content", "metadata", "visuals", "full_regenerate")


def validate_updates(updates: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
    """허용 목록 기준으로 갱신 값을 검증한다. 알 수 없는 필드는 경고와 함께 제외한다."""
    errors: List[str] = []
    warnings: List[str] = []
    if not updates:
        raise ValidationFailed(["updates must not be empty"])

    accepted: Dict[str, Any] = {}
    for key, value in updates.items():
        if key in SYSTEM_FIELDS:
            errors.append(f"Field '{key}' is a system field and cannot be updated directly")
        elif key not in UPDATABLE_FIELDS:
            warnings.append(f"Unknown field '{key}' - will be ignored")
        else:
            accepted[key] = value

    for name, allowed in VALID_ENUMS.items():
        if name not in accepted:
            continue
        value = accepted[name]
        if isinstance(value, bool) or value not in allowed:
            errors.append(
                f"Invalid {name} '{value}'. Valid values: {', '.join(str(v) for v in allowed)}"
            )

    if "title" in accepted and not (isinstance(accepted["title"], str) and accepted["title"].strip()):
        errors.append("title must be a non-empty string")

    if "read_time_minutes" in accepted:
        rt = accepted["read_time_minutes"]
        if isinstance(rt, bool) or not isinstance(rt, (int, float)) or rt < 1 or rt > 30:
            errors.append("read_time_minutes must be a number between 1 and 30")

    for name in LIST_FIELDS:
        if name in accepted and accepted[name] is not None and not isinstance(accepted[name], list):
            errors.append(f"{name} must be an array")

    if "mental_model" in accepted and accepted["mental_model"] is not None:
        if not isinstance(accepted["mental_model"], dict):
            errors.append("mental_model must be an object with flow, intro, steps, disclaimer")

    if errors:
        raise ValidationFailed(errors, warnings)
    if not accepted:
        raise ValidationFailed(["updates contain no updatable fields"], warnings)
    return accepted, warnings


def _validate_change_type(change_type: Optional[str]) -> None:
    if change_type is not None and change_type not in MANUAL_CHANGE_TYPES:
        raise ValidationFailed(
            [f"Invalid change_type '{change_type}'. Valid values: {', '.join(MANUAL_CHANGE_TYPES)}"]
        )


def get_case_study(db: Session, case_id: str, include_deleted: bool = False) -> CaseStudy:
    case = db.query(CaseStudy).filter(CaseStudy.id == case_id).first()
    if not case or (case.is_deleted and not include_deleted):
        raise NotFound("케이스 스터디를 찾을 수 없습니다.")
    return case


def create_case_study(db: Session, data: CaseStudyCreate) -> CaseStudy:
    payload = data.model_dump()
    validate_updates(
        {key: value for key, value in payload.items() if key in UPDATABLE_FIELDS and value is not None}
    )
    case = CaseStudy(**payload)
    try:
        db.add(case)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreFailure("케이스 스터디 저장에 실패했습니다.", cause=exc) from exc
    db.refresh(case)
    logger.info("[case_study] created %s (%s)", case.id, case.title)
    return case


def update_case_study(
    db: Session,
    case_id: str,
    updates: Dict[str, Any],
    *,
    change_type: Optional[str] = None,
    reason: Optional[str] = None,
    actor: str = "system",
) -> Dict[str, Any]:
    _validate_change_type(change_type)
    accepted, warnings = validate_updates(updates)
    case = get_case_study(db, case_id)

    previous = {key: getattr(case, key) for key in accepted}
    diff = version_service.diff_fields(previous, accepted)
    if not diff:
        return {
            "case_study": case,
            "version": None,
            "changed_fields": [],
            "change_type": None,
            "warnings": warnings,
        }

    # 변경된 필드만 반영하고 버전 기록과 같은 트랜잭션으로 커밋한다.
    resolved_type = change_type or version_service.determine_change_type(diff.changed_fields)
    target = {key: accepted[key] for key in diff.changed_fields}
    row = version_service.record_change(
        db,
        case,
        change_type=resolved_type,
        previous={key: previous[key] for key in diff.changed_fields},
        new=target,
        reason=reason,
        actor=actor,
        apply=target,
    )
    db.refresh(case)
    return {
        "case_study": case,
        "version": row.version_number if row else None,
        "changed_fields": list(diff.changed_fields),
        "change_type": resolved_type,
        "warnings": warnings,
    }


def bulk_update(
    db: Session,
    selector: Selector,
    updates: Dict[str, Any],
    *,
    change_type: Optional[str] = None,
    reason: Optional[str] = None,
    skip_versioning: bool = False,
    actor: str = "system",
):
    _validate_change_type(change_type)
    accepted, warnings = validate_updates(updates)
    mutation = propagation_service.FieldUpdateMutation(
        accepted,
        change_type=change_type,
        reason=reason,
        versioned=not skip_versioning,
    )
    plan = propagation_service.start_propagation(
        db,
        selector,
        mutation,
        actor=actor,
        propagation_type="bulk_regenerate" if change_type == "full_regenerate" else "bulk_update",
    )
    return plan, mutation, warnings

