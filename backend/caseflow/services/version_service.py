"""케이스 스터디 버전 이력(Version Ledger)의 기록/조회/보존 정리를 담당하는 도메인 서비스입니다.

버전 레코드 추가와 current_version 갱신, 보존 범위 밖 레코드 정리는 하나의 트랜잭션으로
커밋된다. 실패 시 전체가 롤백되며 호출자는 StoreFailure를 받는다.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from caseflow.config import settings
from caseflow.models.case_study import CaseStudy
from caseflow.models.case_study_version import CaseStudyVersion
from caseflow.models.configuration import Configuration
from caseflow.services.errors import NotFound, StoreFailure

logger = logging.getLogger(__name__)

CHANGE_TYPES = ("content", "metadata", "visuals", "full_regenerate", "soft_delete", "restore")

CONTENT_FIELDS = (
    "title",
    "the_question",
    "read_time_minutes",
    "what_happened",
    "mental_model",
    "answer_approach",
    "pushback_scenarios",
    "summary",
    "interviewer_evaluation",
    "common_mistakes",
    "practice",
    "image_prompt",
)

METADATA_FIELDS = (
    "difficulty",
    "question_type",
    "seniority_level",
    "frameworks_applicable",
    "tags",
    "asked_in_company",
    "industry",
    "company_name",
    "source_type",
)

VISUAL_FIELDS = ("charts", "image_generation_status")

RETENTION_CONFIG_KEY = "version_retention_count"


@dataclass
class FieldDiff:
    changed_fields: List[str] = field(default_factory=list)
    previous_values: Dict[str, Any] = field(default_factory=dict)
    new_values: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.changed_fields)


def to_jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def values_equal(left: Any, right: Any) -> bool:
    """JSON 형태로 정규화한 두 값을 구조적으로 비교한다. 3과 3.0은 같고 True와 1은 다르다."""
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, dict) and isinstance(right, dict):
        return left.keys() == right.keys() and all(values_equal(left[k], right[k]) for k in left)
    if isinstance(left, list) and isinstance(right, list):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    return left == right


def diff_fields(
    previous: Dict[str, Any],
    new: Dict[str, Any],
    fields: Optional[Iterable[str]] = None,
) -> FieldDiff:
    """previous/new 양쪽 키 중 값이 다른 필드만 모은다. 한쪽에 없는 키는 None으로 비교한다."""
    if fields is None:
        fields = list(previous.keys()) + [key for key in new.keys() if key not in previous]
    result = FieldDiff()
    for name in fields:
        old_val = previous.get(name)
        new_val = new.get(name)
        if values_equal(to_jsonable(old_val), to_jsonable(new_val)):
            continue
        result.changed_fields.append(name)
        result.previous_values[name] = to_jsonable(old_val)
        result.new_values[name] = to_jsonable(new_val)
    return result


def determine_change_type(changed_fields: Iterable[str]) -> str:
    changed = set(changed_fields)
    has_content = bool(changed & set(CONTENT_FIELDS))
    has_metadata = bool(changed & set(METADATA_FIELDS))
    has_visuals = bool(changed & set(VISUAL_FIELDS))

    if has_visuals and not has_content and not has_metadata:
        return "visuals"
    if has_metadata and not has_content and not has_visuals:
        return "metadata"
    return "content"


def get_retention_window(db: Session) -> int:
    row = (
        db.query(Configuration)
        .filter(
            Configuration.config_key == RETENTION_CONFIG_KEY,
            Configuration.is_active == True,  # noqa: E712
        )
        .first()
    )
    if row and isinstance(row.config_value, dict):
        value = row.config_value.get("value")
        if isinstance(value, int) and not isinstance(value, bool) and value >= 1:
            return value
    return settings.VERSION_RETENTION_COUNT


def _current_max(db: Session, case_study_id: str) -> int:
    current_max = (
        db.query(func.max(CaseStudyVersion.version_number))
        .filter(CaseStudyVersion.case_study_id == case_study_id)
        .scalar()
    )
    return current_max or 0


def _insert_version(
    db: Session,
    *,
    case_study_id: str,
    version_number: int,
    change_type: str,
    diff: FieldDiff,
    reason: Optional[str],
    actor: str,
) -> CaseStudyVersion:
    row = CaseStudyVersion(
        case_study_id=case_study_id,
        version_number=version_number,
        change_type=change_type,
        changed_fields=list(diff.changed_fields),
        change_reason=reason or None,
        previous_values=diff.previous_values,
        new_values=diff.new_values,
        created_by=actor or "system",
    )
    db.add(row)
    return row


def prune_versions(db: Session, case_study_id: str, retention: int) -> int:
    if retention < 1:
        return 0
    stale_ids = [
        row[0]
        for row in db.query(CaseStudyVersion.version_id)
        .filter(CaseStudyVersion.case_study_id == case_study_id)
        .order_by(CaseStudyVersion.version_number.desc())
        .offset(retention)
        .all()
    ]
    if stale_ids:
        db.query(CaseStudyVersion).filter(CaseStudyVersion.version_id.in_(stale_ids)).delete(
            synchronize_session=False
        )
    return len(stale_ids)


def record_change(
    db: Session,
    case_study: CaseStudy,
    *,
    change_type: str,
    previous: Dict[str, Any],
    new: Dict[str, Any],
    reason: Optional[str] = None,
    actor: str = "system",
    apply: Optional[Dict[str, Any]] = None,
    fields: Optional[Iterable[str]] = None,
) -> Optional[CaseStudyVersion]:
    """변경 내역을 버전 레코드로 남긴다. 변경이 없으면 아무것도 쓰지 않고 None을 반환한다.

    apply가 주어지면 해당 필드 값도 같은 트랜잭션에서 케이스 스터디에 반영한다.
    """
    if change_type not in CHANGE_TYPES:
        raise ValueError(f"unknown change_type: {change_type}")

    diff = diff_fields(previous, new, fields)
    if not diff:
        return None

    case_study_id = case_study.id
    try:
        retention = get_retention_window(db)
        version_number = _current_max(db, case_study_id) + 1
        row = _insert_version(
            db,
            case_study_id=case_study_id,
            version_number=version_number,
            change_type=change_type,
            diff=diff,
            reason=reason,
            actor=actor,
        )
        for key, value in (apply or {}).items():
            setattr(case_study, key, value)
        case_study.current_version = version_number
        db.flush()
        pruned = prune_versions(db, case_study_id, retention)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("[ledger] version write failed for case %s: %s", case_study_id, exc)
        raise StoreFailure("버전 이력 저장에 실패했습니다.", cause=exc) from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(row)
    logger.info(
        "[ledger] case=%s version=%s type=%s fields=%s",
        case_study_id,
        version_number,
        change_type,
        ",".join(diff.changed_fields),
    )
    if pruned:
        logger.info("[ledger] pruned %s old versions for case %s", pruned, case_study_id)
    return row


def reconcile_current_version(db: Session, case_study: CaseStudy) -> int:
    """비원자적 경로로 기록한 뒤 current_version이 실제 최고 버전과 일치하는지 다시 맞춘다."""
    current_max = _current_max(db, case_study.id)
    if case_study.current_version != current_max:
        logger.warning(
            "[ledger] current_version drift on case %s: %s -> %s",
            case_study.id,
            case_study.current_version,
            current_max,
        )
        case_study.current_version = current_max
        db.commit()
    return current_max


def list_versions(db: Session, *, case_study_id: str, limit: Optional[int] = None) -> List[CaseStudyVersion]:
    if limit is None:
        limit = settings.VERSION_HISTORY_DEFAULT_LIMIT
    limit = max(1, min(limit, get_retention_window(db)))
    return (
        db.query(CaseStudyVersion)
        .filter(CaseStudyVersion.case_study_id == case_study_id)
        .order_by(CaseStudyVersion.version_number.desc())
        .limit(limit)
        .all()
    )


def get_version(db: Session, *, case_study_id: str, version_number: int) -> CaseStudyVersion:
    row = (
        db.query(CaseStudyVersion)
        .filter(
            CaseStudyVersion.case_study_id == case_study_id,
            CaseStudyVersion.version_number == version_number,
        )
        .first()
    )
    if not row:
        raise NotFound("버전 이력을 찾을 수 없습니다.")
    return row


def to_response(row: CaseStudyVersion) -> Dict[str, Any]:
    return {
        "version_id": row.version_id,
        "case_study_id": row.case_study_id,
        "version_number": row.version_number,
        "change_type": row.change_type,
        "changed_fields": list(row.changed_fields or []),
        "change_reason": row.change_reason,
        "previous_values": row.previous_values or {},
        "new_values": row.new_values or {},
        "created_by": row.created_by,
        "created_at": row.created_at,
    }
