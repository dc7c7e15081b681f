"""생성 설정(Configuration) 조회/갱신과 설정 변경 전파 시작을 담당하는 서비스입니다."""

import hashlib
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from caseflow.models.configuration import Configuration
from caseflow.schemas.propagation import Selector
from caseflow.services import propagation_service
from caseflow.services.errors import NotFound, StoreFailure, ValidationFailed

logger = logging.getLogger(__name__)

VALID_PROMPT_SECTIONS = (
    "prompt_system_intro",
    "prompt_output_schema",
    "prompt_question_types",
    "prompt_mental_models",
    "prompt_answer_structure",
    "prompt_evaluation_criteria",
    "prompt_image_generation",
    "prompt_source_customization",
)

VALID_SYSTEM_CONFIGS = (
    "similarity_threshold",
    "company_cooldown_days",
    "buffer_target_days",
    "max_generation_per_run",
    "groq_model",
    "groq_max_tokens",
    "chart_color_palettes",
    "version_retention_count",
)

ALL_VALID_CONFIG_KEYS = VALID_PROMPT_SECTIONS + VALID_SYSTEM_CONFIGS

# (key, type, value, description, display_order)
DEFAULT_CONFIGS = [
    ("prompt_system_intro", "prompt_section", {"content": "## ROLE"}, "System role definition", 10),
    ("prompt_output_schema", "prompt_section", {"content": "## OUTPUT STRUCTURE"}, "JSON output schema", 20),
    ("prompt_question_types", "prompt_section", {"content": "## QUESTION TYPES"}, "Available question types", 30),
    ("prompt_mental_models", "prompt_section", {"content": "## MENTAL MODEL PATTERNS"}, "Mental model patterns", 40),
    ("prompt_answer_structure", "prompt_section", {"content": "## SENIORITY LEVELS"}, "Seniority and difficulty", 50),
    ("prompt_evaluation_criteria", "prompt_section", {"content": "## ASKED IN COMPANY"}, "Company matching", 60),
    ("prompt_image_generation", "prompt_section", {"content": "## IMAGE GENERATION"}, "Image prompt instructions", 70),
    ("prompt_source_customization", "prompt_section", {"content": "## WRITING STYLE"}, "Writing style", 80),
    ("similarity_threshold", "threshold", {"value": 0.85}, "Duplicate detection threshold", 0),
    ("company_cooldown_days", "threshold", {"value": 60}, "Company cooldown days", 0),
    ("buffer_target_days", "system", {"value": 14}, "Content buffer target", 0),
    ("max_generation_per_run", "system", {"value": 3}, "Max cases per run", 0),
    ("groq_model", "system", {"value": "llama-3.3-70b-versatile"}, "Default Groq model", 0),
    ("groq_max_tokens", "system", {"value": 4000}, "Max LLM tokens", 0),
    ("chart_color_palettes", "system", {"default": ["#4F46E5", "#10B981", "#F59E0B", "#EF4444"]}, "Chart colors", 0),
    ("version_retention_count", "system", {"value": 5}, "Version retention", 0),
]


def list_configs(db: Session, config_type: Optional[str] = None, active_only: bool = False) -> List[Configuration]:
    q = db.query(Configuration)
    if config_type:
        q = q.filter(Configuration.config_type == config_type)
    if active_only:
        q = q.filter(Configuration.is_active == True)  # noqa: E712
    return q.order_by(Configuration.config_type, Configuration.display_order, Configuration.config_key).all()


def get_config(db: Session, config_key: str) -> Configuration:
    row = db.query(Configuration).filter(Configuration.config_key == config_key).first()
    if not row:
        raise NotFound(f"설정을 찾을 수 없습니다: {config_key}")
    return row


def _validate_value(config_key: str, value: Any) -> Optional[str]:
    if config_key not in ALL_VALID_CONFIG_KEYS:
        return f"Invalid config_key '{config_key}'"
    if not isinstance(value, dict):
        return "config_value must be a JSON object"
    if config_key in VALID_PROMPT_SECTIONS and not isinstance(value.get("content"), str):
        return "prompt sections require a string 'content'"
    if config_key == "version_retention_count":
        count = value.get("value")
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            return "version_retention_count requires an integer 'value' >= 1"
    return None


def update_configs(db: Session, items: Iterable[Dict[str, Any]], *, actor: str = "system") -> Dict[str, Any]:
    """키 단위로 값을 갱신하고 version을 올린다. 일부 실패는 failed 목록으로 돌려준다."""
    items = list(items)
    if not items:
        raise ValidationFailed(["items must not be empty"])
    errors = [
        f"items[{idx}]: {message}"
        for idx, item in enumerate(items)
        for message in [_validate_value(item["config_key"], item["config_value"])]
        if message
    ]
    if errors:
        raise ValidationFailed(errors)

    updated: List[Dict[str, Any]] = []
    failed: List[Dict[str, str]] = []
    for item in items:
        key = item["config_key"]
        row = db.query(Configuration).filter(Configuration.config_key == key).first()
        if not row:
            failed.append({"config_key": key, "error": f'Config "{key}" not found'})
            continue
        previous_version = row.version
        try:
            row.config_value = item["config_value"]
            row.version = previous_version + 1
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("[config] update failed for %s: %s", key, exc)
            failed.append({"config_key": key, "error": str(exc)})
            continue
        db.refresh(row)
        logger.info("[config] %s updated by %s: v%s -> v%s", key, actor, previous_version, row.version)
        updated.append({"row": row, "previous_version": previous_version, "new_version": row.version})
    return {"updated": updated, "failed": failed}


def compute_config_hash(db: Session) -> str:
    sections = (
        db.query(Configuration)
        .filter(
            Configuration.config_type == "prompt_section",
            Configuration.is_active == True,  # noqa: E712
        )
        .order_by(Configuration.display_order.asc())
        .all()
    )
    assembled = "".join(f"{(row.config_value or {}).get('content', '')}\n\n" for row in sections)
    return hashlib.md5(assembled.encode("utf-8")).hexdigest()


def set_config_active(db: Session, config_key: str, is_active: bool) -> Configuration:
    row = get_config(db, config_key)
    row.is_active = is_active
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreFailure("설정 저장에 실패했습니다.", cause=exc) from exc
    db.refresh(row)
    logger.info("[config] %s active=%s", config_key, is_active)
    return row


def start_config_propagation(
    db: Session,
    updated: List[Dict[str, Any]],
    *,
    actor: str,
    regenerate_images: bool = True,
    reason: Optional[str] = None,
):
    """갱신된 설정 해시를 활성 케이스 스터디 전체에 반영하는 전파 작업을 만든다."""
    keys = [entry["row"].config_key for entry in updated]
    prompt_change = any(key in VALID_PROMPT_SECTIONS for key in keys)
    config_hash = compute_config_hash(db)
    mutation = propagation_service.ConfigRefreshMutation(
        config_hash,
        regenerate_images=regenerate_images,
        reason=reason,
    )
    plan = propagation_service.start_propagation(
        db,
        Selector(),
        mutation,
        actor=actor,
        subject=",".join(keys),
        propagation_type="prompt_change" if prompt_change else "threshold_change",
        previous_version=updated[0]["previous_version"],
        new_version=updated[0]["new_version"],
    )
    return plan, mutation, config_hash


def seed_default_configs(db: Session, actor: str = "system") -> int:
    existing = {row[0] for row in db.query(Configuration.config_key).all()}
    created = 0
    for key, config_type, value, description, display_order in DEFAULT_CONFIGS:
        if key in existing:
            continue
        db.add(
            Configuration(
                config_key=key,
                config_type=config_type,
                config_value=value,
                description=description,
                display_order=display_order,
                is_active=True,
                created_by=actor,
            )
        )
        created += 1
    db.commit()
    return created
