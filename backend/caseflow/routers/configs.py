"""Configs 기능 API 라우터입니다. 설정 갱신 결과에 따라 전파 작업을 백그라운드로 시작합니다."""

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from caseflow.database import get_db, get_session_factory
from caseflow.middleware.auth_middleware import get_current_user, require_roles
from caseflow.models.user import User
from caseflow.schemas.config import (
    ConfigActiveRequest,
    ConfigurationOut,
    ConfigUpdateRequest,
    ConfigUpdateResult,
)
from caseflow.schemas.propagation import PropagationJobOut
from caseflow.services import config_service, propagation_service
from caseflow.utils.permissions import ADMIN

router = APIRouter(prefix="/api/configs", tags=["configs"])


@router.get("", response_model=List[ConfigurationOut])
def list_configs(
    config_type: Optional[str] = Query(None),
    active_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return config_service.list_configs(db, config_type=config_type, active_only=active_only)


@router.get("/hash")
def get_config_hash(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"config_hash": config_service.compute_config_hash(db)}


@router.get("/{config_key}", response_model=ConfigurationOut)
def get_config(config_key: str, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return config_service.get_config(db, config_key)


@router.patch("", response_model=ConfigUpdateResult)
def update_configs(
    data: ConfigUpdateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session_factory=Depends(get_session_factory),
    current_user: User = Depends(require_roles(ADMIN)),
):
    outcome = config_service.update_configs(
        db,
        [item.model_dump() for item in data.items],
        actor=current_user.emp_id,
    )
    updated = outcome["updated"]
    result = ConfigUpdateResult(
        updated=[ConfigurationOut.model_validate(entry["row"]) for entry in updated],
        failed=outcome["failed"],
    )

    if data.propagate and updated:
        plan, mutation, config_hash = config_service.start_config_propagation(
            db,
            updated,
            actor=current_user.emp_id,
            regenerate_images=not data.update_metadata_only,
            reason=data.change_reason,
        )
        result.config_hash = config_hash
        result.job = PropagationJobOut.model_validate(plan.job)
        if plan.job.status == "pending":
            background_tasks.add_task(
                propagation_service.run_propagation,
                session_factory,
                plan.job.job_id,
                plan.case_ids,
                mutation,
                actor=current_user.emp_id,
            )

    if not outcome["failed"]:
        return result
    # 일부만 성공하면 207, 전부 실패하면 500으로 응답한다.
    status_code = 207 if updated else 500
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"), background=background_tasks)


@router.patch("/{config_key}/active", response_model=ConfigurationOut)
def set_config_active(
    config_key: str,
    data: ConfigActiveRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    return config_service.set_config_active(db, config_key, data.is_active)
