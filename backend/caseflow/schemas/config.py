"""Configuration 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from caseflow.schemas.propagation import PropagationJobOut


class ConfigurationOut(BaseModel):
    config_id: int
    config_key: str
    config_value: Dict[str, Any]
    config_type: str
    description: Optional[str] = None
    is_active: bool
    version: int
    display_order: Optional[int] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ConfigUpdateItem(BaseModel):
    config_key: str
    config_value: Dict[str, Any]


class ConfigUpdateRequest(BaseModel):
    items: List[ConfigUpdateItem]
    propagate: bool = False
    update_metadata_only: bool = False
    change_reason: Optional[str] = None


class ConfigActiveRequest(BaseModel):
    is_active: bool


class ConfigUpdateFailure(BaseModel):
    config_key: str
    error: str


class ConfigUpdateResult(BaseModel):
    updated: List[ConfigurationOut] = []
    failed: List[ConfigUpdateFailure] = []
    config_hash: Optional[str] = None
    job: Optional[PropagationJobOut] = None
