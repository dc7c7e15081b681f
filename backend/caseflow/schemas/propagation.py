"""일괄 전파(selector/작업 상태) 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class Selector(BaseModel):
    case_ids: Optional[List[str]] = None
    question_type: Optional[str] = None
    difficulty: Optional[str] = None
    industry: Optional[str] = None
    before_date: Optional[datetime] = None
    after_date: Optional[datetime] = None
    include_deleted: bool = False


class BulkUpdateRequest(BaseModel):
    selector: Selector = Selector()
    updates: Dict[str, Any]
    change_type: Optional[str] = None
    change_reason: Optional[str] = None
    skip_versioning: bool = False


class PropagationFailureOut(BaseModel):
    case_study_id: str
    error: str

    model_config = {"from_attributes": True}


class PropagationJobOut(BaseModel):
    job_id: str
    subject: str
    propagation_type: str
    previous_version: Optional[int] = None
    new_version: Optional[int] = None
    total: int
    processed: int
    failed: int
    unchanged: int
    degraded: int
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    created_by: str
    created_at: Optional[datetime] = None
    failures: List[PropagationFailureOut] = []

    model_config = {"from_attributes": True}
