"""CaseStudyVersion 응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class CaseStudyVersionOut(BaseModel):
    version_id: str
    case_study_id: str
    version_number: int
    change_type: str
    changed_fields: List[str]
    change_reason: Optional[str] = None
    previous_values: Dict[str, Any] = {}
    new_values: Dict[str, Any] = {}
    created_by: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
