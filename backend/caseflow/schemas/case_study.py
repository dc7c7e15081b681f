"""CaseStudy 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CaseStudyCreate(BaseModel):
    title: str
    the_question: Optional[str] = None
    read_time_minutes: int = Field(default=3, ge=1, le=30)
    what_happened: Optional[str] = None
    mental_model: Optional[Dict[str, Any]] = None
    answer_approach: Optional[List[Any]] = None
    pushback_scenarios: Optional[Any] = None
    summary: Optional[Any] = None
    interviewer_evaluation: List[Any] = []
    common_mistakes: List[Any] = []
    practice: Optional[Any] = None
    image_prompt: Optional[str] = None
    difficulty: Optional[str] = None
    question_type: Optional[str] = None
    seniority_level: Optional[int] = None
    frameworks_applicable: List[str] = []
    tags: List[str] = []
    asked_in_company: Optional[str] = None
    industry: Optional[str] = None
    company_name: Optional[str] = None
    source_type: Optional[str] = None
    charts: List[Any] = []
    image_generation_status: str = "pending"
    is_published: bool = False
    scheduled_date: Optional[date] = None


class CaseStudyUpdateRequest(BaseModel):
    updates: Dict[str, Any]
    change_type: Optional[str] = None
    change_reason: Optional[str] = None


class CaseStudyOut(BaseModel):
    id: str
    title: str
    the_question: Optional[str] = None
    read_time_minutes: Optional[int] = None
    what_happened: Optional[str] = None
    mental_model: Optional[Any] = None
    answer_approach: Optional[Any] = None
    pushback_scenarios: Optional[Any] = None
    summary: Optional[Any] = None
    interviewer_evaluation: Optional[Any] = None
    common_mistakes: Optional[Any] = None
    practice: Optional[Any] = None
    image_prompt: Optional[str] = None
    difficulty: Optional[str] = None
    question_type: Optional[str] = None
    seniority_level: Optional[int] = None
    frameworks_applicable: Optional[List[Any]] = None
    tags: Optional[List[Any]] = None
    asked_in_company: Optional[str] = None
    industry: Optional[str] = None
    company_name: Optional[str] = None
    source_type: Optional[str] = None
    charts: Optional[List[Any]] = None
    image_generation_status: Optional[str] = None
    is_published: Optional[bool] = None
    scheduled_date: Optional[date] = None
    current_version: int
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[str] = None
    delete_reason: Optional[str] = None
    config_version_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DeletedCaseOut(BaseModel):
    id: str
    title: str
    deleted_at: datetime
    deleted_by: Optional[str] = None
    delete_reason: Optional[str] = None
    current_version: int

    model_config = {"from_attributes": True}


class MutationResult(BaseModel):
    case_study: CaseStudyOut
    version: Optional[int] = None
    changed_fields: List[str] = []
    change_type: Optional[str] = None
    warnings: List[str] = []
