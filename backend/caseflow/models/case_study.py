"""케이스 스터디(버전 관리 대상 콘텐츠)의 SQLAlchemy 모델 정의입니다."""

import uuid

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, Boolean, JSON, Index
from sqlalchemy.sql import func
from caseflow.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class CaseStudy(Base):
    __tablename__ = "case_studies"

    id = Column(String(36), primary_key=True, default=_new_id)

    # content
    title = Column(String(300), nullable=False)
    the_question = Column(Text)
    read_time_minutes = Column(Integer, default=3)
    what_happened = Column(Text)
    mental_model = Column(JSON)  # {flow, intro, steps[], disclaimer}
    answer_approach = Column(JSON)
    pushback_scenarios = Column(JSON)
    summary = Column(JSON)
    interviewer_evaluation = Column(JSON, default=list)
    common_mistakes = Column(JSON, default=list)
    practice = Column(JSON)
    image_prompt = Column(Text)

    # metadata
    difficulty = Column(String(20))  # beginner/intermediate/advanced
    question_type = Column(String(100))
    seniority_level = Column(Integer)
    frameworks_applicable = Column(JSON, default=list)
    tags = Column(JSON, default=list)
    asked_in_company = Column(String(100))
    industry = Column(String(100))
    company_name = Column(String(200))
    source_type = Column(String(50))

    # visuals
    charts = Column(JSON, default=list)
    image_generation_status = Column(String(20), default="pending")

    is_published = Column(Boolean, default=False)
    scheduled_date = Column(Date)

    # 시스템 필드: 아래 값들은 엔진 경로로만 갱신된다.
    current_version = Column(Integer, nullable=False, default=0)
    deleted_at = Column(DateTime)
    deleted_by = Column(String(100))
    delete_reason = Column(Text)
    config_version_hash = Column(String(64))
    prompt_version_hash = Column(String(64))
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    __table_args__ = (
        Index("idx_case_studies_deleted", "deleted_at"),
        Index("idx_case_studies_question_type", "question_type", "difficulty"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
