"""케이스 스터디 변경 이력(Version Record)을 저장하는 SQLAlchemy 모델 정의입니다."""

import uuid

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index, JSON, UniqueConstraint
from sqlalchemy.sql import func

from caseflow.database import Base


class CaseStudyVersion(Base):
    __tablename__ = "case_study_versions"

    version_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    case_study_id = Column(String(36), ForeignKey("case_studies.id", ondelete="CASCADE"), nullable=False)
    version_number = Column(Integer, nullable=False)
    change_type = Column(String(30), nullable=False)  # content/metadata/visuals/full_regenerate/soft_delete/restore
    changed_fields = Column(JSON, nullable=False)
    change_reason = Column(Text)
    previous_values = Column(JSON, nullable=False, default=dict)
    new_values = Column(JSON, nullable=False, default=dict)
    created_by = Column(String(100), nullable=False, default="system")
    created_at = Column(DateTime, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("case_study_id", "version_number", name="uq_case_study_version_number"),
        Index("idx_case_versions_case", "case_study_id", "version_number"),
    )
