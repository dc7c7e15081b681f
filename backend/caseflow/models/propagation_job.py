"""일괄 전파 작업(Job Record)과 항목별 실패 내역의 SQLAlchemy 모델 정의입니다."""

import uuid

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from caseflow.database import Base


class PropagationJob(Base):
    __tablename__ = "propagation_jobs"

    job_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    subject = Column(String(500), nullable=False)  # config key 목록 또는 필터 설명
    propagation_type = Column(String(30), nullable=False)  # prompt_change/threshold_change/bulk_update/bulk_regenerate
    previous_version = Column(Integer)
    new_version = Column(Integer)
    total = Column(Integer, nullable=False, default=0)
    processed = Column(Integer, nullable=False, default=0)
    failed = Column(Integer, nullable=False, default=0)
    unchanged = Column(Integer, nullable=False, default=0)
    degraded = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending")
    started_at = Column(DateTime)
    completed_at = Column(DateTime)
    error_message = Column(Text)
    created_by = Column(String(100), nullable=False, default="system")
    created_at = Column(DateTime, server_default=func.now())

    failures = relationship(
        "PropagationFailure",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="PropagationFailure.failure_id",
    )

    __table_args__ = (
        Index("idx_propagation_jobs_status", "status"),
    )


class PropagationFailure(Base):
    __tablename__ = "propagation_failures"

    failure_id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String(36), ForeignKey("propagation_jobs.job_id", ondelete="CASCADE"), nullable=False)
    case_study_id = Column(String(36), nullable=False)
    error = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    job = relationship("PropagationJob", back_populates="failures")

    __table_args__ = (
        Index("idx_propagation_failures_job", "job_id"),
    )
