"""생성 설정(Configuration Entry)의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON, Index
from sqlalchemy.sql import func
from caseflow.database import Base


class Configuration(Base):
    __tablename__ = "configurations"

    config_id = Column(Integer, primary_key=True, autoincrement=True)
    config_key = Column(String(100), unique=True, nullable=False)
    config_value = Column(JSON, nullable=False)
    config_type = Column(String(30), nullable=False)  # prompt_section/system/feature_flag/threshold
    description = Column(Text)
    is_active = Column(Boolean, default=True)
    version = Column(Integer, nullable=False, default=1)
    display_order = Column(Integer, default=0)
    created_by = Column(String(100), default="system")
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_configurations_type_active", "config_type", "is_active"),
    )
