"""운영자(User) 도메인의 SQLAlchemy 모델 정의입니다."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from caseflow.database import Base


class User(Base):
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    emp_id = Column(String(100), unique=True, nullable=False)  # 버전 이력의 created_by로 기록된다
    name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False)  # admin/editor/viewer
    email = Column(String(100))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
