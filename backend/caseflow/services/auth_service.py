"""운영자(admin/editor/viewer) 인증과 API 토큰 발급을 담당하는 서비스입니다."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException, status
from jose import jwt
from sqlalchemy.orm import Session

from caseflow.config import settings
from caseflow.models.user import User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


def issue_access_token(user: User, expires_minutes: Optional[int] = None) -> str:
    """sub는 user_id, role/emp_id는 감사 로그와 배치 호출자 식별용 부가 클레임이다.

    권한 판단은 항상 DB의 현재 role로 하므로 토큰의 role은 참고값이다.
    """
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    now = datetime.utcnow()
    payload = {
        "sub": str(user.user_id),
        "emp_id": user.emp_id,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def authenticate_operator(db: Session, emp_id: str) -> User:
    user = db.query(User).filter(User.emp_id == emp_id, User.is_active == True).first()
    if not user:
        logger.warning("[auth] login rejected for emp_id=%s", emp_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"사번 '{emp_id}'에 해당하는 활성 운영자를 찾을 수 없습니다.",
        )
    logger.info("[auth] operator %s (%s) authenticated", emp_id, user.role)
    return user
