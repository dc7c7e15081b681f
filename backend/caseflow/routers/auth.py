"""Auth 기능 API 라우터입니다. 요청을 검증하고 서비스 레이어로 비즈니스 로직을 위임합니다."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from caseflow.database import get_db
from caseflow.schemas.user import LoginRequest, TokenResponse, UserOut
from caseflow.services.auth_service import authenticate_operator, issue_access_token
from caseflow.middleware.auth_middleware import get_current_user
from caseflow.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(request: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate_operator(db, request.emp_id)
    token = issue_access_token(user)
    return TokenResponse(access_token=token, user=UserOut.model_validate(user))


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user
