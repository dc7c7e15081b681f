"""변경 이력/전파 엔진의 오류 유형을 정의합니다.

서비스 레이어는 다른 서비스와 마찬가지로 HTTPException을 직접 발생시키며,
일괄 처리 루프는 아래 유형으로 항목별 실패를 구분한다.
"""

from typing import List, Optional

from fastapi import HTTPException, status


class ValidationFailed(HTTPException):
    def __init__(self, errors: List[str], warnings: Optional[List[str]] = None):
        self.errors = list(errors)
        self.warnings = list(warnings or [])
        detail = {"message": "요청 값 검증에 실패했습니다.", "errors": self.errors}
        if self.warnings:
            detail["warnings"] = self.warnings
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFound(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class IllegalTransition(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class AlreadyDeleted(IllegalTransition):
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"이미 삭제된 케이스 스터디입니다: {case_id}")


class NotDeleted(IllegalTransition):
    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"삭제되지 않은 케이스 스터디입니다: {case_id}")


class StoreFailure(HTTPException):
    def __init__(self, detail: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class VersioningDegraded(Exception):
    """본문 갱신은 반영됐지만 버전 이력 기록이 실패한 상황. 호출자에게 전파하지 않고 로그로만 남긴다."""

    def __init__(self, case_id: str, cause: BaseException):
        self.case_id = case_id
        self.cause = cause
        super().__init__(f"versioning degraded for case {case_id}: {cause}")
