"""Permissions 관련 공용 유틸리티 헬퍼입니다."""

from caseflow.models.case_study import CaseStudy
from caseflow.models.user import User


ADMIN = "admin"
EDITOR = "editor"
VIEWER = "viewer"

ADMIN_EDITOR = (ADMIN, EDITOR)
ALL_ROLES = (ADMIN, EDITOR, VIEWER)


def can_view_deleted(user: User) -> bool:
    return user.role in ADMIN_EDITOR


def can_view_case_study(case: CaseStudy, user: User) -> bool:
    if user.role not in ALL_ROLES:
        return False
    # 삭제된 케이스는 편집 권한자에게만 보인다.
    if case.is_deleted:
        return can_view_deleted(user)
    return True
