"""서비스 레이어 패키지 초기화 모듈입니다."""

from caseflow.services import (
    auth_service,
    version_service,
    lifecycle_service,
    propagation_service,
    case_study_service,
    config_service,
)
