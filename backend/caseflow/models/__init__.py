"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from caseflow.models.user import User
from caseflow.models.case_study import CaseStudy
from caseflow.models.case_study_version import CaseStudyVersion
from caseflow.models.propagation_job import PropagationJob, PropagationFailure
from caseflow.models.configuration import Configuration

__all__ = [
    "User",
    "CaseStudy",
    "CaseStudyVersion",
    "PropagationJob", "PropagationFailure",
    "Configuration",
]
