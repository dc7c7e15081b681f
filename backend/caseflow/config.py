"""환경 변수 기반 애플리케이션 설정을 중앙에서 관리합니다."""

from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./caseflow.db"
    SECRET_KEY: str = "change-me-to-a-random-secret-key"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # JWT
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 480

    # 버전 이력 보존
    VERSION_RETENTION_COUNT: int = 5
    VERSION_HISTORY_DEFAULT_LIMIT: int = 10
    DELETED_LOOKBACK_DAYS: int = 30

    # 일괄 전파(propagation)
    PROPAGATION_PROGRESS_BATCH: int = 10
    # 감사 이력 기록 실패 시에도 본문 갱신은 계속 진행한다 (일괄 처리 한정).
    PROPAGATION_DEGRADED_VERSIONING: bool = True

    class Config:
        # 실행 cwd와 무관하게 backend/.env를 로드한다.
        env_file = str(Path(__file__).resolve().parents[1] / ".env")


settings = Settings()
