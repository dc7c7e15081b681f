"""FastAPI 애플리케이션 진입점. 미들웨어와 API 라우터를 등록합니다."""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from caseflow.config import settings
from caseflow.database import Base, engine
import caseflow.models  # noqa: F401 - 모델 import로 metadata 등록
from caseflow.routers import auth, case_studies, configs, propagation
from caseflow.utils.schema_sync import sync_missing_schema_objects

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Caseflow 케이스 스터디 변경 이력/전파 서비스",
    description="케이스 스터디 버전 이력, 소프트 삭제/복원, 일괄 변경 전파를 관리하는 시스템",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register all routers
app.include_router(auth.router)
app.include_router(case_studies.router)
app.include_router(propagation.router)
app.include_router(configs.router)


@app.on_event("startup")
def ensure_schema():
    # 신규 기능 배포 시 누락된 테이블/컬럼/인덱스를 자동 생성합니다.
    Base.metadata.create_all(bind=engine)
    sync_missing_schema_objects(engine, Base.metadata)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "service": "Caseflow 변경 이력/전파 서비스"}
