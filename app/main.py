# app/main.py

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from arq.connections import create_pool, RedisSettings
from arq.cron import cron
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import FastAPI, Depends, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from app import API_PREFIX, APP_NAME
from app.core.config import settings
from app.core.database import engine, get_session
from app.core.log import setup_logging

# 태스크 모듈 임포트
from app.core import tasks as core_tasks
from app.domains.shared import tasks as shared_tasks
from app.domains.oauth import tasks as oauth_tasks

# 도메인 라우터 임포트
from app.domains.usr.routers import router as usr_router
from app.domains.shared.routers import router as shared_router
from app.domains.cfg.routers import router as cfg_router
from app.domains.oauth.routers import router as oauth_router
from app.domains.wf.routers import router as wf_router
from app.domains.corp.routers import router as corp_router

setup_logging()
logger = logging.getLogger(__name__)

# ARQ 워커가 실행할 태스크 함수 목록
worker_functions = [
    core_tasks.health_check_database_task,
    shared_tasks.cleanup_attachments_task,
    oauth_tasks.cleanup_expired_oauth_states_task,
]


# ARQ 워커 설정 클래스
class ArqWorkerSettings:
    redis_settings = RedisSettings(host=settings.REDIS_HOST, port=settings.REDIS_PORT)
    functions = worker_functions
    cron_jobs = [
        # 매일 00:00 DB 헬스 체크
        cron(core_tasks.health_check_database_task, hour={0}, minute={0}, timeout=300, keep_result=600),
        # 매일 01:00 소프트 삭제된 첨부파일/만료 공유 토큰 정리
        cron(shared_tasks.cleanup_attachments_task, hour={1}, minute={0}, timeout=1800, keep_result=3600),
        # 15분마다 만료된 OAuth state 정리
        cron(oauth_tasks.cleanup_expired_oauth_states_task, minute={0, 15, 30, 45}, timeout=300),
    ]


# -- 애플리케이션 수명 주기 이벤트 핸들러 --
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI 애플리케이션의 수명 주기 이벤트(데이터베이스, ARQ Redis)를 함께 처리합니다.
    """
    logger.info("%s starting (env=%s)", APP_NAME, settings.APP_ENV)
    app.state.redis = await create_pool(ArqWorkerSettings.redis_settings)
    logger.info("ARQ Redis connection pool created")

    yield  # 애플리케이션 실행

    logger.info("%s shutting down", APP_NAME)
    if app.state.redis:
        await app.state.redis.close()
        logger.info("ARQ Redis connection pool closed")
    await engine.dispose()
    logger.info("Database connection pool disposed")


# -- FastAPI 애플리케이션 인스턴스 생성 --
app = FastAPI(
    title="BizAdmin API",
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# -- CORS 미들웨어 설정 --
# 운영 환경에서는 allow_origins 를 실제 프론트엔드 도메인으로 제한해야 합니다.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -- 도메인 라우터 포함 --
app.include_router(usr_router, prefix=f"{API_PREFIX}/usr", tags=["User & Auth (사용자 및 인증)"])
app.include_router(shared_router, prefix=f"{API_PREFIX}/shared", tags=["Shared (첨부파일 관리)"])
app.include_router(cfg_router, prefix=f"{API_PREFIX}/cfg", tags=["Config (설정 관리)"])
app.include_router(oauth_router, prefix=f"{API_PREFIX}/oauth", tags=["OAuth (외부 계정)"])
app.include_router(wf_router, prefix=f"{API_PREFIX}/wf", tags=["Workflow (워크플로)"])
app.include_router(corp_router, prefix=f"{API_PREFIX}/corp", tags=["Company Registration (회사 등록)"])


# -- 루트 엔드포인트 --
@app.get("/", summary="API Root", response_description="Welcome message and documentation link.")
async def read_root():
    """
    BizAdmin API의 루트 엔드포인트입니다.
    API의 시작점을 알리고 문서 링크를 제공합니다.
    """
    return {"message": "Welcome to BizAdmin API. Visit /docs for interactive API documentation."}


# -- 헬스 체크 엔드포인트 --
@app.get("/health-check", summary="Health Check", response_description="Status of the application and database connection.")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    데이터베이스 연결을 테스트하여 서비스의 정상 작동 여부를 확인합니다.
    """
    try:
        result = await session.exec(select(1))
        if result.first():
            return {"status": "ok", "database_connection": "successful"}
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database health check failed: No result from test query"
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Health check failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Database connection error during health check: {e}"
        )
