# tests/test_main.py

"""
FastAPI 애플리케이션의 메인 엔드포인트에 대한 통합 테스트를 정의하는 모듈입니다.

- 애플리케이션의 루트 경로 (`/`) 응답을 테스트합니다.
- 데이터베이스 연결 헬스 체크 엔드포인트 (`/health-check`)를 테스트합니다.
"""

import pytest
from httpx import AsyncClient

from app import API_PREFIX
from app.main import app as main_app, ArqWorkerSettings, worker_functions


@pytest.mark.asyncio
async def test_read_root(client: AsyncClient):
    """
    루트 엔드포인트 (`GET /`)가 올바르게 응답하는지 테스트합니다.
    """
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Welcome to BizAdmin API. Visit /docs for interactive API documentation."}


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """
    헬스 체크 엔드포인트 (`GET /health-check`)가 데이터베이스 연결 상태를 올바르게 반환하는지 테스트합니다.
    """
    response = await client.get("/health-check")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "database_connection": "successful"}


def test_domain_routers_are_mounted():
    paths = {route.path for route in main_app.routes}
    for prefix in ("usr", "shared", "cfg", "oauth", "wf", "corp"):
        assert any(path.startswith(f"{API_PREFIX}/{prefix}/") for path in paths), prefix


def test_worker_settings_register_cron_jobs():
    cron_names = {job.coroutine.__name__ for job in ArqWorkerSettings.cron_jobs}
    assert cron_names == {f.__name__ for f in worker_functions}
