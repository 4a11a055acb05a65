# tests/__init__.py

"""
BizAdmin API 테스트 스위트 패키지입니다.

주요 하위 디렉토리:
- `core/`: DB 없이 실행되는 공통 모듈 단위 테스트 (값 변환, 마이그레이션 DDL 헬퍼)
- `domains/`: 도메인별(usr, cfg, shared, oauth, wf, corp) API 통합 테스트와 순수 로직 테스트
- `conftest.py`: 테스트 DB, 세션, 사용자, 인증 클라이언트 픽스처

DB 를 사용하는 테스트는 TEST_DATABASE_URL 에 연결할 수 없으면 건너뜁니다.
"""

__title__ = "BizAdmin API Tests"
__description__ = "Test suite for BizAdmin FastAPI application."
__version__ = "0.1.0"
__all__ = []
