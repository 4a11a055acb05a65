# app/core/__init__.py

"""
FastAPI 애플리케이션의 핵심 구성 요소 패키지입니다.

주요 서브모듈:
- `config.py`: 애플리케이션 설정 및 환경 변수 관리 (Pydantic Settings).
- `database.py`: 비동기 엔진, 세션 의존성, 스키마 목록.
- `security.py`: 비밀번호 해싱, JWT 발급/검증, 인증 의존성.
- `dependencies.py`: 역할 기반 권한 의존성과 요청 모델 검증.
- `coercion.py`: 느슨한 입력 값(문자열 불리언, 쉼표 목록 등)의 정규화.
- `crud_base.py`: 테이블 단위 CRUD 기본 클래스.
- `migration_utils.py`: 멱등 마이그레이션 헬퍼.
- `log.py`: 로깅 설정.
- `tasks.py`: 공통 백그라운드 태스크.
"""

__title__ = "BizAdmin Core"
__description__ = "Core components for BizAdmin FastAPI application."
__version__ = "0.1.0"
__all__ = []
