# app/domains/oauth/__init__.py

"""
FastAPI 애플리케이션의 'oauth' 도메인 패키지입니다.

외부 OAuth 제공자를 통한 로그인(LOGIN)과 기존 계정 연결(BIND)을 처리합니다.
인가 요청 state 는 'oauth' 스키마의 oauth_states 테이블에 TTL 과 함께 저장되고,
콜백 처리 결과는 같은 state 로 한 번만 조회할 수 있습니다.

주요 서브모듈:
- `models.py`: 제공자, 연결 계정, state, 이력 테이블.
- `schemas.py`: 제공자 설정, state/결과 페이로드 DTO.
- `crud.py`: 제공자/계정/이력 CRUD.
- `services.py`: state 저장소, httpx 제공자 클라이언트, 인가 흐름.
- `routers.py`: 공개 인가 API 와 관리자 API.
- `tasks.py`: 만료 state 정리 ARQ 태스크.
"""
