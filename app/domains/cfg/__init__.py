# app/domains/cfg/__init__.py

"""
FastAPI 애플리케이션의 'cfg' 도메인 패키지입니다.

PostgreSQL 'cfg' 스키마의 설정 네임스페이스(config_namespaces)와
네임스페이스별 키-값 설정 항목(config_entries)을 관리합니다.

주요 서브모듈:
- `models.py`: 'cfg' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 요청/응답 DTO (키 패턴, 길이 제약, 값 변환 포함).
- `crud.py`: 네임스페이스/항목 CRUD 및 버전 관리 로직.
- `routers.py`: 관리자용 설정 API 와 공개 조회 API.
"""
