# app/domains/shared/__init__.py

"""
FastAPI 애플리케이션의 'shared' 도메인 패키지입니다.

PostgreSQL 의 'shared' 스키마에 해당하는 첨부파일, 폴더, 태그, 공유 토큰을 관리합니다.
첨부파일은 업로더 계정이 삭제되어도 남으며, 업로드 당시의 업로더 정보를 스냅샷으로 보관합니다.

주요 서브모듈:
- `models.py`: 'shared' 스키마의 테이블에 매핑되는 SQLModel 정의.
- `schemas.py`: 업로드 폼/쿼리 스트링 변환을 포함한 Pydantic 모델.
- `crud.py`: 'shared' 스키마 테이블에 대한 비동기 CRUD 로직.
- `services.py`: 파일 저장, 권한 확인, 공유 토큰 발급 등 비즈니스 로직.
- `routers.py`: API 엔드포인트 정의.
- `tasks.py`: ARQ 정리 태스크.
"""
