# app/domains/corp/__init__.py

"""
FastAPI 애플리케이션의 'corp' 도메인 패키지입니다.

PostgreSQL 'corp' 스키마의 회사, 회사 신청, 관계자 동의, 유한책임회사 등록 정보를 다룹니다.
등록 신청의 심사 흐름은 'wf' 도메인의 company.registration 정의를 따르며,
신청/회사 상태는 workflows.py 의 동기화 훅으로 워크플로 상태와 함께 갱신됩니다.

주요 서브모듈:
- `models.py`: 'corp' 스키마 테이블의 SQLModel 정의.
- `schemas.py`: 요청/응답 DTO.
- `crud.py`: 테이블 단위 조회/저장.
- `services.py`: 신청 제출, 동의 결정, 워크플로 액션.
- `workflows.py`: 기본 워크플로 정의와 상태 동기화 훅.
- `routers.py`: API 엔드포인트.
"""
