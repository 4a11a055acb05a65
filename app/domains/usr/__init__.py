# app/domains/usr/__init__.py

"""
FastAPI 애플리케이션의 'usr' 도메인 패키지입니다.

PostgreSQL 의 'usr' 스키마에 해당하는 사용자 계정과 초대 코드를 관리하고,
로그인/토큰 재발급/회원 가입 API 를 제공합니다.

주요 서브모듈:
- `models.py`: 'usr' 스키마의 테이블에 매핑되는 SQLModel 정의 (User, InviteCode).
- `schemas.py`: 요청 및 응답 유효성 검사, 인증 스키마.
- `crud.py`: 사용자/초대 코드 CRUD, 인증, 가입 트랜잭션.
- `routers.py`: 로그인, 사용자 관리, 초대 코드 관리 엔드포인트.
"""
