# app/domains/oauth/models.py

"""
'oauth' 도메인 (PostgreSQL 'oauth' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- oauth_providers: 외부 OAuth 제공자 설정 (client secret 포함, 조회 응답에는 노출하지 않음)
- oauth_accounts: 외부 계정과 내부 사용자의 연결 (provider_key, provider_account_id) 유일
- oauth_states: 인가 요청 state 와 결과 (TTL 적용)
- oauth_logs: 인가/로그인/연결 이력
"""

from typing import Any, Dict, Optional
from datetime import datetime, UTC
from enum import Enum

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Field, SQLModel, Column


class OAuthFlowMode(str, Enum):
    LOGIN = "LOGIN"
    BIND = "BIND"


class OAuthLogAction(str, Enum):
    AUTHORIZE = "AUTHORIZE"
    TOKEN = "TOKEN"
    LOGIN = "LOGIN"
    REGISTER = "REGISTER"
    BIND = "BIND"
    UNBIND = "UNBIND"
    ERROR = "ERROR"


class OAuthLogStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


# =============================================================================
# 1. oauth.oauth_providers 테이블 모델
# =============================================================================
class OAuthProvider(SQLModel, table=True):
    __tablename__ = "oauth_providers"
    __table_args__ = {'schema': 'oauth'}

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(max_length=50, sa_column_kwargs={"unique": True}, description="제공자 키 (예: microsoft)")
    name: str = Field(max_length=100)
    type: str = Field(max_length=50, description="제공자 유형 (예: MICROSOFT, OIDC)")
    description: Optional[str] = Field(default=None)
    enabled: bool = Field(default=True)
    settings: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONB))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 2. oauth.oauth_accounts 테이블 모델
# =============================================================================
class OAuthAccount(SQLModel, table=True):
    __tablename__ = "oauth_accounts"
    __table_args__ = (
        UniqueConstraint("provider_key", "provider_account_id", name="uq_oauth_accounts_provider_account"),
        {'schema': 'oauth'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    provider_key: str = Field(max_length=50, index=True)
    provider_account_id: str = Field(max_length=255, description="제공자 측 사용자 식별자")
    user_id: int = Field(
        sa_column=Column(ForeignKey("usr.users.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    email: Optional[str] = Field(default=None, max_length=255)
    display_name: Optional[str] = Field(default=None, max_length=255)
    profile: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONB))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 3. oauth.oauth_states 테이블 모델
# =============================================================================
class OAuthState(SQLModel, table=True):
    __tablename__ = "oauth_states"
    __table_args__ = {'schema': 'oauth'}

    id: Optional[int] = Field(default=None, primary_key=True)
    state: str = Field(max_length=64, sa_column_kwargs={"unique": True})
    payload: Dict[str, Any] = Field(sa_column=Column(JSONB, nullable=False), description="OAuthStatePayload")
    result: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONB), description="OAuthResultPayload")
    consumed_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    expires_at: datetime = Field(sa_column=Column(TIMESTAMP(timezone=True), nullable=False, index=True))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 4. oauth.oauth_logs 테이블 모델
# =============================================================================
class OAuthLog(SQLModel, table=True):
    __tablename__ = "oauth_logs"
    __table_args__ = {'schema': 'oauth'}

    id: Optional[int] = Field(default=None, primary_key=True)
    provider_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("oauth.oauth_providers.id", ondelete="SET NULL"))
    )
    provider_key: str = Field(max_length=50, index=True)
    provider_type: str = Field(max_length=50)
    action: OAuthLogAction = Field(sa_column=Column(String(20), nullable=False))
    status: OAuthLogStatus = Field(sa_column=Column(String(20), nullable=False))
    user_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL"), index=True)
    )
    account_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("oauth.oauth_accounts.id", ondelete="SET NULL"))
    )
    ip: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=512)
    message: Optional[str] = Field(default=None)
    meta: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSONB))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), index=True),
        description="레코드 생성 일시"
    )
