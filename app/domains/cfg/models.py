# app/domains/cfg/models.py

"""
'cfg' 도메인 (PostgreSQL 'cfg' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.
"""

from typing import Any, List, Optional
from datetime import datetime, UTC

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Field, Relationship, SQLModel, Column


# =============================================================================
# 1. cfg.config_namespaces 테이블 모델
# =============================================================================
class ConfigNamespace(SQLModel, table=True):
    __tablename__ = "config_namespaces"
    __table_args__ = {'schema': 'cfg'}

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(max_length=64, sa_column_kwargs={"unique": True}, description="네임스페이스 키 (예: portal.home)")
    name: str = Field(max_length=120, description="표시 이름")
    description: Optional[str] = Field(default=None, max_length=255)

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

    entries: List["ConfigEntry"] = Relationship(back_populates="namespace")


# =============================================================================
# 2. cfg.config_entries 테이블 모델
# =============================================================================
class ConfigEntry(SQLModel, table=True):
    __tablename__ = "config_entries"
    __table_args__ = (
        UniqueConstraint("namespace_id", "key", name="uq_config_entries_namespace_key"),
        {'schema': 'cfg'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    namespace_id: int = Field(
        sa_column=Column(ForeignKey("cfg.config_namespaces.id", ondelete="CASCADE"), nullable=False, index=True),
        description="소속 네임스페이스 ID"
    )
    key: str = Field(max_length=64, description="항목 키")
    # JSON null 도 유효한 값이므로 Python None 은 JSON 'null' 로 저장됩니다.
    value: Any = Field(default=None, sa_column=Column(JSONB(none_as_null=False)), description="임의의 JSON 값")
    description: Optional[str] = Field(default=None, max_length=255)
    version: int = Field(default=1, description="수정할 때마다 1 씩 증가")
    updated_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL")),
        description="마지막 수정자 ID"
    )

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

    namespace: Optional[ConfigNamespace] = Relationship(back_populates="entries")
