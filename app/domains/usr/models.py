# app/domains/usr/models.py

"""
'usr' 도메인 (PostgreSQL 'usr' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

이 모듈은 'usr' 스키마에 속하는 테이블 (users, invite_codes)에 대한 SQLModel 클래스를 포함합니다.
"""

from typing import Optional
from datetime import datetime, UTC
from enum import IntEnum

from sqlalchemy import CheckConstraint, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Field, SQLModel, Column


# =============================================================================
# 사용자 역할(RBAC)을 Enum으로 정의합니다.
# =============================================================================
class UserRole(IntEnum):
    """
    사용자 역할을 정의하는 정수형 Enum 클래스입니다.
    값이 작을수록 권한이 높습니다. DB에는 정수 값으로 저장됩니다.
    """
    SUPERUSER = 1            # 최고 관리자
    ADMIN = 10               # 시스템 관리자
    REGISTRY_OFFICER = 50    # 등기 심사 담당자
    GENERAL_USER = 100       # 일반 사용자


# =============================================================================
# 1. usr.users 테이블 모델
# =============================================================================
class UserBase(SQLModel):
    """
    usr.users 테이블의 기본 속성을 정의하는 SQLModel Base 클래스입니다.
    """
    id: Optional[int] = Field(default=None, primary_key=True, description="사용자 고유 ID")
    email: str = Field(max_length=255, sa_column_kwargs={"unique": True}, description="로그인 이메일")
    name: Optional[str] = Field(default=None, max_length=100, description="표시 이름")
    password_hash: Optional[str] = Field(default=None, max_length=255, description="해싱된 비밀번호 (OAuth 전용 계정은 없음)")
    role: UserRole = Field(default=UserRole.GENERAL_USER, description="사용자 역할 (권한)")
    is_active: bool = Field(default=True, description="계정 활성 여부")

    # --- 타임라인 / 로그인 기록 ---
    name_changed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True)), description="마지막 이름 변경 일시"
    )
    join_date: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="가입 일시"
    )
    last_login_at: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True)), description="마지막 로그인 일시"
    )
    last_login_ip: Optional[str] = Field(default=None, max_length=64, description="마지막 로그인 IP")

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


class User(UserBase, table=True):
    """
    PostgreSQL의 usr.users 테이블에 매핑되는 SQLModel ORM 클래스입니다.
    """
    __tablename__ = "users"
    __table_args__ = {'schema': 'usr'}

    @property
    def display_name(self) -> str:
        return self.name or self.email


# =============================================================================
# 2. usr.invite_codes 테이블 모델
# =============================================================================
class InviteCode(SQLModel, table=True):
    """
    초대 코드. 생성 시 미사용 상태이며, 사용 시 used_by_id 와 used_at 이 함께 설정됩니다.
    사용자 삭제로 used_by_id 가 NULL 이 되어도 used_at 은 남으므로 재사용되지 않습니다.
    """
    __tablename__ = "invite_codes"
    __table_args__ = (
        CheckConstraint("used_by_id IS NULL OR used_at IS NOT NULL", name="ck_invite_codes_used_pair"),
        {'schema': 'usr'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(max_length=64, sa_column_kwargs={"unique": True}, description="초대 코드")
    note: Optional[str] = Field(default=None, max_length=255, description="메모")
    created_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL")),
        description="생성한 관리자 ID"
    )
    used_by_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL")),
        description="사용한 사용자 ID"
    )
    used_at: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True)), description="사용 일시"
    )
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )

    @property
    def is_used(self) -> bool:
        return self.used_at is not None
