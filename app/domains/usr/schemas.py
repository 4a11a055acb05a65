# app/domains/usr/schemas.py

"""
'usr' 도메인 (사용자 및 초대 코드 관리)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import BaseModel, EmailStr, field_validator
from pydantic import Field as PydanticField

from app.core.coercion import CoercedBool
from . import models as usr_models


# =============================================================================
# 1. 사용자 (User) 스키마
# =============================================================================
class UserBase(SQLModel):
    """사용자 정보의 기본 필드를 정의하는 스키마"""
    email: EmailStr = Field(..., max_length=255)
    name: Optional[str] = Field(None, max_length=100)
    role: usr_models.UserRole = Field(default=usr_models.UserRole.GENERAL_USER, description="사용자 역할")
    is_active: bool = True


class UserCreate(UserBase):
    """사용자 생성을 위한 스키마 (관리자용)"""
    password: str = Field(..., min_length=8)


class UserUpdate(SQLModel):
    """사용자 정보 수정을 위한 스키마 (관리자용)"""
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=100)
    role: Optional[usr_models.UserRole] = None
    is_active: Optional[bool] = None
    join_date: Optional[datetime] = None


class UserSelfUpdate(SQLModel):
    """본인 정보 수정 스키마"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=8)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v


class UserRead(UserBase):
    """
    사용자 정보 조회를 위한 기본 스키마.
    비밀번호 해시값 등 민감한 정보는 제외됩니다.
    """
    id: int
    name_changed_at: Optional[datetime] = None
    join_date: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    last_login_ip: Optional[str] = None
    created_at: datetime = Field(..., description="레코드 생성 일시")
    updated_at: datetime = Field(..., description="레코드 마지막 업데이트 일시")


class RegisterRequest(BaseModel):
    """자가 회원 가입 요청"""
    email: EmailStr
    name: Optional[str] = Field(None, max_length=100)
    password: str = Field(..., min_length=8)
    invite_code: Optional[str] = Field(None, max_length=64)

    @field_validator("invite_code")
    @classmethod
    def blank_invite_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


# =============================================================================
# 2. 초대 코드 (InviteCode) 스키마
# =============================================================================
class InviteCodeCreate(BaseModel):
    code: Optional[str] = PydanticField(None, min_length=6, max_length=64, pattern=r"^[A-Za-z0-9_-]+$")
    note: Optional[str] = PydanticField(None, max_length=255)


class InviteCodeRead(BaseModel):
    id: int
    code: str
    note: Optional[str] = None
    created_by_id: Optional[int] = None
    used_by_id: Optional[int] = None
    used_at: Optional[datetime] = None
    created_at: datetime
    is_used: bool

    class Config:
        from_attributes = True


class InviteCodeQuery(BaseModel):
    used: CoercedBool = None
    skip: int = Field(0, ge=0)
    limit: int = Field(100, ge=1, le=500)


# =============================================================================
# 3. 인증 토큰 (Token) 스키마
# =============================================================================
class Token(BaseModel):
    """JWT 토큰 응답 스키마"""
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str


class RefreshRequest(BaseModel):
    refresh_token: str
