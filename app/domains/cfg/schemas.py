# app/domains/cfg/schemas.py

"""
'cfg' 도메인의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.

키 규칙: 소문자/숫자와 '.', '_', '-' 만 허용, 최대 64자.
"""

from typing import Any, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from app.core.coercion import JsonValue

CONFIG_KEY_PATTERN = r"^[a-z0-9._-]+$"
CONFIG_KEY_MAX_LENGTH = 64


# =============================================================================
# 1. 네임스페이스 (ConfigNamespace) 스키마
# =============================================================================
class ConfigNamespaceCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=CONFIG_KEY_MAX_LENGTH, pattern=CONFIG_KEY_PATTERN)
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=255)


class ConfigNamespaceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=255)


class ConfigNamespaceRead(BaseModel):
    id: int
    key: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ConfigNamespaceWithCount(ConfigNamespaceRead):
    entry_count: int = 0


# =============================================================================
# 2. 설정 항목 (ConfigEntry) 스키마
# =============================================================================
class ConfigEntryCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=CONFIG_KEY_MAX_LENGTH, pattern=CONFIG_KEY_PATTERN)
    value: JsonValue
    description: Optional[str] = Field(None, max_length=255)


class ConfigEntryUpdate(BaseModel):
    value: JsonValue = None
    description: Optional[str] = Field(None, max_length=255)


class ConfigEntryRead(BaseModel):
    id: int
    namespace_id: int
    key: str
    value: Any = None
    description: Optional[str] = None
    version: int
    updated_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
