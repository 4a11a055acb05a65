# app/domains/oauth/schemas.py

"""
'oauth' 도메인의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.
"""

from typing import Annotated, Any, Dict, List, Optional
from datetime import datetime

from pydantic import AnyHttpUrl, BaseModel, BeforeValidator, Field, field_validator, model_validator

from app.core.coercion import CoercedBool, CoercedInt, Keyword, to_absent_if_blank, to_int
from . import models as oauth_models

# 관리자 목록 쿼리용 정수 필드. 변환 결과가 absent 이면 범위 검증을 건너뜁니다.
PageNumber = Annotated[Optional[Annotated[int, Field(ge=1)]], BeforeValidator(to_int)]
PageSize = Annotated[Optional[Annotated[int, Field(ge=1, le=100)]], BeforeValidator(to_int)]
StatsDays = Annotated[Optional[Annotated[int, Field(ge=1, le=90)]], BeforeValidator(to_int)]
OptionalDateTime = Annotated[Optional[datetime], BeforeValidator(to_absent_if_blank)]


# =============================================================================
# 1. 제공자 (OAuthProvider) 스키마
# =============================================================================
class OAuthProviderSettings(BaseModel):
    """제공자별 연결 설정. 모든 항목은 선택이며, scopes 는 주어질 경우 비어 있지 않은 중복 없는 목록이어야 합니다."""
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    authorize_url: Optional[str] = None
    token_url: Optional[str] = None
    redirect_uri: Optional[str] = None
    graph_user_url: Optional[str] = None
    graph_photo_url: Optional[str] = None
    scopes: Optional[List[str]] = None

    @field_validator("scopes")
    @classmethod
    def validate_scopes(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        if not v:
            raise ValueError("scopes must not be empty")
        if len(set(v)) != len(v):
            raise ValueError("scopes must be unique")
        return v


class OAuthProviderSettingsRead(BaseModel):
    """client_secret 을 제외한 설정 (보유 여부만 표시)"""
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    authorize_url: Optional[str] = None
    token_url: Optional[str] = None
    redirect_uri: Optional[str] = None
    graph_user_url: Optional[str] = None
    graph_photo_url: Optional[str] = None
    scopes: Optional[List[str]] = None
    has_client_secret: bool = False


class OAuthProviderCreate(BaseModel):
    key: str = Field(..., min_length=2, max_length=50)
    name: str = Field(..., min_length=2, max_length=100)
    type: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None
    enabled: bool = True
    settings: Optional[OAuthProviderSettings] = None


class OAuthProviderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    type: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = None
    enabled: Optional[bool] = None
    settings: Optional[OAuthProviderSettings] = None


class OAuthProviderRead(BaseModel):
    id: int
    key: str
    name: str
    type: str
    description: Optional[str] = None
    enabled: bool
    settings: Optional[OAuthProviderSettingsRead] = None
    created_at: datetime
    updated_at: datetime


class OAuthProviderPublic(BaseModel):
    """로그인 화면용 공개 정보"""
    key: str
    name: str
    type: str

    class Config:
        from_attributes = True


# =============================================================================
# 2. 인가 흐름 (state / result) 스키마
# =============================================================================
class StartOAuthRequest(BaseModel):
    mode: oauth_models.OAuthFlowMode
    redirect_uri: AnyHttpUrl
    remember_me: CoercedBool = None


class StartOAuthResponse(BaseModel):
    authorize_url: str
    state: str


class OAuthStatePayload(BaseModel):
    provider_key: str
    mode: oauth_models.OAuthFlowMode
    redirect_uri: Optional[str] = None
    user_id: Optional[int] = None
    remember_me: Optional[bool] = None


class OAuthTokens(BaseModel):
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class OAuthBinding(BaseModel):
    provider_key: str
    user_id: int


class OAuthResultPayload(BaseModel):
    """
    인가 결과. 성공한 LOGIN 은 tokens 와 user 를, 성공한 BIND 는 binding 을 담고,
    실패는 error 만 담습니다.
    """
    success: bool
    mode: oauth_models.OAuthFlowMode
    error: Optional[str] = None
    tokens: Optional[OAuthTokens] = None
    user: Optional[Dict[str, Any]] = None
    binding: Optional[OAuthBinding] = None

    @model_validator(mode="after")
    def check_shape(self):
        if not self.success:
            if not self.error:
                raise ValueError("failed result requires an error")
            if self.tokens is not None or self.binding is not None:
                raise ValueError("failed result must not carry tokens or binding")
            return self
        if self.error:
            raise ValueError("successful result must not carry an error")
        if self.mode == oauth_models.OAuthFlowMode.LOGIN:
            if self.tokens is None or self.user is None:
                raise ValueError("LOGIN result requires tokens and user")
            if self.binding is not None:
                raise ValueError("LOGIN result must not carry binding")
        else:
            if self.binding is None:
                raise ValueError("BIND result requires binding")
            if self.tokens is not None:
                raise ValueError("BIND result must not carry tokens")
        return self


# =============================================================================
# 3. 연결 계정 (OAuthAccount) / 통계 스키마 (관리자용)
# =============================================================================
class OAuthAccountUser(BaseModel):
    id: int
    email: str
    name: Optional[str] = None

    class Config:
        from_attributes = True


class OAuthAccountRead(BaseModel):
    id: int
    provider_key: str
    provider_account_id: str
    user_id: int
    email: Optional[str] = None
    display_name: Optional[str] = None
    created_at: datetime
    user: Optional[OAuthAccountUser] = None


class OAuthAccountQuery(BaseModel):
    provider_key: Keyword = None
    email: Keyword = None
    user_id: CoercedInt = None
    page: PageNumber = None
    page_size: PageSize = None


class Pagination(BaseModel):
    total: int
    page: int
    page_size: int
    page_count: int


class OAuthAccountPage(BaseModel):
    items: List[OAuthAccountRead]
    pagination: Pagination


class OAuthStatsQuery(BaseModel):
    provider_key: Keyword = None
    days: StatsDays = None


class OAuthStatRow(BaseModel):
    date: str
    action: str
    count: int


# =============================================================================
# 4. 인증 이력 (OAuthLog) 스키마 (관리자용)
# =============================================================================
class OAuthLogQuery(BaseModel):
    provider_key: Keyword = None
    action: Annotated[Optional[oauth_models.OAuthLogAction], BeforeValidator(to_absent_if_blank)] = None
    status: Annotated[Optional[oauth_models.OAuthLogStatus], BeforeValidator(to_absent_if_blank)] = None
    user_id: CoercedInt = None
    search: Keyword = None
    date_from: OptionalDateTime = None
    date_to: OptionalDateTime = None
    page: PageNumber = None
    page_size: PageSize = None


class OAuthLogRead(BaseModel):
    id: int
    provider_key: Optional[str] = None
    provider_type: Optional[str] = None
    action: str
    status: str
    user_id: Optional[int] = None
    account_id: Optional[int] = None
    ip: Optional[str] = None
    message: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    created_at: datetime
    user: Optional[OAuthAccountUser] = None


class OAuthLogPage(BaseModel):
    items: List[OAuthLogRead]
    pagination: Pagination
