# app/domains/shared/schemas.py

"""
'shared' 도메인 (첨부파일, 폴더, 태그, 공유 토큰)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.

multipart 업로드 폼과 쿼리 스트링으로 들어오는 값은 app.core.coercion 의 변환기를 거친 뒤 검증됩니다.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from app import API_PREFIX
from app.core.coercion import CoercedBool, FolderId, JsonObject, Keyword, SearchLimit, StringList

TAG_KEY_PATTERN = r"^[a-z0-9._-]+$"
DEFAULT_SEARCH_LIMIT = 20


# =============================================================================
# 1. 폴더 (AttachmentFolder) 스키마
# =============================================================================
class AttachmentFolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, pattern=r"^[^/]+$")
    description: Optional[str] = Field(None, max_length=255)
    parent_id: FolderId = None


class AttachmentFolderRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    path: str
    created_at: datetime

    class Config:
        from_attributes = True


class AttachmentFolderBrief(BaseModel):
    id: int
    name: str
    path: str

    class Config:
        from_attributes = True


# =============================================================================
# 2. 태그 (AttachmentTag) 스키마
# =============================================================================
class AttachmentTagCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=64, pattern=TAG_KEY_PATTERN)
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=255)


class AttachmentTagRead(BaseModel):
    id: int
    key: str
    name: str

    class Config:
        from_attributes = True


# =============================================================================
# 3. 첨부파일 (Attachment) 스키마
# =============================================================================
class AttachmentUploadForm(BaseModel):
    """multipart 업로드의 파일 외 필드"""
    name: Optional[str] = Field(None, max_length=255)
    folder_id: FolderId = None
    is_public: CoercedBool = None
    tag_keys: StringList = None
    description: Optional[str] = None
    meta: JsonObject = None


class AttachmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    folder_id: FolderId = None
    is_public: CoercedBool = None
    tag_keys: StringList = None
    description: Optional[str] = None
    meta: JsonObject = None


class AttachmentQuery(BaseModel):
    """관리 목록 조회 조건"""
    folder_id: FolderId = None
    tag_keys: StringList = None
    keyword: Keyword = None
    include_deleted: CoercedBool = None
    limit: SearchLimit = None


class AttachmentSearchQuery(BaseModel):
    """공개 검색 조건 (limit 기본 20, 1~50)"""
    keyword: Keyword = None
    limit: SearchLimit = None
    public_only: CoercedBool = None


class AttachmentOwner(BaseModel):
    """
    업로더 표시 정보. 업로더 계정이 살아 있으면 현재 정보를,
    삭제되었으면 업로드 당시 스냅샷을 보여줍니다.
    """
    id: Optional[int] = None
    name: Optional[str] = None
    email: Optional[str] = None
    deleted: bool = False


class AttachmentRead(BaseModel):
    id: int
    name: str
    original_name: str
    mime_type: Optional[str] = None
    size: int
    hash: Optional[str] = None
    is_public: bool
    description: Optional[str] = None
    meta: Optional[Dict[str, Any]] = None
    folder: Optional[AttachmentFolderBrief] = None
    owner: AttachmentOwner
    tags: List[AttachmentTagRead] = []
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def download_url(self) -> str:
        return f"{API_PREFIX}/shared/attachments/{self.id}/download"


class ShareTokenCreate(BaseModel):
    expires_in_minutes: Optional[int] = Field(None, ge=1, le=60 * 24 * 30)


class ShareTokenRead(BaseModel):
    token: str
    attachment_id: int
    expires_at: datetime

    @computed_field
    @property
    def url(self) -> str:
        return f"{API_PREFIX}/shared/share/{self.token}"
