# app/domains/shared/models.py

"""
'shared' 도메인 (PostgreSQL 'shared' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

첨부파일(attachments)과 폴더, 태그, 공유 토큰을 포함합니다.
첨부파일은 업로더(owner)가 삭제되어도 남으며, 업로더 이름/이메일 스냅샷으로 출처를 표시합니다.
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING
from datetime import datetime, UTC

from sqlalchemy import BigInteger, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Field, Relationship, SQLModel, Column

if TYPE_CHECKING:
    from app.domains.usr.models import User


# =============================================================================
# 1. shared.attachment_folders 테이블 모델
# =============================================================================
class AttachmentFolder(SQLModel, table=True):
    __tablename__ = "attachment_folders"
    __table_args__ = (
        UniqueConstraint("parent_id", "name", name="uq_attachment_folders_parent_name"),
        {'schema': 'shared'},
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=120, description="폴더 이름")
    description: Optional[str] = Field(default=None, max_length=255)
    parent_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("shared.attachment_folders.id", ondelete="CASCADE")),
        description="상위 폴더 ID (NULL 이면 최상위)"
    )
    path: str = Field(max_length=1024, description="루트부터의 경로 (예: /docs/contracts)")
    created_by_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL"))
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

    attachments: List["Attachment"] = Relationship(back_populates="folder")


# =============================================================================
# 2. shared.attachment_tags / attachment_taggings 테이블 모델
# =============================================================================
class AttachmentTagging(SQLModel, table=True):
    """첨부파일-태그 연결 테이블"""
    __tablename__ = "attachment_taggings"
    __table_args__ = {'schema': 'shared'}

    attachment_id: int = Field(
        sa_column=Column(ForeignKey("shared.attachments.id", ondelete="CASCADE"), primary_key=True)
    )
    tag_id: int = Field(
        sa_column=Column(ForeignKey("shared.attachment_tags.id", ondelete="CASCADE"), primary_key=True)
    )


class AttachmentTag(SQLModel, table=True):
    __tablename__ = "attachment_tags"
    __table_args__ = {'schema': 'shared'}

    id: Optional[int] = Field(default=None, primary_key=True)
    key: str = Field(max_length=64, sa_column_kwargs={"unique": True}, description="태그 키")
    name: str = Field(max_length=120, description="태그 표시 이름")
    description: Optional[str] = Field(default=None, max_length=255)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )

    attachments: List["Attachment"] = Relationship(back_populates="tags", link_model=AttachmentTagging)


# =============================================================================
# 3. shared.attachments 테이블 모델
# =============================================================================
class Attachment(SQLModel, table=True):
    __tablename__ = "attachments"
    __table_args__ = {'schema': 'shared'}

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, description="표시 파일명")
    original_name: str = Field(max_length=255, description="업로드 당시 원본 파일명")
    mime_type: Optional[str] = Field(default=None, max_length=255)
    size: int = Field(default=0, sa_column=Column(BigInteger, nullable=False, server_default="0"), description="파일 크기 (bytes)")
    storage_key: str = Field(max_length=512, sa_column_kwargs={"unique": True}, description="업로드 디렉토리 기준 저장 경로")
    hash: Optional[str] = Field(default=None, max_length=64, description="SHA-256 해시")
    is_public: bool = Field(default=False, description="공개 여부")
    description: Optional[str] = Field(default=None)
    # 'metadata' 는 SQLAlchemy 예약어이므로 속성명은 meta, 컬럼명은 metadata 를 사용합니다.
    meta: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSONB))

    folder_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("shared.attachment_folders.id", ondelete="SET NULL"), index=True),
    )
    owner_id: Optional[int] = Field(
        default=None,
        sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL", onupdate="CASCADE"), index=True),
        description="업로더 ID (사용자 삭제 시 NULL)"
    )
    uploader_name_snapshot: Optional[str] = Field(default=None, max_length=255, description="업로드 당시 업로더 이름")
    uploader_email_snapshot: Optional[str] = Field(default=None, max_length=255, description="업로드 당시 업로더 이메일")

    deleted_at: Optional[datetime] = Field(
        default=None, sa_column=Column(TIMESTAMP(timezone=True), index=True), description="소프트 삭제 일시"
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

    folder: Optional[AttachmentFolder] = Relationship(back_populates="attachments")
    owner: Optional["User"] = Relationship()
    tags: List[AttachmentTag] = Relationship(back_populates="attachments", link_model=AttachmentTagging)
    share_tokens: List["AttachmentShareToken"] = Relationship(
        back_populates="attachment",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )


# =============================================================================
# 4. shared.attachment_share_tokens 테이블 모델
# =============================================================================
class AttachmentShareToken(SQLModel, table=True):
    __tablename__ = "attachment_share_tokens"
    __table_args__ = {'schema': 'shared'}

    id: Optional[int] = Field(default=None, primary_key=True)
    attachment_id: int = Field(
        sa_column=Column(ForeignKey("shared.attachments.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    token: str = Field(max_length=64, sa_column_kwargs={"unique": True})
    expires_at: datetime = Field(sa_column=Column(TIMESTAMP(timezone=True), nullable=False))
    created_by_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL"))
    )
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )

    attachment: Optional[Attachment] = Relationship(back_populates="share_tokens")
