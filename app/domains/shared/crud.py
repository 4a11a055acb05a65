# app/domains/shared/crud.py

"""
'shared' 도메인 (첨부파일, 폴더, 태그, 공유 토큰)의 CRUD 작업을 담당하는 모듈입니다.
"""

from datetime import datetime, UTC
from typing import List, Optional

from sqlalchemy import delete, or_
from sqlalchemy.orm import selectinload
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from . import models as shared_models
from . import schemas as shared_schemas


# =============================================================================
# 1. shared.attachment_folders 테이블 CRUD
# =============================================================================
class CRUDAttachmentFolder(
    CRUDBase[shared_models.AttachmentFolder, shared_schemas.AttachmentFolderCreate, shared_schemas.AttachmentFolderCreate]
):
    def __init__(self):
        super().__init__(model=shared_models.AttachmentFolder)

    async def get_children(self, db: AsyncSession, *, parent_id: Optional[int]) -> List[shared_models.AttachmentFolder]:
        query = select(self.model)
        if parent_id is None:
            query = query.where(self.model.parent_id.is_(None))
        else:
            query = query.where(self.model.parent_id == parent_id)
        result = await db.execute(query.order_by(self.model.name))
        return result.scalars().all()

    async def create(
        self, db: AsyncSession, *, obj_in: shared_schemas.AttachmentFolderCreate, created_by_id: Optional[int] = None
    ) -> shared_models.AttachmentFolder:
        parent_path = ""
        if obj_in.parent_id is not None:
            parent = await self.get(db, id=obj_in.parent_id)
            if not parent:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Parent folder not found")
            parent_path = parent.path

        siblings = await self.get_children(db, parent_id=obj_in.parent_id)
        if any(folder.name == obj_in.name for folder in siblings):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Folder with this name already exists")

        db_obj = shared_models.AttachmentFolder(
            name=obj_in.name,
            description=obj_in.description,
            parent_id=obj_in.parent_id,
            path=f"{parent_path}/{obj_in.name}",
            created_by_id=created_by_id,
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj


folder = CRUDAttachmentFolder()


# =============================================================================
# 2. shared.attachment_tags 테이블 CRUD
# =============================================================================
class CRUDAttachmentTag(CRUDBase[shared_models.AttachmentTag, shared_schemas.AttachmentTagCreate, shared_schemas.AttachmentTagCreate]):
    def __init__(self):
        super().__init__(model=shared_models.AttachmentTag)

    async def get_by_keys(self, db: AsyncSession, *, keys: List[str]) -> List[shared_models.AttachmentTag]:
        if not keys:
            return []
        result = await db.execute(select(self.model).where(self.model.key.in_(keys)))
        return result.scalars().all()

    async def create(self, db: AsyncSession, *, obj_in: shared_schemas.AttachmentTagCreate) -> shared_models.AttachmentTag:
        if await self.get_by_attribute(db, attribute="key", value=obj_in.key):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Tag key already exists")
        return await super().create(db, obj_in=obj_in)


tag = CRUDAttachmentTag()


# =============================================================================
# 3. shared.attachments 테이블 CRUD
# =============================================================================
class CRUDAttachment(CRUDBase[shared_models.Attachment, shared_schemas.AttachmentUpdate, shared_schemas.AttachmentUpdate]):
    def __init__(self):
        super().__init__(model=shared_models.Attachment)

    def _with_relations(self):
        return select(self.model).options(
            selectinload(self.model.folder),
            selectinload(self.model.owner),
            selectinload(self.model.tags),
        )

    async def get_with_relations(
        self, db: AsyncSession, *, id: int, include_deleted: bool = False
    ) -> Optional[shared_models.Attachment]:
        query = self._with_relations().where(self.model.id == id)
        if not include_deleted:
            query = query.where(self.model.deleted_at.is_(None))
        result = await db.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_list(
        self,
        db: AsyncSession,
        *,
        folder_id: Optional[int] = None,
        tag_keys: Optional[List[str]] = None,
        keyword: Optional[str] = None,
        include_deleted: bool = False,
        public_only: bool = False,
        limit: int = 20,
    ) -> List[shared_models.Attachment]:
        """
        조건에 맞는 첨부파일을 최신순으로 조회합니다.
        tag_keys 가 주어지면 그 중 하나라도 가진 첨부파일을 반환합니다.
        """
        query = self._with_relations()
        if folder_id is not None:
            query = query.where(self.model.folder_id == folder_id)
        if not include_deleted:
            query = query.where(self.model.deleted_at.is_(None))
        if public_only:
            query = query.where(self.model.is_public.is_(True))
        if keyword:
            pattern = f"%{keyword}%"
            query = query.where(or_(self.model.name.ilike(pattern), self.model.original_name.ilike(pattern)))
        if tag_keys:
            tagged = (
                select(shared_models.AttachmentTagging.attachment_id)
                .join(shared_models.AttachmentTag, shared_models.AttachmentTag.id == shared_models.AttachmentTagging.tag_id)
                .where(shared_models.AttachmentTag.key.in_(tag_keys))
            )
            query = query.where(self.model.id.in_(tagged))
        query = query.order_by(self.model.created_at.desc(), self.model.id.desc()).limit(limit)
        result = await db.execute(query)
        return result.scalars().all()

    async def soft_delete(self, db: AsyncSession, *, db_obj: shared_models.Attachment) -> shared_models.Attachment:
        db_obj.deleted_at = datetime.now(UTC)
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def get_purgeable(self, db: AsyncSession, *, deleted_before: datetime) -> List[shared_models.Attachment]:
        query = select(self.model).where(self.model.deleted_at.is_not(None), self.model.deleted_at < deleted_before)
        result = await db.execute(query)
        return result.scalars().all()


attachment = CRUDAttachment()


# =============================================================================
# 4. shared.attachment_share_tokens 테이블 CRUD
# =============================================================================
class CRUDShareToken(CRUDBase[shared_models.AttachmentShareToken, shared_schemas.ShareTokenCreate, shared_schemas.ShareTokenCreate]):
    def __init__(self):
        super().__init__(model=shared_models.AttachmentShareToken)

    async def get_valid(self, db: AsyncSession, *, token: str) -> Optional[shared_models.AttachmentShareToken]:
        """만료되지 않은 토큰만 반환합니다."""
        query = select(self.model).where(self.model.token == token, self.model.expires_at > datetime.now(UTC))
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def delete_expired(self, db: AsyncSession) -> int:
        result = await db.execute(delete(self.model).where(self.model.expires_at <= datetime.now(UTC)))
        return result.rowcount or 0


share_token = CRUDShareToken()
