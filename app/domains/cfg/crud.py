# app/domains/cfg/crud.py

"""
'cfg' 도메인의 CRUD 작업을 담당하는 모듈입니다.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from . import models as cfg_models
from . import schemas as cfg_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. cfg.config_namespaces 테이블 CRUD
# =============================================================================
class CRUDConfigNamespace(
    CRUDBase[cfg_models.ConfigNamespace, cfg_schemas.ConfigNamespaceCreate, cfg_schemas.ConfigNamespaceUpdate]
):
    def __init__(self):
        super().__init__(model=cfg_models.ConfigNamespace)

    async def get_by_key(self, db: AsyncSession, *, key: str) -> Optional[cfg_models.ConfigNamespace]:
        return await self.get_by_attribute(db, attribute="key", value=key)

    async def get_multi_with_counts(self, db: AsyncSession) -> List[Tuple[cfg_models.ConfigNamespace, int]]:
        """네임스페이스 목록을 키 순으로, 각 네임스페이스의 항목 수와 함께 반환합니다."""
        entry_count = (
            select(func.count(cfg_models.ConfigEntry.id))
            .where(cfg_models.ConfigEntry.namespace_id == cfg_models.ConfigNamespace.id)
            .scalar_subquery()
        )
        query = select(cfg_models.ConfigNamespace, entry_count).order_by(cfg_models.ConfigNamespace.key)
        result = await db.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    async def create(self, db: AsyncSession, *, obj_in: cfg_schemas.ConfigNamespaceCreate) -> cfg_models.ConfigNamespace:
        if await self.get_by_key(db, key=obj_in.key):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Namespace key already exists")
        return await super().create(db, obj_in=obj_in)

    async def ensure(
        self, db: AsyncSession, *, key: str, name: Optional[str] = None, description: Optional[str] = None
    ) -> cfg_models.ConfigNamespace:
        """네임스페이스가 없으면 만들고, 있으면 그대로 반환합니다."""
        namespace = await self.get_by_key(db, key=key)
        if namespace:
            return namespace
        return await super().create(
            db, obj_in=cfg_schemas.ConfigNamespaceCreate(key=key, name=name or key, description=description)
        )

    async def remove(self, db: AsyncSession, *, id: int) -> cfg_models.ConfigNamespace:
        """네임스페이스를 삭제합니다. 항목이 남아 있으면 거부합니다."""
        namespace = await self.get(db, id=id)
        if not namespace:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Namespace not found")
        if await entry.count(db, namespace_id=id) > 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Namespace is not empty")
        return await super().delete(db, id=id)


namespace = CRUDConfigNamespace()


# =============================================================================
# 2. cfg.config_entries 테이블 CRUD
# =============================================================================
class CRUDConfigEntry(CRUDBase[cfg_models.ConfigEntry, cfg_schemas.ConfigEntryCreate, cfg_schemas.ConfigEntryUpdate]):
    def __init__(self):
        super().__init__(model=cfg_models.ConfigEntry)

    async def get_by_namespace(self, db: AsyncSession, *, namespace_id: int) -> List[cfg_models.ConfigEntry]:
        query = select(self.model).where(self.model.namespace_id == namespace_id).order_by(self.model.key)
        result = await db.execute(query)
        return result.scalars().all()

    async def get_by_keys(
        self, db: AsyncSession, *, namespace_key: str, entry_key: str
    ) -> Optional[cfg_models.ConfigEntry]:
        query = (
            select(self.model)
            .join(cfg_models.ConfigNamespace, cfg_models.ConfigNamespace.id == self.model.namespace_id)
            .where(cfg_models.ConfigNamespace.key == namespace_key, self.model.key == entry_key)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def create(
        self,
        db: AsyncSession,
        *,
        namespace_id: int,
        obj_in: cfg_schemas.ConfigEntryCreate,
        updated_by_id: Optional[int] = None,
    ) -> cfg_models.ConfigEntry:
        db_obj = cfg_models.ConfigEntry(
            namespace_id=namespace_id,
            key=obj_in.key,
            value=obj_in.value,
            description=obj_in.description,
            updated_by_id=updated_by_id,
        )
        db.add(db_obj)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Entry key already exists in namespace")
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self,
        db: AsyncSession,
        *,
        db_obj: cfg_models.ConfigEntry,
        obj_in: cfg_schemas.ConfigEntryUpdate,
        updated_by_id: Optional[int] = None,
    ) -> cfg_models.ConfigEntry:
        """값/설명을 수정하고 version 을 1 증가시킵니다."""
        update_data = {
            "version": db_obj.version + 1,
            "updated_by_id": updated_by_id,
        }
        if "value" in obj_in.model_fields_set:
            update_data["value"] = obj_in.value
        if obj_in.description is not None:
            update_data["description"] = obj_in.description
        updated = await super().update(db, db_obj=db_obj, obj_in=update_data)
        logger.info("Config entry %s updated to version %s by %s", updated.id, updated.version, updated_by_id)
        return updated


entry = CRUDConfigEntry()
