# app/domains/oauth/crud.py

"""
'oauth' 도메인의 CRUD 작업을 담당하는 모듈입니다.
"""

import logging
from datetime import datetime, timedelta, UTC
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from fastapi import HTTPException, status

from app.core.crud_base import CRUDBase
from app.domains.usr import models as usr_models
from . import models as oauth_models
from . import schemas as oauth_schemas

logger = logging.getLogger(__name__)


# =============================================================================
# 1. oauth.oauth_providers 테이블 CRUD
# =============================================================================
class CRUDOAuthProvider(
    CRUDBase[oauth_models.OAuthProvider, oauth_schemas.OAuthProviderCreate, oauth_schemas.OAuthProviderUpdate]
):
    def __init__(self):
        super().__init__(model=oauth_models.OAuthProvider)

    async def get_by_key(self, db: AsyncSession, *, key: str) -> Optional[oauth_models.OAuthProvider]:
        return await self.get_by_attribute(db, attribute="key", value=key)

    async def get_enabled(self, db: AsyncSession) -> List[oauth_models.OAuthProvider]:
        query = select(self.model).where(self.model.enabled.is_(True)).order_by(self.model.key)
        result = await db.execute(query)
        return result.scalars().all()

    async def create(self, db: AsyncSession, *, obj_in: oauth_schemas.OAuthProviderCreate) -> oauth_models.OAuthProvider:
        if await self.get_by_key(db, key=obj_in.key):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provider key already exists")
        db_obj = oauth_models.OAuthProvider(
            key=obj_in.key,
            name=obj_in.name,
            type=obj_in.type,
            description=obj_in.description,
            enabled=obj_in.enabled,
            settings=obj_in.settings.model_dump(exclude_none=True) if obj_in.settings else None,
        )
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def update(
        self, db: AsyncSession, *, db_obj: oauth_models.OAuthProvider, obj_in: oauth_schemas.OAuthProviderUpdate
    ) -> oauth_models.OAuthProvider:
        """
        제공자 정보를 수정합니다. settings 는 기존 값에 병합되며,
        client_secret 을 생략하면 저장된 비밀값이 유지됩니다.
        """
        update_data: Dict[str, Any] = obj_in.model_dump(exclude_none=True, exclude={"settings"})
        if obj_in.settings is not None:
            merged = dict(db_obj.settings or {})
            merged.update(obj_in.settings.model_dump(exclude_none=True))
            update_data["settings"] = merged
        return await super().update(db, db_obj=db_obj, obj_in=update_data)


provider = CRUDOAuthProvider()


# =============================================================================
# 2. oauth.oauth_accounts 테이블 CRUD
# =============================================================================
class CRUDOAuthAccount(CRUDBase[oauth_models.OAuthAccount, oauth_schemas.OAuthAccountRead, oauth_schemas.OAuthAccountRead]):
    def __init__(self):
        super().__init__(model=oauth_models.OAuthAccount)

    async def get_by_provider_account(
        self, db: AsyncSession, *, provider_key: str, provider_account_id: str
    ) -> Optional[oauth_models.OAuthAccount]:
        query = select(self.model).where(
            self.model.provider_key == provider_key,
            self.model.provider_account_id == provider_account_id,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_for_user(
        self, db: AsyncSession, *, provider_key: str, user_id: int
    ) -> Optional[oauth_models.OAuthAccount]:
        query = select(self.model).where(self.model.provider_key == provider_key, self.model.user_id == user_id)
        result = await db.execute(query)
        return result.scalars().first()

    async def get_page(
        self,
        db: AsyncSession,
        *,
        provider_key: Optional[str] = None,
        email: Optional[str] = None,
        user_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Tuple[oauth_models.OAuthAccount, usr_models.User]], int]:
        """관리자용 계정 목록 (최신순). (계정, 사용자) 쌍 목록과 전체 개수를 반환합니다."""
        conditions = []
        if provider_key:
            conditions.append(self.model.provider_key == provider_key)
        if user_id is not None:
            conditions.append(self.model.user_id == user_id)
        if email:
            conditions.append(usr_models.User.email.ilike(f"%{email}%"))

        base = select(self.model, usr_models.User).join(usr_models.User, usr_models.User.id == self.model.user_id)
        count_query = (
            select(func.count(self.model.id))
            .join(usr_models.User, usr_models.User.id == self.model.user_id)
        )
        for condition in conditions:
            base = base.where(condition)
            count_query = count_query.where(condition)

        query = base.order_by(self.model.created_at.desc(), self.model.id.desc()).offset((page - 1) * page_size).limit(page_size)
        rows = (await db.execute(query)).all()
        total = (await db.execute(count_query)).scalar_one()
        return [(row[0], row[1]) for row in rows], total


account = CRUDOAuthAccount()


# =============================================================================
# 3. oauth.oauth_logs 테이블 CRUD
# =============================================================================
class CRUDOAuthLog(CRUDBase[oauth_models.OAuthLog, oauth_schemas.OAuthStatRow, oauth_schemas.OAuthStatRow]):
    def __init__(self):
        super().__init__(model=oauth_models.OAuthLog)

    def record(
        self,
        db: AsyncSession,
        *,
        provider: oauth_models.OAuthProvider,
        action: oauth_models.OAuthLogAction,
        log_status: oauth_models.OAuthLogStatus = oauth_models.OAuthLogStatus.SUCCESS,
        user_id: Optional[int] = None,
        account_id: Optional[int] = None,
        message: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> oauth_models.OAuthLog:
        """이력 레코드를 세션에 추가합니다 (커밋은 호출자가 담당)."""
        db_obj = oauth_models.OAuthLog(
            provider_id=provider.id,
            provider_key=provider.key,
            provider_type=provider.type,
            action=action.value,
            status=log_status.value,
            user_id=user_id,
            account_id=account_id,
            message=message,
            meta=meta,
            ip=ip,
            user_agent=user_agent[:512] if user_agent else None,
        )
        db.add(db_obj)
        return db_obj

    async def daily_stats(
        self, db: AsyncSession, *, provider_key: Optional[str] = None, days: int = 14
    ) -> List[Dict[str, Any]]:
        """최근 days 일 동안의 일자/액션별 건수를 반환합니다."""
        since = datetime.now(UTC) - timedelta(days=days)
        day = func.to_char(self.model.created_at, "YYYY-MM-DD")
        query = (
            select(day.label("date"), self.model.action, func.count(self.model.id))
            .where(self.model.created_at >= since)
            .group_by(day, self.model.action)
            .order_by(day, self.model.action)
        )
        if provider_key:
            query = query.where(self.model.provider_key == provider_key)
        rows = (await db.execute(query)).all()
        return [{"date": row[0], "action": row[1], "count": int(row[2])} for row in rows]

    async def get_page(
        self,
        db: AsyncSession,
        *,
        provider_key: Optional[str] = None,
        action: Optional[oauth_models.OAuthLogAction] = None,
        log_status: Optional[oauth_models.OAuthLogStatus] = None,
        user_id: Optional[int] = None,
        search: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Tuple[List[Tuple[oauth_models.OAuthLog, Optional[usr_models.User]]], int]:
        """관리자용 이력 목록 (최신순). 사용자가 없는 이력도 포함합니다."""
        conditions = []
        if provider_key:
            conditions.append(self.model.provider_key == provider_key)
        if action is not None:
            conditions.append(self.model.action == action.value)
        if log_status is not None:
            conditions.append(self.model.status == log_status.value)
        if user_id is not None:
            conditions.append(self.model.user_id == user_id)
        if search:
            conditions.append(self.model.message.ilike(f"%{search}%"))
        if date_from is not None:
            conditions.append(self.model.created_at >= date_from)
        if date_to is not None:
            conditions.append(self.model.created_at <= date_to)

        base = select(self.model, usr_models.User).outerjoin(usr_models.User, usr_models.User.id == self.model.user_id)
        count_query = select(func.count(self.model.id))
        for condition in conditions:
            base = base.where(condition)
            count_query = count_query.where(condition)

        query = base.order_by(self.model.created_at.desc(), self.model.id.desc()).offset((page - 1) * page_size).limit(page_size)
        rows = (await db.execute(query)).all()
        total = (await db.execute(count_query)).scalar_one()
        return [(row[0], row[1]) for row in rows], total


log = CRUDOAuthLog()
