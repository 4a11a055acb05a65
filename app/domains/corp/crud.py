# app/domains/corp/crud.py

"""
'corp' 도메인의 CRUD 작업을 담당하는 모듈입니다.
신청 제출/동의/워크플로 액션처럼 여러 테이블을 함께 바꾸는 작업은 services.py 에 있습니다.
"""

import re
import unicodedata
import uuid
from typing import List, Optional

from sqlalchemy import or_
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from . import models as corp_models
from . import schemas as corp_schemas

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """영문/숫자만 남긴 slug. 남는 문자가 없으면 'company-xxxxxx' 를 만듭니다."""
    normalized = unicodedata.normalize("NFKD", name).lower()
    slug = _NON_SLUG.sub("-", normalized).strip("-")
    return slug or f"company-{uuid.uuid4().hex[:6]}"


# =============================================================================
# 1. corp.companies 테이블 CRUD
# =============================================================================
class CRUDCompany(CRUDBase[corp_models.Company, corp_schemas.CompanyRead, corp_schemas.AdministrativeDivisionUpdate]):
    def __init__(self):
        super().__init__(model=corp_models.Company)

    async def get_by_slug(self, db: AsyncSession, *, slug: str) -> Optional[corp_models.Company]:
        return await self.get_by_attribute(db, attribute="slug", value=slug)

    async def generate_unique_slug(self, db: AsyncSession, *, name: str) -> str:
        base = slugify(name)
        for i in range(20):
            candidate = base if i == 0 else f"{base}-{i}"
            if not await self.get_by_slug(db, slug=candidate):
                return candidate
        return f"{base}-{uuid.uuid4().hex[:8]}"

    async def search(
        self,
        db: AsyncSession,
        *,
        keyword: Optional[str] = None,
        status: Optional[corp_models.CompanyStatus] = None,
        limit: int = 20,
    ) -> List[corp_models.Company]:
        query = select(corp_models.Company).order_by(corp_models.Company.name)
        if keyword:
            pattern = f"%{keyword}%"
            query = query.where(or_(corp_models.Company.name.ilike(pattern), corp_models.Company.slug.ilike(pattern)))
        if status:
            query = query.where(corp_models.Company.status == status.value)
        result = await db.execute(query.limit(limit))
        return result.scalars().all()


# =============================================================================
# 2. corp.company_applications 테이블 CRUD
# =============================================================================
class CRUDCompanyApplication(CRUDBase[corp_models.CompanyApplication, corp_schemas.ApplicationRead, corp_schemas.ApplicationRead]):
    def __init__(self):
        super().__init__(model=corp_models.CompanyApplication)

    async def get_fresh(
        self, db: AsyncSession, *, id: int, for_update: bool = False
    ) -> Optional[corp_models.CompanyApplication]:
        """세션에 남은 값 대신 DB 의 최신 값으로 조회합니다. for_update 이면 행을 잠급니다."""
        query = (
            select(corp_models.CompanyApplication)
            .where(corp_models.CompanyApplication.id == id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_list(
        self,
        db: AsyncSession,
        *,
        status: Optional[corp_models.ApplicationStatus] = None,
        participant_id: Optional[int] = None,
        limit: int = 20,
    ) -> List[corp_models.CompanyApplication]:
        """
        최신순 목록. participant_id 를 주면 신청자이거나 동의 대상자인 신청만 반환합니다.
        """
        query = select(corp_models.CompanyApplication).order_by(corp_models.CompanyApplication.id.desc())
        if status:
            query = query.where(corp_models.CompanyApplication.status == status.value)
        if participant_id is not None:
            consent_apps = select(corp_models.CompanyApplicationConsent.application_id).where(
                corp_models.CompanyApplicationConsent.required_user_id == participant_id
            )
            query = query.where(
                or_(
                    corp_models.CompanyApplication.applicant_id == participant_id,
                    corp_models.CompanyApplication.id.in_(consent_apps),
                )
            )
        result = await db.execute(query.limit(limit))
        return result.scalars().all()


# =============================================================================
# 3. corp.company_application_consents 테이블 CRUD
# =============================================================================
class CRUDConsent(CRUDBase[corp_models.CompanyApplicationConsent, corp_schemas.ConsentRead, corp_schemas.ConsentDecision]):
    def __init__(self):
        super().__init__(model=corp_models.CompanyApplicationConsent)

    async def get_for_application(self, db: AsyncSession, *, application_id: int) -> List[corp_models.CompanyApplicationConsent]:
        query = (
            select(corp_models.CompanyApplicationConsent)
            .where(corp_models.CompanyApplicationConsent.application_id == application_id)
            .order_by(corp_models.CompanyApplicationConsent.id)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalars().all()


# =============================================================================
# 4. corp.company_llc_registrations 테이블 CRUD
# =============================================================================
class CRUDLlcRegistration(CRUDBase[corp_models.CompanyLlcRegistration, corp_schemas.LlcRegistrationIn, corp_schemas.LlcRegistrationIn]):
    def __init__(self):
        super().__init__(model=corp_models.CompanyLlcRegistration)

    async def get_by_application(self, db: AsyncSession, *, application_id: int) -> Optional[corp_models.CompanyLlcRegistration]:
        return await self.get_by_attribute(db, attribute="application_id", value=application_id)


company = CRUDCompany()
application = CRUDCompanyApplication()
consent = CRUDConsent()
llc_registration = CRUDLlcRegistration()
