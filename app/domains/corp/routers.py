# app/domains/corp/routers.py

"""
'corp' 도메인 (회사, 등록 신청)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_session
from app.core import dependencies as deps
from app.domains.usr import models as usr_models

from . import crud as corp_crud
from . import schemas as corp_schemas
from . import services as corp_services

router = APIRouter(
    tags=["Company Registration (회사 등록)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. 회사 (Company) 엔드포인트
# =============================================================================
@router.get("/companies", response_model=List[corp_schemas.CompanyRead], summary="회사 검색")
async def read_companies(
    keyword: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    query = deps.validate_request_model(corp_schemas.CompanyQuery, {"keyword": keyword, "status": status, "limit": limit})
    return await corp_crud.company.search(db, keyword=query.keyword, status=query.status, limit=query.limit or 20)


@router.get("/companies/{company_id}", response_model=corp_schemas.CompanyRead, summary="회사 조회")
async def read_company(
    company_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    db_company = await corp_crud.company.get(db, id=company_id)
    if not db_company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return db_company


@router.put(
    "/admin/companies/{company_id}/administrative-division",
    response_model=corp_schemas.CompanyRead,
    summary="회사 행정구역 지정 (관리자)",
)
async def update_administrative_division(
    company_id: int,
    division_in: corp_schemas.AdministrativeDivisionUpdate,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await corp_services.set_administrative_division(db, company_id=company_id, division_in=division_in)


# =============================================================================
# 2. 등록 신청 (CompanyApplication) 엔드포인트
# =============================================================================
@router.post(
    "/registrations",
    response_model=corp_schemas.ApplicationDetail,
    status_code=status.HTTP_201_CREATED,
    summary="유한책임회사 등록 신청",
)
async def submit_registration(
    registration_in: corp_schemas.CompanyRegistrationCreate,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    """
    회사, 신청, 워크플로 인스턴스(초기 상태), LLC 등록 정보, 동의 목록을 한 번에 생성합니다.
    신청자 본인에게 필요한 동의는 자동으로 승인됩니다.
    """
    db_application = await corp_services.submit_registration(db, registration_in=registration_in, applicant=current_user)
    return await corp_services.get_application_detail(db, application_id=db_application.id, user=current_user)


@router.get("/applications", response_model=List[corp_schemas.ApplicationRead], summary="신청 목록")
async def read_applications(
    status: Optional[str] = None,
    mine: Optional[str] = None,
    limit: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    query = deps.validate_request_model(corp_schemas.ApplicationQuery, {"status": status, "mine": mine, "limit": limit})
    return await corp_services.list_applications(db, query=query, user=current_user)


@router.get("/applications/{application_id}", response_model=corp_schemas.ApplicationDetail, summary="신청 상세")
async def read_application(
    application_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await corp_services.get_application_detail(db, application_id=application_id, user=current_user)


@router.post("/applications/{application_id}/actions", response_model=corp_schemas.ApplicationDetail, summary="신청 워크플로 액션")
async def perform_application_action(
    application_id: int,
    action_in: corp_schemas.ApplicationActionRequest,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    return await corp_services.perform_action(db, application_id=application_id, action_in=action_in, user=current_user)


@router.post(
    "/applications/{application_id}/consents/{consent_id}/approve",
    response_model=corp_schemas.ApplicationDetail,
    summary="동의 승인",
)
async def approve_consent(
    application_id: int,
    consent_id: int,
    decision_in: corp_schemas.ConsentDecision,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await corp_services.decide_consent(
        db, application_id=application_id, consent_id=consent_id, user=current_user, approve=True, comment=decision_in.comment
    )
    return await corp_services.get_application_detail(db, application_id=application_id, user=current_user)


@router.post(
    "/applications/{application_id}/consents/{consent_id}/reject",
    response_model=corp_schemas.ApplicationDetail,
    summary="동의 거절",
)
async def reject_consent(
    application_id: int,
    consent_id: int,
    decision_in: corp_schemas.ConsentDecision,
    db: AsyncSession = Depends(get_session),
    current_user: usr_models.User = Depends(deps.get_current_active_user),
):
    await corp_services.decide_consent(
        db, application_id=application_id, consent_id=consent_id, user=current_user, approve=False, comment=decision_in.comment
    )
    return await corp_services.get_application_detail(db, application_id=application_id, user=current_user)
