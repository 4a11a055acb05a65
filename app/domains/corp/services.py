# app/domains/corp/services.py

"""
'corp' 도메인의 비즈니스 로직을 담당하는 모듈입니다.

- submit_registration: 회사 + 신청 + 워크플로 인스턴스(초기 상태) + LLC 등록 정보 + 동의 목록을 한 트랜잭션으로 생성
- decide_consent: 동의 대상자 본인만 승인/거절, 신청의 consent_status 재계산
- perform_action: 참여자 검증 후 워크플로 전이 (신청/회사 상태는 동기화 훅으로 같은 트랜잭션에서 갱신)
- set_administrative_division: 관리자 행정구역 지정
"""

import logging
from datetime import datetime, UTC
from typing import Dict, List, Optional, Set, Tuple

from fastapi import HTTPException, status
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.usr import models as usr_models
from app.domains.wf import crud as wf_crud
from app.domains.wf import models as wf_models
from app.domains.wf import schemas as wf_schemas
from app.domains.wf import services as wf_services
from . import crud as corp_crud
from . import models as corp_models
from . import schemas as corp_schemas
from . import workflows as corp_workflows

logger = logging.getLogger(__name__)

TARGET_TYPE_APPLICATION = "company_application"
APPROVE_ACTION = "approve"

OPEN_APPLICATION_STATUSES = {
    corp_models.ApplicationStatus.SUBMITTED.value,
    corp_models.ApplicationStatus.UNDER_REVIEW.value,
    corp_models.ApplicationStatus.NEEDS_CHANGES.value,
}

ConsentKey = Tuple[int, corp_models.CompanyApplicationConsentRole]


# =============================================================================
# 1. 등록 신청 제출
# =============================================================================
async def _ensure_users_exist(db: AsyncSession, user_ids: Set[int]) -> None:
    if not user_ids:
        return
    result = await db.execute(select(usr_models.User.id).where(usr_models.User.id.in_(user_ids)))
    missing = sorted(user_ids - set(result.scalars().all()))
    if missing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unknown users: {missing}")


def _officer_assignments(llc: corp_schemas.LlcRegistrationIn) -> List[Tuple[int, corp_models.CompanyLlcOfficerRole]]:
    """LLC 입력에서 (사용자, 임원 역할) 목록을 만듭니다. 순서를 유지하며 중복은 제거합니다."""
    R = corp_models.CompanyLlcOfficerRole
    pairs = [(llc.legal_representative_id, R.LEGAL_REPRESENTATIVE)]
    pairs += [(uid, R.DIRECTOR) for uid in llc.directors.director_ids]
    pairs += [(llc.directors.chairperson_id, R.CHAIRPERSON), (llc.directors.vice_chairperson_id, R.VICE_CHAIRPERSON)]
    pairs += [(llc.managers.manager_id, R.MANAGER), (llc.managers.deputy_manager_id, R.DEPUTY_MANAGER)]
    if llc.supervisors:
        pairs += [(uid, R.SUPERVISOR) for uid in llc.supervisors.supervisor_ids]
        pairs.append((llc.supervisors.chairperson_id, R.SUPERVISOR_CHAIRPERSON))
    pairs.append((llc.financial_officer_id, R.FINANCIAL_OFFICER))

    seen = set()
    result = []
    for user_id, role in pairs:
        if user_id is None or (user_id, role) in seen:
            continue
        seen.add((user_id, role))
        result.append((user_id, role))
    return result


def build_required_consents(
    llc: corp_schemas.LlcRegistrationIn,
    shareholder_companies: Dict[int, corp_models.Company],
) -> Dict[ConsentKey, Optional[int]]:
    """
    신청에 필요한 동의 목록 {(사용자, 역할): 주주 회사 ID}.
    회사 주주는 그 회사의 법정 대표자가 동의합니다.
    """
    CR = corp_models.CompanyApplicationConsentRole
    consents: Dict[ConsentKey, Optional[int]] = {}
    consents[(llc.legal_representative_id, CR.LEGAL_REPRESENTATIVE)] = None
    for holder in llc.shareholders:
        if holder.kind == corp_models.ShareholderKind.USER:
            consents.setdefault((holder.user_id, CR.SHAREHOLDER_USER), None)
        else:
            company = shareholder_companies[holder.company_id]
            consents.setdefault((company.legal_representative_id, CR.SHAREHOLDER_COMPANY_LEGAL), company.id)
    for user_id, officer_role in _officer_assignments(llc):
        if officer_role == corp_models.CompanyLlcOfficerRole.LEGAL_REPRESENTATIVE:
            continue
        consents.setdefault((user_id, CR(officer_role.value)), None)
    return consents


def _division_name(llc: corp_schemas.LlcRegistrationIn) -> Optional[str]:
    path = llc.domicile_division_path or {}
    node = path.get(f"level{llc.administrative_division_level}")
    if isinstance(node, dict):
        return node.get("name")
    return None


async def submit_registration(
    db: AsyncSession, *, registration_in: corp_schemas.CompanyRegistrationCreate, applicant: usr_models.User
) -> corp_models.CompanyApplication:
    llc = registration_in.llc
    now = datetime.now(UTC)
    try:
        user_ids = {llc.legal_representative_id}
        user_ids |= {h.user_id for h in llc.shareholders if h.user_id is not None}
        user_ids |= {uid for uid, _ in _officer_assignments(llc)}
        await _ensure_users_exist(db, user_ids)

        shareholder_companies: Dict[int, corp_models.Company] = {}
        for holder in llc.shareholders:
            if holder.kind != corp_models.ShareholderKind.COMPANY:
                continue
            db_holder = await corp_crud.company.get(db, id=holder.company_id)
            if not db_holder:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Shareholder company {holder.company_id} not found")
            if db_holder.legal_representative_id is None:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Shareholder company {holder.company_id} has no legal representative",
                )
            shareholder_companies[db_holder.id] = db_holder

        authority_name = llc.registration_authority_name
        if llc.registration_authority_company_id is not None:
            db_authority = await corp_crud.company.get(db, id=llc.registration_authority_company_id)
            if not db_authority:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Registration authority company not found")
            authority_name = db_authority.name

        await corp_workflows.ensure_registration_definition(db)

        db_company = corp_models.Company(
            name=registration_in.name,
            slug=await corp_crud.company.generate_unique_slug(db, name=registration_in.name),
            status=corp_models.CompanyStatus.UNDER_REVIEW,
            category=registration_in.category,
            summary=registration_in.summary,
            legal_representative_id=llc.legal_representative_id,
            administrative_division_id=llc.domicile_division_id,
            administrative_division_name=_division_name(llc),
            administrative_division_level=llc.administrative_division_level,
            created_by_id=applicant.id,
        )
        db.add(db_company)
        await db.flush()

        db_application = corp_models.CompanyApplication(
            company_id=db_company.id,
            workflow_code=corp_workflows.REGISTRATION_WORKFLOW_CODE,
            type=corp_models.ApplicationType.REGISTRATION,
            status=corp_models.ApplicationStatus.SUBMITTED,
            consent_status=corp_models.ConsentStatus.PENDING,
            applicant_id=applicant.id,
            payload=registration_in.model_dump(mode="json"),
            submitted_at=now,
        )
        db.add(db_application)
        await db.flush()

        db_instance = await wf_services.create_instance(
            db,
            definition_code=corp_workflows.REGISTRATION_WORKFLOW_CODE,
            target_type=TARGET_TYPE_APPLICATION,
            target_id=db_application.id,
            created_by_id=applicant.id,
        )
        machine = wf_services.load_machine(await wf_crud.definition.get(db, id=db_instance.definition_id))
        business = machine.business(db_instance.current_state)
        db_application.workflow_instance_id = db_instance.id
        db_application.current_stage = db_instance.current_state
        if business.get("application_status"):
            db_application.status = business["application_status"]
        if business.get("company_status"):
            db_company.status = business["company_status"]

        db_registration = corp_models.CompanyLlcRegistration(
            company_id=db_company.id,
            application_id=db_application.id,
            domicile_division_id=llc.domicile_division_id,
            domicile_division_path=llc.domicile_division_path,
            registered_capital=llc.registered_capital,
            administrative_division_level=llc.administrative_division_level,
            brand_name=llc.brand_name,
            industry_feature=llc.industry_feature,
            registration_authority_company_id=llc.registration_authority_company_id,
            registration_authority_name=authority_name,
            domicile_address=llc.domicile_address,
            operating_term_type=llc.operating_term.type,
            operating_term_years=llc.operating_term.years,
            business_scope=llc.business_scope,
            voting_rights_mode=llc.voting_rights_mode,
        )
        db.add(db_registration)
        await db.flush()

        for holder in llc.shareholders:
            db.add(
                corp_models.CompanyLlcShareholder(
                    registration_id=db_registration.id,
                    kind=holder.kind,
                    user_id=holder.user_id if holder.kind == corp_models.ShareholderKind.USER else None,
                    company_id=holder.company_id if holder.kind == corp_models.ShareholderKind.COMPANY else None,
                    ratio=holder.ratio,
                    voting_ratio=holder.voting_ratio if holder.voting_ratio is not None else holder.ratio,
                )
            )
        for user_id, officer_role in _officer_assignments(llc):
            db.add(corp_models.CompanyLlcOfficer(registration_id=db_registration.id, user_id=user_id, role=officer_role))

        required = build_required_consents(llc, shareholder_companies)
        for (user_id, consent_role), shareholder_company_id in required.items():
            self_consent = user_id == applicant.id
            db.add(
                corp_models.CompanyApplicationConsent(
                    application_id=db_application.id,
                    required_user_id=user_id,
                    role=consent_role,
                    shareholder_company_id=shareholder_company_id,
                    status=corp_models.ConsentStatus.APPROVED if self_consent else corp_models.ConsentStatus.PENDING,
                    decided_at=now if self_consent else None,
                )
            )
        if all(user_id == applicant.id for user_id, _ in required):
            db_application.consent_status = corp_models.ConsentStatus.APPROVED
            db_application.consent_completed_at = now

        db.add(db_application)
        db.add(db_company)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Company registration submitted: company=%s application=%s applicant=%s consents=%d",
        db_company.id, db_application.id, applicant.id, len(required),
    )
    return db_application


# =============================================================================
# 2. 권한 / 조회
# =============================================================================
async def actor_roles_for(
    db: AsyncSession, *, application: corp_models.CompanyApplication, user: usr_models.User
) -> List[str]:
    """
    신청에 대한 사용자 역할 목록.
    - 사용자 역할 이름, 관리자면 ADMIN
    - 등기 기관 회사의 법정 대표자 또는 REGISTRY_OFFICER 이면 REGISTRY_AUTHORITY_LEGAL
    - 신청자이면 APPLICANT
    """
    roles = wf_services.base_actor_roles(user)
    is_registry = user.role == usr_models.UserRole.REGISTRY_OFFICER
    if not is_registry:
        db_registration = await corp_crud.llc_registration.get_by_application(db, application_id=application.id)
        if db_registration and db_registration.registration_authority_company_id is not None:
            db_authority = await corp_crud.company.get(db, id=db_registration.registration_authority_company_id)
            is_registry = bool(db_authority and db_authority.legal_representative_id == user.id)
    if is_registry:
        roles.append(corp_workflows.REGISTRY_AUTHORITY_ROLE)
    if application.applicant_id == user.id:
        roles.append(corp_workflows.APPLICANT_ROLE)
    return roles


def _is_participant(roles: List[str], consents: List[corp_models.CompanyApplicationConsent], user_id: int) -> bool:
    privileged = {corp_workflows.ADMIN_ROLE, corp_workflows.REGISTRY_AUTHORITY_ROLE, corp_workflows.APPLICANT_ROLE}
    if privileged.intersection(roles):
        return True
    return any(c.required_user_id == user_id for c in consents)


async def _available_actions(
    db: AsyncSession, *, application: corp_models.CompanyApplication, roles: List[str]
) -> List[wf_schemas.AvailableAction]:
    if application.workflow_instance_id is None:
        return []
    db_instance = await wf_crud.instance.get(db, id=application.workflow_instance_id)
    if not db_instance or db_instance.status != wf_models.WorkflowInstanceStatus.ACTIVE:
        return []
    machine = wf_services.load_machine(await wf_crud.definition.get(db, id=db_instance.definition_id))
    if db_instance.current_state not in machine.states:
        return []
    consent_done = application.consent_status == corp_models.ConsentStatus.APPROVED
    return [
        wf_schemas.AvailableAction(key=a.key, label=a.label, to=a.to)
        for a in machine.available_actions(db_instance.current_state, roles)
        if consent_done or a.key != APPROVE_ACTION
    ]


async def get_application_detail(
    db: AsyncSession, *, application_id: int, user: usr_models.User
) -> corp_schemas.ApplicationDetail:
    db_application = await corp_crud.application.get_fresh(db, id=application_id)
    if not db_application:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
    consents = await corp_crud.consent.get_for_application(db, application_id=application_id)
    roles = await actor_roles_for(db, application=db_application, user=user)
    if not _is_participant(roles, consents, user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a participant of this application")

    db_company = await db.get(corp_models.Company, db_application.company_id, populate_existing=True)
    return corp_schemas.ApplicationDetail(
        **corp_schemas.ApplicationRead.model_validate(db_application).model_dump(),
        company=corp_schemas.CompanyRead.model_validate(db_company),
        consents=[corp_schemas.ConsentRead.model_validate(c) for c in consents],
        available_actions=await _available_actions(db, application=db_application, roles=roles),
        payload=db_application.payload,
    )


async def list_applications(
    db: AsyncSession, *, query: corp_schemas.ApplicationQuery, user: usr_models.User
) -> List[corp_models.CompanyApplication]:
    """관리자는 전체(mine 이면 본인 관련만), 그 외 사용자는 본인이 신청했거나 동의 대상인 신청만 봅니다."""
    is_admin = user.role <= usr_models.UserRole.ADMIN
    participant_id = user.id if (not is_admin or query.mine) else None
    return await corp_crud.application.get_list(
        db, status=query.status, participant_id=participant_id, limit=query.limit or 20
    )


# =============================================================================
# 3. 동의 결정
# =============================================================================
def _consent_progress(consents: List[corp_models.CompanyApplicationConsent]) -> corp_models.ConsentStatus:
    statuses = [c.status for c in consents]
    if corp_models.ConsentStatus.REJECTED in statuses:
        return corp_models.ConsentStatus.REJECTED
    if all(s == corp_models.ConsentStatus.APPROVED for s in statuses):
        return corp_models.ConsentStatus.APPROVED
    return corp_models.ConsentStatus.PENDING


async def decide_consent(
    db: AsyncSession,
    *,
    application_id: int,
    consent_id: int,
    user: usr_models.User,
    approve: bool,
    comment: Optional[str] = None,
) -> corp_models.CompanyApplication:
    try:
        db_application = await corp_crud.application.get_fresh(db, id=application_id, for_update=True)
        if not db_application:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
        consents = await corp_crud.consent.get_for_application(db, application_id=application_id)
        db_consent = next((c for c in consents if c.id == consent_id), None)
        if not db_consent:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Consent not found")
        if db_consent.required_user_id != user.id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the required user can decide this consent")
        if db_consent.status != corp_models.ConsentStatus.PENDING:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Consent already decided")
        if db_application.status not in OPEN_APPLICATION_STATUSES:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Application is already resolved")

        now = datetime.now(UTC)
        db_consent.status = corp_models.ConsentStatus.APPROVED if approve else corp_models.ConsentStatus.REJECTED
        db_consent.decided_at = now
        db_consent.comment = comment
        db.add(db_consent)

        progress = _consent_progress(consents)
        db_application.consent_status = progress
        db_application.consent_completed_at = now if progress == corp_models.ConsentStatus.APPROVED else None
        db.add(db_application)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Consent %s (%s) of application %s %s by user %s; progress=%s",
        consent_id, db_consent.role, application_id, "approved" if approve else "rejected", user.id, progress.value,
    )
    return db_application


# =============================================================================
# 4. 워크플로 액션
# =============================================================================
async def perform_action(
    db: AsyncSession, *, application_id: int, action_in: corp_schemas.ApplicationActionRequest, user: usr_models.User
) -> corp_schemas.ApplicationDetail:
    db_application = await corp_crud.application.get_fresh(db, id=application_id)
    if not db_application:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")
    if db_application.workflow_instance_id is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Application has no workflow instance")

    consents = await corp_crud.consent.get_for_application(db, application_id=application_id)
    roles = await actor_roles_for(db, application=db_application, user=user)
    if not _is_participant(roles, consents, user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a participant of this application")
    if action_in.action == APPROVE_ACTION and db_application.consent_status != corp_models.ConsentStatus.APPROVED:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="All required consents must be approved first")

    await wf_services.apply_transition(
        db,
        instance_id=db_application.workflow_instance_id,
        action_key=action_in.action,
        actor_id=user.id,
        actor_roles=roles,
        comment=action_in.comment,
        payload=action_in.payload,
        expected_state=action_in.expected_state,
    )
    return await get_application_detail(db, application_id=application_id, user=user)


# =============================================================================
# 5. 관리자: 행정구역 지정
# =============================================================================
async def set_administrative_division(
    db: AsyncSession, *, company_id: int, division_in: corp_schemas.AdministrativeDivisionUpdate
) -> corp_models.Company:
    db_company = await corp_crud.company.get(db, id=company_id)
    if not db_company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    if division_in.division_id is None:
        values = {"administrative_division_id": None, "administrative_division_name": None, "administrative_division_level": None}
    else:
        values = {
            "administrative_division_id": division_in.division_id,
            "administrative_division_name": division_in.name,
            "administrative_division_level": division_in.level,
        }
    db_company = await corp_crud.company.update(db, db_obj=db_company, obj_in=values)
    logger.info("Company %s administrative division set to %s", company_id, division_in.division_id)
    return db_company
