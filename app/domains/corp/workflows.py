# app/domains/corp/workflows.py

"""
회사 도메인의 워크플로 정의와 상태 동기화 훅.

company.registration:
    under_review   -> approve: approved / request_changes: needs_revision / reject: rejected
    needs_revision -> resubmit: under_review / withdraw: rejected
    approved       -> suspend: suspended
    suspended      -> reactivate: approved / archive: archived
    rejected       -> reopen: under_review

각 상태의 business 값(application_status, company_status)은 전이와 같은 트랜잭션에서
company_applications.status/current_stage 와 companies.status 에 반영됩니다.
"""

import logging
from datetime import datetime, UTC
from typing import Any, Dict, List

from sqlalchemy import func, update
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.wf import crud as wf_crud
from app.domains.wf import schemas as wf_schemas
from app.domains.wf import services as wf_services
from . import models as corp_models

logger = logging.getLogger(__name__)

REGISTRATION_WORKFLOW_CODE = "company.registration"

# 등기 기관(심사 주체) 역할
REGISTRY_AUTHORITY_ROLE = "REGISTRY_AUTHORITY_LEGAL"
ADMIN_ROLE = "ADMIN"
APPLICANT_ROLE = "APPLICANT"

REVIEWER_ROLES = [REGISTRY_AUTHORITY_ROLE, ADMIN_ROLE]

RESOLVED_APPLICATION_STATUSES = {
    corp_models.ApplicationStatus.APPROVED.value,
    corp_models.ApplicationStatus.REJECTED.value,
    corp_models.ApplicationStatus.ARCHIVED.value,
}


def _business(application_status: corp_models.ApplicationStatus, company_status: corp_models.CompanyStatus) -> Dict[str, str]:
    return {"application_status": application_status.value, "company_status": company_status.value}


def registration_definition() -> wf_schemas.WorkflowDefinitionUpsert:
    AS = corp_models.ApplicationStatus
    CS = corp_models.CompanyStatus
    return wf_schemas.WorkflowDefinitionUpsert(
        code=REGISTRATION_WORKFLOW_CODE,
        name="회사 등록 심사",
        description="유한책임회사 등록 신청 심사 흐름",
        category="corp",
        states=["under_review", "needs_revision", "approved", "suspended", "rejected", "archived"],
        initial_state="under_review",
        config={
            "states": {
                "under_review": {
                    "label": "심사 중",
                    "business": _business(AS.UNDER_REVIEW, CS.UNDER_REVIEW),
                    "actions": [
                        {"key": "approve", "label": "승인", "to": "approved", "roles": REVIEWER_ROLES},
                        {"key": "request_changes", "label": "보완 요청", "to": "needs_revision", "roles": REVIEWER_ROLES},
                        {"key": "reject", "label": "반려", "to": "rejected", "roles": REVIEWER_ROLES},
                    ],
                },
                "needs_revision": {
                    "label": "보완 필요",
                    "business": _business(AS.NEEDS_CHANGES, CS.NEEDS_REVISION),
                    "actions": [
                        {"key": "resubmit", "label": "재제출", "to": "under_review", "roles": []},
                        {"key": "withdraw", "label": "철회", "to": "rejected", "roles": []},
                    ],
                },
                "approved": {
                    "label": "승인됨",
                    "business": _business(AS.APPROVED, CS.ACTIVE),
                    "actions": [
                        {"key": "suspend", "label": "정지", "to": "suspended", "roles": REVIEWER_ROLES},
                    ],
                },
                "suspended": {
                    "label": "정지됨",
                    "business": _business(AS.APPROVED, CS.SUSPENDED),
                    "actions": [
                        {"key": "reactivate", "label": "재개", "to": "approved", "roles": REVIEWER_ROLES},
                        {"key": "archive", "label": "보관", "to": "archived", "roles": REVIEWER_ROLES},
                    ],
                },
                "rejected": {
                    "label": "반려됨",
                    "business": _business(AS.REJECTED, CS.REJECTED),
                    "actions": [
                        {"key": "reopen", "label": "재심사", "to": "under_review", "roles": REVIEWER_ROLES},
                    ],
                },
                "archived": {
                    "label": "보관됨",
                    "final": True,
                    "business": _business(AS.ARCHIVED, CS.ARCHIVED),
                },
            }
        },
    )


async def ensure_registration_definition(db: AsyncSession) -> None:
    """정의가 없으면 기본 정의를 등록합니다 (flush 만, 커밋은 호출자)."""
    if await wf_crud.definition.get_by_code(db, code=REGISTRATION_WORKFLOW_CODE):
        return
    await wf_services.upsert_definition(db, definition_in=registration_definition(), commit=False)
    logger.info("Default workflow definition %s created", REGISTRATION_WORKFLOW_CODE)


# =============================================================================
# 상태 동기화 훅
# =============================================================================
async def sync_application_state(
    db: AsyncSession, *, instance_ids: List[int], state_key: str, business: Dict[str, Any]
) -> None:
    """인스턴스 상태를 신청(status, current_stage, resolved_at)과 회사(status)에 반영합니다."""
    if not instance_ids:
        return
    values: Dict[str, Any] = {"current_stage": state_key, "updated_at": datetime.now(UTC)}
    application_status = business.get("application_status")
    if application_status:
        values["status"] = application_status
        if application_status in RESOLVED_APPLICATION_STATUSES:
            values["resolved_at"] = func.coalesce(corp_models.CompanyApplication.resolved_at, func.now())
        else:
            values["resolved_at"] = None

    result = await db.execute(
        update(corp_models.CompanyApplication)
        .where(corp_models.CompanyApplication.workflow_instance_id.in_(instance_ids))
        .values(**values)
        .returning(corp_models.CompanyApplication.company_id)
    )
    company_ids = list(set(result.scalars().all()))

    company_status = business.get("company_status")
    if company_status and company_ids:
        await db.execute(
            update(corp_models.Company)
            .where(corp_models.Company.id.in_(company_ids))
            .values(status=company_status, updated_at=datetime.now(UTC))
        )
    logger.debug("Synced %d applications to stage %s", len(company_ids), state_key)


wf_services.register_state_sync(REGISTRATION_WORKFLOW_CODE, sync_application_state)
