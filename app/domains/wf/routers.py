# app/domains/wf/routers.py

"""
'wf' 도메인 (워크플로 정의/인스턴스)과 관련된 API 엔드포인트를 정의하는 모듈입니다.
정의 관리와 인스턴스 직접 전이는 관리자 전용입니다.
업무 흐름(예: 회사 등록 신청)의 전이는 해당 도메인의 API 에서 참여자 검증 후 수행됩니다.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.database import get_session
from app.core import dependencies as deps
from app.domains.usr import models as usr_models

from . import crud as wf_crud
from . import schemas as wf_schemas
from . import services as wf_services

router = APIRouter(
    tags=["Workflow (워크플로)"],
    responses={404: {"description": "Not found"}},
)


# =============================================================================
# 1. 정의 (WorkflowDefinition) 엔드포인트
# =============================================================================
@router.get("/definitions", response_model=List[wf_schemas.WorkflowDefinitionRead], summary="워크플로 정의 목록")
async def read_definitions(
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await wf_crud.definition.get_all(db, category=category)


@router.get("/definitions/{code}", response_model=wf_schemas.WorkflowDefinitionRead, summary="워크플로 정의 조회")
async def read_definition(
    code: str,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_definition = await wf_crud.definition.get_by_code(db, code=code)
    if not db_definition:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow definition not found")
    return db_definition


@router.put("/definitions", response_model=wf_schemas.WorkflowDefinitionRead, summary="워크플로 정의 등록/갱신")
async def upsert_definition(
    definition_in: wf_schemas.WorkflowDefinitionUpsert,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await wf_services.upsert_definition(db, definition_in=definition_in)


@router.post(
    "/definitions/{code}/retire-state",
    response_model=wf_schemas.RetireStateResult,
    summary="상태 폐기 (인스턴스를 후속 상태로 이동)",
)
async def retire_state(
    code: str,
    retire_in: wf_schemas.RetireStateRequest,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    db_definition, migrated_ids = await wf_services.retire_state(
        db, definition_code=code, state=retire_in.state, successor=retire_in.successor
    )
    return wf_schemas.RetireStateResult(
        definition=wf_schemas.WorkflowDefinitionRead.model_validate(db_definition),
        migrated_instance_ids=migrated_ids,
    )


# =============================================================================
# 2. 인스턴스 (WorkflowInstance) 엔드포인트
# =============================================================================
@router.get("/instances/{instance_id}", response_model=wf_schemas.WorkflowInstanceDetail, summary="인스턴스 상세 (가능한 액션, 이력)")
async def read_instance(
    instance_id: int,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    return await wf_services.get_instance_detail(
        db, instance_id=instance_id, actor_roles=wf_services.base_actor_roles(current_admin_user)
    )


@router.post("/instances/{instance_id}/actions", response_model=wf_schemas.WorkflowInstanceDetail, summary="인스턴스 상태 전이")
async def perform_action(
    instance_id: int,
    transition_in: wf_schemas.TransitionRequest,
    db: AsyncSession = Depends(get_session),
    current_admin_user: usr_models.User = Depends(deps.get_current_admin_user),
):
    actor_roles = wf_services.base_actor_roles(current_admin_user)
    await wf_services.apply_transition(
        db,
        instance_id=instance_id,
        action_key=transition_in.action,
        actor_id=current_admin_user.id,
        actor_roles=actor_roles,
        comment=transition_in.comment,
        payload=transition_in.payload,
        expected_state=transition_in.expected_state,
    )
    return await wf_services.get_instance_detail(db, instance_id=instance_id, actor_roles=actor_roles)
