# app/domains/wf/services.py

"""
'wf' 도메인의 비즈니스 로직을 담당하는 모듈입니다.

- 정의 등록/갱신 (upsert_definition), 인스턴스 생성 (create_instance)
- 상태 전이 (apply_transition): 인스턴스 행 잠금 -> 엔진 판정 -> 인스턴스 갱신 -> 이력 기록
  -> 업무 레코드 동기화 훅 -> 커밋. 하나의 트랜잭션에서 수행합니다.
- 상태 폐기 (retire_state): 폐기 상태의 인스턴스를 후속 상태로 옮기고, 훅으로 업무 레코드를 맞춘 뒤
  정의의 상태 목록을 갱신합니다. 역시 하나의 트랜잭션입니다.

업무 도메인(corp 등)은 register_state_sync 로 정의 코드별 동기화 훅을 등록합니다.
훅 시그니처: async def hook(db, *, instance_ids: List[int], state_key: str, business: Dict[str, Any]) -> None
"""

import logging
from datetime import datetime, UTC
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from fastapi import HTTPException, status
from sqlalchemy import update
from sqlmodel.ext.asyncio.session import AsyncSession

from app.domains.usr import models as usr_models
from . import crud as wf_crud
from . import models as wf_models
from . import schemas as wf_schemas
from .engine import (
    StateMachine,
    Transition,
    TransitionForbiddenError,
    TransitionNotAllowedError,
    UnknownStateError,
    WorkflowError,
)

logger = logging.getLogger(__name__)

StateSyncHook = Callable[..., Awaitable[None]]

_state_sync_hooks: Dict[str, List[StateSyncHook]] = {}


# =============================================================================
# 1. 동기화 훅 레지스트리
# =============================================================================
def register_state_sync(definition_code: str, hook: StateSyncHook) -> None:
    hooks = _state_sync_hooks.setdefault(definition_code, [])
    if hook not in hooks:
        hooks.append(hook)


def get_state_sync_hooks(definition_code: str) -> List[StateSyncHook]:
    return list(_state_sync_hooks.get(definition_code, []))


async def _run_state_sync(
    db: AsyncSession, *, definition_code: str, instance_ids: List[int], state_key: str, business: Dict[str, Any]
) -> None:
    for hook in get_state_sync_hooks(definition_code):
        await hook(db, instance_ids=instance_ids, state_key=state_key, business=business)


# =============================================================================
# 2. 엔진 헬퍼
# =============================================================================
def load_machine(definition: wf_models.WorkflowDefinition) -> StateMachine:
    try:
        return StateMachine.from_definition(definition.states, definition.initial_state, definition.config)
    except WorkflowError as e:
        logger.error("Stored workflow definition %s is invalid: %s", definition.code, e)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Workflow definition is invalid: {e}")


def _transition_error(e: WorkflowError) -> HTTPException:
    if isinstance(e, TransitionForbiddenError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if isinstance(e, UnknownStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    if isinstance(e, TransitionNotAllowedError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def base_actor_roles(user: Optional[usr_models.User]) -> List[str]:
    """사용자 역할 이름과 관리자 여부로 기본 행위자 역할 목록을 만듭니다."""
    if user is None:
        return []
    roles = [usr_models.UserRole(user.role).name]
    if user.role <= usr_models.UserRole.ADMIN and "ADMIN" not in roles:
        roles.append("ADMIN")
    return roles


# =============================================================================
# 3. 정의
# =============================================================================
async def upsert_definition(
    db: AsyncSession, *, definition_in: wf_schemas.WorkflowDefinitionUpsert, commit: bool = True
) -> wf_models.WorkflowDefinition:
    """
    코드 기준으로 정의를 생성하거나 갱신합니다.
    기존 정의에서 빠지는 상태에 인스턴스가 남아 있으면 409 로 거부합니다 (retire_state 사용).
    """
    try:
        machine = StateMachine(definition_in.states, definition_in.initial_state, definition_in.config)
    except WorkflowError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    values = {
        "name": definition_in.name,
        "description": definition_in.description,
        "category": definition_in.category,
        "states": machine.states,
        "initial_state": machine.initial_state,
        "config": machine.to_config(),
        "is_active": definition_in.is_active,
    }

    db_definition = await wf_crud.definition.get_by_code_for_update(db, code=definition_in.code)
    if db_definition:
        removed = [s for s in db_definition.states if s not in machine.states]
        if await wf_crud.instance.count_in_states(db, definition_id=db_definition.id, states=removed):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Instances remain in removed states {removed}; retire them first",
            )
        for key, value in values.items():
            setattr(db_definition, key, value)
    else:
        db_definition = wf_models.WorkflowDefinition(code=definition_in.code, **values)
    db.add(db_definition)

    if commit:
        await db.commit()
        await db.refresh(db_definition)
    else:
        await db.flush()
    logger.info("Workflow definition %s saved (%d states)", definition_in.code, len(machine.states))
    return db_definition


async def get_active_definition(db: AsyncSession, *, code: str) -> wf_models.WorkflowDefinition:
    db_definition = await wf_crud.definition.get_by_code(db, code=code)
    if not db_definition:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Workflow definition '{code}' not found")
    if not db_definition.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Workflow definition '{code}' is inactive")
    return db_definition


# =============================================================================
# 4. 인스턴스
# =============================================================================
async def create_instance(
    db: AsyncSession,
    *,
    definition_code: str,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    context: Optional[Dict[str, Any]] = None,
    created_by_id: Optional[int] = None,
    commit: bool = False,
) -> wf_models.WorkflowInstance:
    """정의의 초기 상태로 인스턴스를 만듭니다. 기본값은 flush 만 하고 커밋은 호출자가 합니다."""
    db_definition = await get_active_definition(db, code=definition_code)
    machine = load_machine(db_definition)
    final = machine.is_final(machine.initial_state)
    db_instance = wf_models.WorkflowInstance(
        definition_id=db_definition.id,
        definition_code=db_definition.code,
        current_state=machine.initial_state,
        status=wf_models.WorkflowInstanceStatus.COMPLETED if final else wf_models.WorkflowInstanceStatus.ACTIVE,
        target_type=target_type,
        target_id=target_id,
        context=context,
        created_by_id=created_by_id,
        completed_at=datetime.now(UTC) if final else None,
    )
    db.add(db_instance)
    await db.flush()
    if commit:
        await db.commit()
        await db.refresh(db_instance)
    return db_instance


async def get_instance_detail(
    db: AsyncSession, *, instance_id: int, actor_roles: Optional[List[str]] = None
) -> wf_schemas.WorkflowInstanceDetail:
    db_instance = await wf_crud.instance.get(db, id=instance_id)
    if not db_instance:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow instance not found")
    db_definition = await wf_crud.definition.get(db, id=db_instance.definition_id)
    machine = load_machine(db_definition)

    available = []
    if db_instance.status == wf_models.WorkflowInstanceStatus.ACTIVE and db_instance.current_state in machine.states:
        available = [
            wf_schemas.AvailableAction(key=a.key, label=a.label, to=a.to)
            for a in machine.available_actions(db_instance.current_state, actor_roles)
        ]
    history = await wf_crud.action.get_history(db, instance_id=instance_id)
    return wf_schemas.WorkflowInstanceDetail(
        **wf_schemas.WorkflowInstanceRead.model_validate(db_instance).model_dump(),
        available_actions=available,
        history=[wf_schemas.WorkflowActionRead.model_validate(h) for h in history],
    )


async def apply_transition(
    db: AsyncSession,
    *,
    instance_id: int,
    action_key: str,
    actor_id: Optional[int],
    actor_roles: List[str],
    comment: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
    expected_state: Optional[str] = None,
) -> Tuple[wf_models.WorkflowInstance, Transition]:
    """
    인스턴스에 액션을 적용하고 커밋합니다. 실패하면 롤백 후 예외를 그대로 전달합니다.

    - 인스턴스 없음: 404 / 종료된 인스턴스, expected_state 불일치: 409
    - 역할 불충분: 403 / 현재 상태에 없는 액션: 400 / 정의에 없는 상태: 409
    """
    try:
        db_instance = await wf_crud.instance.get_for_update(db, id=instance_id)
        if not db_instance:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow instance not found")
        if db_instance.status != wf_models.WorkflowInstanceStatus.ACTIVE:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Workflow instance is not active")
        if expected_state is not None and db_instance.current_state != expected_state:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Workflow state changed (now '{db_instance.current_state}')",
            )

        db_definition = await wf_crud.definition.get(db, id=db_instance.definition_id)
        machine = load_machine(db_definition)
        try:
            transition = machine.resolve(db_instance.current_state, action_key, actor_roles)
        except WorkflowError as e:
            raise _transition_error(e)

        db_instance.current_state = transition.target
        if transition.final:
            db_instance.status = wf_models.WorkflowInstanceStatus.COMPLETED
            db_instance.completed_at = datetime.now(UTC)
        db.add(db_instance)
        db.add(
            wf_models.WorkflowAction(
                instance_id=db_instance.id,
                action_key=transition.action_key,
                from_state=transition.source,
                to_state=transition.target,
                actor_id=actor_id,
                actor_roles=list(actor_roles),
                comment=comment,
                payload=payload,
            )
        )
        await db.flush()

        await _run_state_sync(
            db,
            definition_code=db_definition.code,
            instance_ids=[db_instance.id],
            state_key=transition.target,
            business=transition.business,
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(db_instance)
    logger.info(
        "Workflow instance %s: %s --%s--> %s (actor %s)",
        db_instance.id, transition.source, transition.action_key, transition.target, actor_id,
    )
    return db_instance, transition


# =============================================================================
# 5. 상태 폐기
# =============================================================================
async def retire_state(
    db: AsyncSession, *, definition_code: str, state: str, successor: str
) -> Tuple[wf_models.WorkflowDefinition, List[int]]:
    """
    정의에서 state 를 제거합니다.
    state 에 있던 인스턴스는 successor 로 옮기고 (successor 가 종료 상태면 COMPLETED, 아니면 ACTIVE),
    등록된 훅으로 업무 레코드의 캐시 상태를 함께 갱신합니다.
    """
    try:
        db_definition = await wf_crud.definition.get_by_code_for_update(db, code=definition_code)
        if not db_definition:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Workflow definition '{definition_code}' not found")
        machine = load_machine(db_definition)
        try:
            new_machine = machine.retire_state(state, successor)
        except WorkflowError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

        now = datetime.now(UTC)
        values: Dict[str, Any] = {"current_state": successor, "updated_at": now}
        if new_machine.is_final(successor):
            values["status"] = wf_models.WorkflowInstanceStatus.COMPLETED.value
            values["completed_at"] = now
        else:
            values["status"] = wf_models.WorkflowInstanceStatus.ACTIVE.value
            values["completed_at"] = None
        result = await db.execute(
            update(wf_models.WorkflowInstance)
            .where(
                wf_models.WorkflowInstance.definition_id == db_definition.id,
                wf_models.WorkflowInstance.current_state == state,
            )
            .values(**values)
            .returning(wf_models.WorkflowInstance.id)
        )
        migrated_ids = list(result.scalars().all())

        if migrated_ids:
            await _run_state_sync(
                db,
                definition_code=db_definition.code,
                instance_ids=migrated_ids,
                state_key=successor,
                business=new_machine.business(successor),
            )

        db_definition.states = new_machine.states
        db_definition.initial_state = new_machine.initial_state
        db_definition.config = new_machine.to_config()
        db.add(db_definition)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(db_definition)
    logger.info(
        "Workflow %s: state '%s' retired into '%s' (%d instances migrated)",
        definition_code, state, successor, len(migrated_ids),
    )
    return db_definition, migrated_ids
