# app/domains/wf/crud.py

"""
'wf' 도메인의 CRUD 작업을 담당하는 모듈입니다.
상태 전이/정의 변경처럼 여러 테이블을 함께 바꾸는 작업은 services.py 에 있습니다.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core.crud_base import CRUDBase
from . import models as wf_models
from . import schemas as wf_schemas


# =============================================================================
# 1. wf.workflow_definitions 테이블 CRUD
# =============================================================================
class CRUDWorkflowDefinition(
    CRUDBase[wf_models.WorkflowDefinition, wf_schemas.WorkflowDefinitionUpsert, wf_schemas.WorkflowDefinitionUpsert]
):
    def __init__(self):
        super().__init__(model=wf_models.WorkflowDefinition)

    async def get_by_code(self, db: AsyncSession, *, code: str) -> Optional[wf_models.WorkflowDefinition]:
        return await self.get_by_attribute(db, attribute="code", value=code)

    async def get_by_code_for_update(self, db: AsyncSession, *, code: str) -> Optional[wf_models.WorkflowDefinition]:
        """정의 행을 잠그고 조회합니다 (트랜잭션 종료 시 해제)."""
        query = (
            select(wf_models.WorkflowDefinition)
            .where(wf_models.WorkflowDefinition.code == code)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_all(self, db: AsyncSession, *, category: Optional[str] = None) -> List[wf_models.WorkflowDefinition]:
        query = select(wf_models.WorkflowDefinition).order_by(wf_models.WorkflowDefinition.code)
        if category:
            query = query.where(wf_models.WorkflowDefinition.category == category)
        result = await db.execute(query)
        return result.scalars().all()


# =============================================================================
# 2. wf.workflow_instances 테이블 CRUD
# =============================================================================
class CRUDWorkflowInstance(
    CRUDBase[wf_models.WorkflowInstance, wf_schemas.WorkflowInstanceRead, wf_schemas.WorkflowInstanceRead]
):
    def __init__(self):
        super().__init__(model=wf_models.WorkflowInstance)

    async def get_for_update(self, db: AsyncSession, *, id: int) -> Optional[wf_models.WorkflowInstance]:
        """인스턴스 행을 잠그고 최신 값으로 조회합니다."""
        query = (
            select(wf_models.WorkflowInstance)
            .where(wf_models.WorkflowInstance.id == id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def count_in_states(self, db: AsyncSession, *, definition_id: int, states: List[str]) -> int:
        if not states:
            return 0
        query = select(func.count()).select_from(wf_models.WorkflowInstance).where(
            wf_models.WorkflowInstance.definition_id == definition_id,
            wf_models.WorkflowInstance.current_state.in_(states),
        )
        result = await db.execute(query)
        return result.scalar_one()


# =============================================================================
# 3. wf.workflow_actions 테이블 CRUD
# =============================================================================
class CRUDWorkflowAction(
    CRUDBase[wf_models.WorkflowAction, wf_schemas.WorkflowActionRead, wf_schemas.WorkflowActionRead]
):
    def __init__(self):
        super().__init__(model=wf_models.WorkflowAction)

    async def get_history(self, db: AsyncSession, *, instance_id: int) -> List[wf_models.WorkflowAction]:
        query = (
            select(wf_models.WorkflowAction)
            .where(wf_models.WorkflowAction.instance_id == instance_id)
            .order_by(wf_models.WorkflowAction.id)
        )
        result = await db.execute(query)
        return result.scalars().all()


definition = CRUDWorkflowDefinition()
instance = CRUDWorkflowInstance()
action = CRUDWorkflowAction()
