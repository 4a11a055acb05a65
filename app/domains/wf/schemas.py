# app/domains/wf/schemas.py

"""
'wf' 도메인 (워크플로 정의/인스턴스)의 API 데이터 전송 객체(DTO)를 정의하는 모듈입니다.

WorkflowConfig 는 workflow_definitions.config JSONB 컬럼의 구조입니다.
    {
      "states": {
        "under_review": {
          "label": "심사 중",
          "final": false,
          "business": {"application_status": "UNDER_REVIEW", "company_status": "UNDER_REVIEW"},
          "actions": [{"key": "approve", "label": "승인", "to": "approved", "roles": ["ADMIN"]}]
        }
      }
    }
"""

from typing import Any, Dict, List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from . import models as wf_models

WORKFLOW_CODE_PATTERN = r"^[a-z0-9._-]+$"
STATE_KEY_PATTERN = r"^[a-z0-9_]+$"


# =============================================================================
# 1. 정의 구성 (config) 스키마
# =============================================================================
class WorkflowActionConfig(BaseModel):
    key: str = Field(..., min_length=1, max_length=64, pattern=STATE_KEY_PATTERN)
    label: Optional[str] = None
    to: str = Field(..., min_length=1, max_length=64)
    roles: List[str] = Field(default_factory=list, description="허용 역할 ('*' 은 모두 허용, 빈 목록은 역할 제한 없음)")


class WorkflowStateConfig(BaseModel):
    label: Optional[str] = None
    final: bool = False
    business: Dict[str, Any] = Field(default_factory=dict, description="상태에 대응하는 업무 레코드 값")
    actions: List[WorkflowActionConfig] = Field(default_factory=list)


class WorkflowConfig(BaseModel):
    states: Dict[str, WorkflowStateConfig] = Field(default_factory=dict)


# =============================================================================
# 2. 정의 (WorkflowDefinition) 스키마
# =============================================================================
class WorkflowDefinitionUpsert(BaseModel):
    code: str = Field(..., min_length=1, max_length=100, pattern=WORKFLOW_CODE_PATTERN)
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=64)
    states: List[str] = Field(..., min_length=1, description="순서가 있는 상태 목록 (중복 불가)")
    initial_state: str
    config: WorkflowConfig = Field(default_factory=WorkflowConfig)
    is_active: bool = True


class WorkflowDefinitionRead(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    states: List[str]
    initial_state: str
    config: WorkflowConfig
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RetireStateRequest(BaseModel):
    state: str = Field(..., min_length=1, max_length=64)
    successor: str = Field(..., min_length=1, max_length=64)


class RetireStateResult(BaseModel):
    definition: WorkflowDefinitionRead
    migrated_instance_ids: List[int]


# =============================================================================
# 3. 인스턴스 (WorkflowInstance) / 이력 (WorkflowAction) 스키마
# =============================================================================
class WorkflowActionRead(BaseModel):
    id: int
    action_key: str
    from_state: str
    to_state: str
    actor_id: Optional[int] = None
    actor_roles: List[str] = []
    comment: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AvailableAction(BaseModel):
    key: str
    label: Optional[str] = None
    to: str


class WorkflowInstanceRead(BaseModel):
    id: int
    definition_id: int
    definition_code: str
    current_state: str
    status: wf_models.WorkflowInstanceStatus
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    context: Optional[Dict[str, Any]] = None
    created_by_id: Optional[int] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class WorkflowInstanceDetail(WorkflowInstanceRead):
    available_actions: List[AvailableAction] = []
    history: List[WorkflowActionRead] = []


class TransitionRequest(BaseModel):
    action: str = Field(..., min_length=1, max_length=64)
    comment: Optional[str] = Field(None, max_length=1000)
    payload: Optional[Dict[str, Any]] = None
    expected_state: Optional[str] = Field(None, description="현재 상태가 이 값과 다르면 409 로 거부 (동시 처리 방지)")
