# app/domains/wf/models.py

"""
'wf' 도메인 (PostgreSQL 'wf' 스키마)의 데이터베이스 ORM 모델을 정의하는 모듈입니다.

- workflow_definitions: 코드별 워크플로 정의 (상태 목록, 초기 상태, 상태별 액션 config)
- workflow_instances: 정의에 따라 진행 중인 개별 흐름 (업무 레코드와 target_type/target_id 로 연결)
- workflow_actions: 인스턴스 전이 이력
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, UTC
from enum import Enum

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.sql import func
from sqlalchemy.types import TIMESTAMP
from sqlmodel import Field, SQLModel, Column


class WorkflowInstanceStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


# =============================================================================
# 1. wf.workflow_definitions 테이블 모델
# =============================================================================
class WorkflowDefinition(SQLModel, table=True):
    __tablename__ = "workflow_definitions"
    __table_args__ = {'schema': 'wf'}

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(max_length=100, sa_column_kwargs={"unique": True}, description="정의 코드 (예: company.registration)")
    name: str = Field(max_length=120)
    description: Optional[str] = Field(default=None, max_length=255)
    category: Optional[str] = Field(default=None, max_length=64)
    states: List[str] = Field(sa_column=Column(ARRAY(String(64)), nullable=False), description="순서가 있는 상태 목록")
    initial_state: str = Field(max_length=64)
    config: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSONB, nullable=False, server_default="{}"))
    is_active: bool = Field(default=True)
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 2. wf.workflow_instances 테이블 모델
# =============================================================================
class WorkflowInstance(SQLModel, table=True):
    __tablename__ = "workflow_instances"
    __table_args__ = {'schema': 'wf'}

    id: Optional[int] = Field(default=None, primary_key=True)
    definition_id: int = Field(
        sa_column=Column(ForeignKey("wf.workflow_definitions.id", ondelete="RESTRICT"), nullable=False, index=True)
    )
    definition_code: str = Field(max_length=100, index=True)
    current_state: str = Field(max_length=64, index=True)
    status: WorkflowInstanceStatus = Field(
        default=WorkflowInstanceStatus.ACTIVE, sa_column=Column(String(20), nullable=False, server_default="ACTIVE")
    )
    target_type: Optional[str] = Field(default=None, max_length=64, description="연결된 업무 레코드 종류")
    target_id: Optional[int] = Field(default=None, description="연결된 업무 레코드 ID")
    context: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONB))
    created_by_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL"))
    )
    completed_at: Optional[datetime] = Field(default=None, sa_column=Column(TIMESTAMP(timezone=True)))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
    updated_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()),
        description="레코드 마지막 업데이트 일시"
    )


# =============================================================================
# 3. wf.workflow_actions 테이블 모델 (전이 이력)
# =============================================================================
class WorkflowAction(SQLModel, table=True):
    __tablename__ = "workflow_actions"
    __table_args__ = {'schema': 'wf'}

    id: Optional[int] = Field(default=None, primary_key=True)
    instance_id: int = Field(
        sa_column=Column(ForeignKey("wf.workflow_instances.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    action_key: str = Field(max_length=64)
    from_state: str = Field(max_length=64)
    to_state: str = Field(max_length=64)
    actor_id: Optional[int] = Field(
        default=None, sa_column=Column(ForeignKey("usr.users.id", ondelete="SET NULL"))
    )
    actor_roles: List[str] = Field(default_factory=list, sa_column=Column(JSONB, nullable=False, server_default="[]"))
    comment: Optional[str] = Field(default=None)
    payload: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSONB))
    created_at: Optional[datetime] = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_column=Column(TIMESTAMP(timezone=True), server_default=func.now()),
        description="레코드 생성 일시"
    )
