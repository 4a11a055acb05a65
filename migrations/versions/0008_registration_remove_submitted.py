"""company.registration drops the submitted state

Revision ID: 0008_registration_drop_submitted
Revises: 0007_company_admin_division
Create Date: 2026-01-03 12:00:00

등록 워크플로에서 submitted 상태를 제거합니다. 아래 세 단계는 같은 트랜잭션에서 실행되며
하나라도 실패하면 모두 취소됩니다.

1) submitted 인스턴스 -> under_review
2) 해당 인스턴스를 참조하는 신청의 status / current_stage 를 함께 변경
3) 정의의 states / initial_state / config 에서 submitted 제거
"""
import logging
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ARRAY, JSONB

from app.domains.wf.engine import StateMachine

revision: str = "0008_registration_drop_submitted"
down_revision: Union[str, None] = "0007_company_admin_division"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

logger = logging.getLogger("alembic.runtime.migration")

WORKFLOW_CODE = "company.registration"
RETIRED_STATE = "submitted"
SUCCESSOR_STATE = "under_review"


def upgrade() -> None:
    bind = op.get_bind()

    definition = bind.execute(
        sa.text(
            "SELECT id, states, initial_state, config FROM wf.workflow_definitions "
            "WHERE code = :code FOR UPDATE"
        ).columns(
            sa.column("id", sa.Integer),
            sa.column("states", ARRAY(sa.String)),
            sa.column("initial_state", sa.String),
            sa.column("config", JSONB),
        ),
        {"code": WORKFLOW_CODE},
    ).mappings().first()

    moved = bind.execute(
        sa.text(
            "UPDATE wf.workflow_instances SET current_state = :successor, updated_at = now() "
            "WHERE definition_code = :code AND current_state = :retired"
        ),
        {"successor": SUCCESSOR_STATE, "code": WORKFLOW_CODE, "retired": RETIRED_STATE},
    )
    logger.info("Moved %s registration instances to %s", moved.rowcount, SUCCESSOR_STATE)

    bind.execute(
        sa.text(
            """
            UPDATE corp.company_applications AS a
            SET status = 'UNDER_REVIEW', current_stage = :successor, updated_at = now()
            FROM wf.workflow_instances AS i
            WHERE a.workflow_instance_id = i.id
              AND i.definition_code = :code
              AND (a.status = 'SUBMITTED' OR a.current_stage = :retired)
            """
        ),
        {"successor": SUCCESSOR_STATE, "code": WORKFLOW_CODE, "retired": RETIRED_STATE},
    )

    if definition is None or RETIRED_STATE not in (definition["states"] or []):
        return

    machine = StateMachine.from_definition(definition["states"], definition["initial_state"], definition["config"])
    retired = machine.retire_state(RETIRED_STATE, SUCCESSOR_STATE)
    bind.execute(
        sa.text(
            "UPDATE wf.workflow_definitions "
            "SET states = :states, initial_state = :initial_state, config = :config, updated_at = now() "
            "WHERE id = :id"
        ).bindparams(
            sa.bindparam("states", type_=ARRAY(sa.String)),
            sa.bindparam("config", type_=JSONB),
        ),
        {
            "id": definition["id"],
            "states": retired.states,
            "initial_state": retired.initial_state,
            "config": retired.to_config(),
        },
    )


def downgrade() -> None:
    # 제거된 상태는 복원하지 않습니다. 인스턴스는 under_review 에서 계속 진행할 수 있습니다.
    pass
