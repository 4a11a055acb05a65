"""oauth tables and workflow state guard trigger

Revision ID: 0009_oauth_workflow_guard
Revises: 0008_registration_drop_submitted
Create Date: 2026-01-04 00:00:00

"""
from typing import Sequence, Union

from alembic import op
from sqlmodel import SQLModel

from app.core.database import SCHEMA  # noqa: F401  모든 모델을 metadata 에 등록
from pgsql_scripts import functions as pg_func
from pgsql_scripts import triggers as pg_trg

revision: str = "0009_oauth_workflow_guard"
down_revision: Union[str, None] = "0008_registration_drop_submitted"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OAUTH_TABLES = [
    "oauth.oauth_providers",
    "oauth.oauth_accounts",
    "oauth.oauth_states",
    "oauth.oauth_logs",
]


def upgrade() -> None:
    op.execute("CREATE SCHEMA IF NOT EXISTS oauth")
    tables = [SQLModel.metadata.tables[name] for name in OAUTH_TABLES]
    SQLModel.metadata.create_all(bind=op.get_bind(), tables=tables, checkfirst=True)

    # 정의에 없는 상태로의 INSERT/UPDATE 를 DB 에서 거부합니다.
    for entity in (pg_func.check_workflow_instance_state_func, pg_trg.trg_check_workflow_instance_state):
        for statement in entity.to_sql_statement_create_or_replace():
            op.execute(statement)


def downgrade() -> None:
    op.execute(pg_trg.trg_check_workflow_instance_state.to_sql_statement_drop())
    op.execute(pg_func.check_workflow_instance_state_func.to_sql_statement_drop())
    tables = [SQLModel.metadata.tables[name] for name in OAUTH_TABLES]
    SQLModel.metadata.drop_all(bind=op.get_bind(), tables=tables, checkfirst=True)
