"""user login fields

Revision ID: 0002_user_login_fields
Revises: 0001_baseline
Create Date: 2025-11-05 00:00:00

"""
from typing import Sequence, Union

from alembic import op

from app.core import migration_utils as mu

revision: str = "0002_user_login_fields"
down_revision: Union[str, None] = "0001_baseline"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(mu.add_column_if_not_exists("users", "name_changed_at", "TIMESTAMP WITH TIME ZONE", schema="usr"))
    op.execute(mu.add_column_if_not_exists("users", "join_date", "TIMESTAMP WITH TIME ZONE DEFAULT now()", schema="usr"))
    op.execute(mu.add_column_if_not_exists("users", "last_login_at", "TIMESTAMP WITH TIME ZONE", schema="usr"))
    op.execute(mu.add_column_if_not_exists("users", "last_login_ip", "VARCHAR(64)", schema="usr"))
    # 기존 사용자의 가입일은 생성일로 채웁니다.
    op.execute("UPDATE usr.users SET join_date = created_at WHERE join_date IS NULL")


def downgrade() -> None:
    for column in ("last_login_ip", "last_login_at", "join_date", "name_changed_at"):
        op.execute(f"ALTER TABLE usr.users DROP COLUMN IF EXISTS {column}")
