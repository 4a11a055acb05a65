"""invite codes

Revision ID: 0004_invite_codes
Revises: 0003_attachment_snapshot_guard
Create Date: 2025-12-27 00:00:00

"""
from typing import Sequence, Union

from alembic import op
from sqlmodel import SQLModel

from app.core import migration_utils as mu
from app.core.database import SCHEMA  # noqa: F401  모든 모델을 metadata 에 등록

revision: str = "0004_invite_codes"
down_revision: Union[str, None] = "0003_attachment_snapshot_guard"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    invite_codes = SQLModel.metadata.tables["usr.invite_codes"]
    invite_codes.create(bind=op.get_bind(), checkfirst=True)
    op.execute(mu.create_index_if_not_exists("ix_invite_codes_used_by_id", "invite_codes", ["used_by_id"], schema="usr"))


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS usr.invite_codes")
