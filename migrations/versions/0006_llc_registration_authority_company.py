"""llc registration authority company reference

Revision ID: 0006_llc_authority_company
Revises: 0005_consent_transferee_roles
Create Date: 2026-01-02 12:00:00

표시용 registration_authority_name 은 그대로 두고 회사 참조 컬럼을 추가합니다.
"""
from typing import Sequence, Union

from alembic import op

from app.core import migration_utils as mu

revision: str = "0006_llc_authority_company"
down_revision: Union[str, None] = "0005_consent_transferee_roles"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLE = "company_llc_registrations"
COLUMN = "registration_authority_company_id"
INDEX = "idx_company_llc_reg_authority_company"
FK = "fk_company_llc_reg_authority_company"


def upgrade() -> None:
    op.execute(mu.add_column_if_not_exists(TABLE, COLUMN, "INTEGER", schema="corp"))
    op.execute(mu.create_index_if_not_exists(INDEX, TABLE, [COLUMN], schema="corp"))
    op.execute(mu.add_foreign_key_if_not_exists(FK, TABLE, COLUMN, "companies", schema="corp", on_delete="SET NULL"))


def downgrade() -> None:
    op.execute(mu.drop_constraint_if_exists(FK, TABLE, schema="corp"))
    op.execute(f"DROP INDEX IF EXISTS corp.{INDEX}")
    op.execute(f"ALTER TABLE corp.{TABLE} DROP COLUMN IF EXISTS {COLUMN}")
