"""company administrative division fields

Revision ID: 0007_company_admin_division
Revises: 0006_llc_authority_company
Create Date: 2026-01-03 00:00:00

행정구역 id/이름/레벨 컬럼을 추가하고, 이전 버전의 extra.registry 값으로
id/레벨만 채웁니다 (이름은 SQL 로 만들 수 없으므로 비워 둡니다).
"""
from typing import Sequence, Union

from alembic import op

from app.core import migration_utils as mu

revision: str = "0007_company_admin_division"
down_revision: Union[str, None] = "0006_llc_authority_company"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(mu.add_column_if_not_exists("companies", "administrative_division_id", "VARCHAR(64)", schema="corp"))
    op.execute(mu.add_column_if_not_exists("companies", "administrative_division_name", "VARCHAR(120)", schema="corp"))
    op.execute(mu.add_column_if_not_exists("companies", "administrative_division_level", "INTEGER", schema="corp"))
    op.execute(
        mu.create_index_if_not_exists(
            "ix_companies_administrative_division_id", "companies", ["administrative_division_id"], schema="corp"
        )
    )

    op.execute(
        """
        UPDATE corp.companies
        SET
            administrative_division_id = COALESCE(
                administrative_division_id,
                NULLIF(extra->'registry'->>'domicileDivisionId', '')
            ),
            administrative_division_level = COALESCE(
                administrative_division_level,
                CASE
                    WHEN (extra->'registry'->>'administrativeDivisionLevel') ~ '^[1-3]$'
                        THEN (extra->'registry'->>'administrativeDivisionLevel')::int
                    ELSE NULL
                END
            )
        WHERE
            extra IS NOT NULL
            AND jsonb_typeof(extra) = 'object'
            AND extra ? 'registry'
            AND jsonb_typeof(extra->'registry') = 'object'
        """
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS corp.ix_companies_administrative_division_id")
    for column in ("administrative_division_level", "administrative_division_name", "administrative_division_id"):
        op.execute(f"ALTER TABLE corp.companies DROP COLUMN IF EXISTS {column}")
