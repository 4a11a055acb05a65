"""attachment uploader snapshot guard

Revision ID: 0003_attachment_snapshot_guard
Revises: 0002_user_login_fields
Create Date: 2025-11-14 00:00:00

업로더 이름/이메일 스냅샷 컬럼을 추가하고 기존 데이터를 채웁니다.
업로더 사용자가 삭제되면 owner_id 만 NULL 이 되고 스냅샷은 남습니다.
"""
from typing import Sequence, Union

from alembic import op

from app.core import migration_utils as mu
from pgsql_scripts import functions as pg_func
from pgsql_scripts import triggers as pg_trg

revision: str = "0003_attachment_snapshot_guard"
down_revision: Union[str, None] = "0002_user_login_fields"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OWNER_FK = "attachments_owner_id_fkey"


def upgrade() -> None:
    op.execute(mu.add_column_if_not_exists("attachments", "uploader_name_snapshot", "VARCHAR(255)", schema="shared"))
    op.execute(mu.add_column_if_not_exists("attachments", "uploader_email_snapshot", "VARCHAR(255)", schema="shared"))

    op.execute(
        """
        UPDATE shared.attachments AS a
        SET
            uploader_name_snapshot = COALESCE(a.uploader_name_snapshot, u.name, u.email),
            uploader_email_snapshot = COALESCE(a.uploader_email_snapshot, u.email)
        FROM usr.users AS u
        WHERE a.owner_id = u.id
        """
    )

    op.execute(mu.drop_constraint_if_exists(OWNER_FK, "attachments", schema="shared"))
    op.execute("ALTER TABLE shared.attachments ALTER COLUMN owner_id DROP NOT NULL")
    op.execute(
        mu.add_foreign_key_if_not_exists(
            OWNER_FK, "attachments", "owner_id", "users", schema="shared", ref_schema="usr", on_delete="SET NULL"
        )
    )

    for entity in (pg_func.fill_attachment_uploader_snapshot_func, pg_trg.trg_fill_attachment_uploader_snapshot):
        for statement in entity.to_sql_statement_create_or_replace():
            op.execute(statement)


def downgrade() -> None:
    op.execute(pg_trg.trg_fill_attachment_uploader_snapshot.to_sql_statement_drop())
    op.execute(pg_func.fill_attachment_uploader_snapshot_func.to_sql_statement_drop())
    # 스냅샷 컬럼과 nullable owner_id 는 데이터 보존을 위해 그대로 둡니다.
