"""baseline schema

Revision ID: 0001_baseline
Revises:
Create Date: 2025-11-02 00:00:00

스키마와 기본 테이블을 만듭니다. 이미 존재하는 테이블/타입은 건너뜁니다.
초대 코드(0004)와 OAuth 테이블(0009)은 이후 리비전에서 만듭니다.
"""
from typing import Sequence, Union

from alembic import op
from sqlmodel import SQLModel

from app.core import migration_utils as mu
from app.core.database import SCHEMA
from app.domains.corp.models import CONSENT_ROLE_ENUM_NAME

revision: str = "0001_baseline"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BASELINE_TABLES = [
    "usr.users",
    "shared.attachment_folders",
    "shared.attachment_tags",
    "shared.attachments",
    "shared.attachment_taggings",
    "shared.attachment_share_tokens",
    "cfg.config_namespaces",
    "cfg.config_entries",
    "wf.workflow_definitions",
    "wf.workflow_instances",
    "wf.workflow_actions",
    "corp.companies",
    "corp.company_applications",
    "corp.company_application_consents",
    "corp.company_llc_registrations",
    "corp.company_llc_registration_shareholders",
    "corp.company_llc_registration_officers",
]

# 최초 enum 값. TRANSFEREE_* 는 0005 에서 추가됩니다.
BASELINE_CONSENT_ROLES = [
    "LEGAL_REPRESENTATIVE",
    "SHAREHOLDER_USER",
    "SHAREHOLDER_COMPANY_LEGAL",
    "DIRECTOR",
    "CHAIRPERSON",
    "VICE_CHAIRPERSON",
    "MANAGER",
    "DEPUTY_MANAGER",
    "SUPERVISOR",
    "SUPERVISOR_CHAIRPERSON",
    "FINANCIAL_OFFICER",
]


def upgrade() -> None:
    for schema_name in SCHEMA:
        op.execute(f"CREATE SCHEMA IF NOT EXISTS {schema_name}")

    op.execute(mu.create_enum_if_not_exists(CONSENT_ROLE_ENUM_NAME, BASELINE_CONSENT_ROLES, schema="corp"))

    tables = [SQLModel.metadata.tables[name] for name in BASELINE_TABLES]
    SQLModel.metadata.create_all(bind=op.get_bind(), tables=tables, checkfirst=True)


def downgrade() -> None:
    tables = [SQLModel.metadata.tables[name] for name in BASELINE_TABLES]
    SQLModel.metadata.drop_all(bind=op.get_bind(), tables=tables, checkfirst=True)
    op.execute(f"DROP TYPE IF EXISTS corp.{CONSENT_ROLE_ENUM_NAME}")
