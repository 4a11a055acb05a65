"""consent roles for equity transfer

Revision ID: 0005_consent_transferee_roles
Revises: 0004_invite_codes
Create Date: 2026-01-02 00:00:00

enum 값은 추가만 합니다. 다운그레이드에서도 값은 제거하지 않습니다.
"""
from typing import Sequence, Union

from alembic import op

from app.core import migration_utils as mu
from app.domains.corp.models import CONSENT_ROLE_ENUM_NAME

revision: str = "0005_consent_transferee_roles"
down_revision: Union[str, None] = "0004_invite_codes"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NEW_VALUES = ["TRANSFEREE_USER", "TRANSFEREE_COMPANY_LEGAL"]


def upgrade() -> None:
    # ALTER TYPE ... ADD VALUE 는 트랜잭션 밖에서 실행합니다.
    with op.get_context().autocommit_block():
        for value in NEW_VALUES:
            op.execute(mu.add_enum_value(CONSENT_ROLE_ENUM_NAME, value, schema="corp"))


def downgrade() -> None:
    pass
