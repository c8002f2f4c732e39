"""기준 데이터 — 부위 코드, 후보 승인 조건, 기본 시술·별칭·패키지 카탈로그

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

from database import reference_data as ref

revision: str = "0002"
down_revision: Union[str, None] = "0001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    target_areas = sa.table(
        "target_areas",
        sa.column("code", sa.String),
        sa.column("name", sa.String),
        sa.column("category", sa.String),
        sa.column("avg_shots", sa.Integer),
        sa.column("display_order", sa.Integer),
    )
    approval = sa.table(
        "mapping_approval_settings",
        sa.column("setting_key", sa.String),
        sa.column("setting_value", sa.Integer),
        sa.column("description", sa.Text),
    )
    procedures = sa.table(
        "procedures",
        sa.column("id", sa.String),
        sa.column("code", sa.String),
        sa.column("name", sa.String),
        sa.column("normalized_name", sa.String),
        sa.column("category", sa.String),
        sa.column("subcategory", sa.String),
        sa.column("is_verified", sa.Boolean),
    )
    aliases = sa.table(
        "procedure_aliases",
        sa.column("id", sa.String),
        sa.column("procedure_id", sa.String),
        sa.column("alias_name", sa.String),
        sa.column("normalized_name", sa.String),
        sa.column("alias_type", sa.String),
        sa.column("confidence", sa.Integer),
        sa.column("is_verified", sa.Boolean),
    )
    packages = sa.table(
        "procedure_packages",
        sa.column("id", sa.String),
        sa.column("package_name", sa.String),
        sa.column("normalized_name", sa.String),
        sa.column("package_type", sa.String),
        sa.column("description", sa.Text),
        sa.column("is_official", sa.Boolean),
    )

    op.bulk_insert(target_areas, ref.target_area_rows())
    op.bulk_insert(approval,     ref.approval_setting_rows())
    op.bulk_insert(procedures,   ref.procedure_rows())
    op.bulk_insert(aliases,      ref.alias_rows())
    op.bulk_insert(packages,     ref.package_rows())


def downgrade() -> None:
    alias_ids     = [row[0] for row in ref.ALIASES]
    procedure_ids = [row[0] for row in ref.PROCEDURES]
    package_ids   = [row[0] for row in ref.PACKAGES]

    conn = op.get_bind()
    conn.execute(sa.text("DELETE FROM procedure_aliases WHERE id = ANY(:ids)"), {"ids": alias_ids})
    conn.execute(sa.text("DELETE FROM procedure_packages WHERE id = ANY(:ids)"), {"ids": package_ids})
    conn.execute(sa.text("DELETE FROM procedures WHERE id = ANY(:ids)"), {"ids": procedure_ids})
    op.execute("DELETE FROM mapping_approval_settings")
    op.execute("DELETE FROM target_areas")
