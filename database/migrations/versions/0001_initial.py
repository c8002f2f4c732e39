"""초기 스키마 — 시술·별칭·패키지·후보·병원·가격 스냅샷·이력·알림·설정

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_TS = sa.TIMESTAMP(timezone=True)
_NOW = sa.text("NOW()")


def upgrade() -> None:
    # ── target_areas ──────────────────────────────────────────
    op.create_table(
        "target_areas",
        sa.Column("code",          sa.String(30),  primary_key=True),
        sa.Column("name",          sa.String(100), nullable=False),
        sa.Column("category",      sa.String(30)),
        sa.Column("avg_shots",     sa.Integer()),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
    )

    # ── procedures ────────────────────────────────────────────
    op.create_table(
        "procedures",
        sa.Column("id",                  sa.String(50),  primary_key=True),
        sa.Column("code",                sa.String(50)),
        sa.Column("name",                sa.String(200), nullable=False),
        sa.Column("normalized_name",     sa.String(200), nullable=False),
        sa.Column("official_name",       sa.String(200)),
        sa.Column("category",            sa.String(50)),
        sa.Column("subcategory",         sa.String(50)),
        sa.Column("manufacturer",        sa.String(100)),
        sa.Column("equipment_type",      sa.String(100)),
        sa.Column("is_verified",         sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("verification_source", sa.String(200)),
        sa.Column("is_deprecated",       sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("price_count",         sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_price",           sa.Float()),
        sa.Column("min_price",           sa.BigInteger()),
        sa.Column("max_price",           sa.BigInteger()),
        sa.Column("last_updated",        _TS),
        sa.Column("created_at",          _TS, nullable=False, server_default=_NOW),
    )
    op.create_index("idx_procedures_name",       "procedures", ["name"])
    op.create_index("idx_procedures_normalized", "procedures", ["normalized_name"])

    # ── procedure_aliases ─────────────────────────────────────
    op.create_table(
        "procedure_aliases",
        sa.Column("id",                   sa.String(50),  primary_key=True),
        sa.Column("procedure_id",         sa.String(50),  sa.ForeignKey("procedures.id"), nullable=False),
        sa.Column("alias_name",           sa.String(200), nullable=False),
        sa.Column("normalized_name",      sa.String(200)),
        sa.Column("alias_type",           sa.String(20),  nullable=False, server_default="marketing"),
        sa.Column("confidence",           sa.Integer(),   nullable=False, server_default="100"),
        sa.Column("source",               sa.String(200)),
        sa.Column("source_hospital_id",   sa.String(50)),
        sa.Column("is_verified",          sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("mapping_candidate_id", sa.String(50)),
        sa.Column("created_at",           _TS, nullable=False, server_default=_NOW),
        sa.UniqueConstraint("procedure_id", "alias_name", name="uq_alias_procedure_name"),
        sa.CheckConstraint("confidence BETWEEN 0 AND 100", name="ck_alias_confidence"),
    )
    op.create_index("idx_alias_name",       "procedure_aliases", ["alias_name"])
    op.create_index("idx_alias_normalized", "procedure_aliases", ["normalized_name"])

    # ── procedure_packages / package_components ──────────────
    op.create_table(
        "procedure_packages",
        sa.Column("id",                 sa.String(50),  primary_key=True),
        sa.Column("package_name",       sa.String(200), nullable=False),
        sa.Column("normalized_name",    sa.String(200)),
        sa.Column("package_type",       sa.String(30)),
        sa.Column("description",        sa.Text()),
        sa.Column("is_official",        sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("expected_price_min", sa.BigInteger()),
        sa.Column("expected_price_max", sa.BigInteger()),
        sa.Column("created_at",         _TS, nullable=False, server_default=_NOW),
    )
    op.create_index("idx_package_name",       "procedure_packages", ["package_name"])
    op.create_index("idx_package_normalized", "procedure_packages", ["normalized_name"])

    op.create_table(
        "package_components",
        sa.Column("id",               sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("package_id",       sa.String(50), sa.ForeignKey("procedure_packages.id"), nullable=False),
        sa.Column("procedure_id",     sa.String(50), sa.ForeignKey("procedures.id"), nullable=False),
        sa.Column("quantity",         sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unit",             sa.String(20)),
        sa.Column("unit_amount",      sa.Float()),
        sa.Column("target_area_code", sa.String(30)),
        sa.Column("display_order",    sa.Integer(), nullable=False, server_default="0"),
    )

    # ── mapping_candidates / candidate_price_samples ─────────
    op.create_table(
        "mapping_candidates",
        sa.Column("id",                   sa.String(50),  primary_key=True),
        sa.Column("alias_name",           sa.String(200), nullable=False),
        sa.Column("normalized_name",      sa.String(200), nullable=False, unique=True),
        sa.Column("total_cases",          sa.Integer(), nullable=False, server_default="1"),
        sa.Column("unique_hospitals",     sa.Integer(), nullable=False, server_default="0"),
        sa.Column("first_seen_at",        _TS, nullable=False, server_default=_NOW),
        sa.Column("last_seen_at",         _TS, nullable=False, server_default=_NOW),
        sa.Column("price_avg",            sa.Float()),
        sa.Column("price_min",            sa.BigInteger()),
        sa.Column("price_max",            sa.BigInteger()),
        sa.Column("meets_case_threshold", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("meets_time_threshold", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("status",               sa.String(20), nullable=False, server_default="collecting"),
        sa.Column("approved_alias_id",    sa.String(50)),
        sa.Column("reviewed_by",          sa.String(100)),
        sa.Column("reviewed_at",          _TS),
        sa.Column("rejection_reason",     sa.Text()),
        sa.Column("created_at",           _TS, nullable=False, server_default=_NOW),
        sa.Column("updated_at",           _TS, nullable=False, server_default=_NOW),
        sa.CheckConstraint(
            "status IN ('collecting','pending_review','approved','rejected')",
            name="ck_mapping_candidates_status",
        ),
    )
    op.create_index(
        "idx_candidates_status_cases",
        "mapping_candidates",
        ["status", sa.text("total_cases DESC")],
    )

    op.create_table(
        "candidate_price_samples",
        sa.Column("id",           sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("candidate_id", sa.String(50), sa.ForeignKey("mapping_candidates.id"), nullable=False),
        sa.Column("price",        sa.BigInteger(), nullable=False),
        sa.Column("hospital_id",  sa.String(50)),
        sa.Column("observed_at",  _TS, nullable=False, server_default=_NOW),
    )
    op.create_index("idx_candidate_samples_candidate", "candidate_price_samples", ["candidate_id"])

    op.create_table(
        "collected_procedure_names",
        sa.Column("id",                   sa.String(50),  primary_key=True),
        sa.Column("raw_name",             sa.String(500), nullable=False),
        sa.Column("normalized_name",      sa.String(200), nullable=False),
        sa.Column("mapping_status",       sa.String(20),  nullable=False, server_default="candidate"),
        sa.Column("mapping_candidate_id", sa.String(50)),
        sa.Column("source_url",           sa.Text()),
        sa.Column("source_hospital_id",   sa.String(50)),
        sa.Column("first_seen_at",        _TS, nullable=False, server_default=_NOW),
    )

    # ── hospitals ─────────────────────────────────────────────
    op.create_table(
        "hospitals",
        sa.Column("id",           sa.String(50),  primary_key=True),
        sa.Column("name",         sa.String(200), nullable=False),
        sa.Column("domain",       sa.String(255), unique=True),
        sa.Column("category",     sa.String(50)),
        sa.Column("region",       sa.String(50)),
        sa.Column("address",      sa.Text()),
        sa.Column("is_verified",  sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("total_prices", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_crawled", _TS),
        sa.Column("created_at",   _TS, nullable=False, server_default=_NOW),
    )
    op.create_index("idx_hospitals_name",   "hospitals", ["name"])
    op.create_index("idx_hospitals_region", "hospitals", ["region"])

    # ── price_records ─────────────────────────────────────────
    op.create_table(
        "price_records",
        sa.Column("id",                 sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("hospital_id",        sa.String(50)),
        sa.Column("procedure_id",       sa.String(80), nullable=False),
        sa.Column("target_area_code",   sa.String(30), nullable=False, server_default="UNKNOWN"),
        sa.Column("price",              sa.BigInteger(), nullable=False),
        sa.Column("price_type",         sa.String(20)),
        sa.Column("original_text",      sa.Text()),
        sa.Column("procedure_name_raw", sa.String(500)),
        sa.Column("shot_count",         sa.Integer()),
        sa.Column("volume_cc",          sa.Float()),
        sa.Column("session_count",      sa.Integer()),
        sa.Column("price_per_shot",     sa.BigInteger()),
        sa.Column("price_per_cc",       sa.BigInteger()),
        sa.Column("price_per_session",  sa.BigInteger()),
        sa.Column("source_url",         sa.Text()),
        sa.Column("source_type",        sa.String(20)),
        sa.Column("screenshot_id",      sa.String(100)),
        sa.Column("is_event",           sa.Boolean()),
        sa.Column("event_name",         sa.String(200)),
        sa.Column("event_end_date",     sa.String(20)),
        sa.Column("includes_items",     postgresql.JSONB),
        sa.Column("completeness_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("missing_fields",     postgresql.JSONB),
        sa.Column("collected_at",       _TS, nullable=False, server_default=_NOW),
        sa.Column("updated_at",         _TS, nullable=False, server_default=_NOW),
    )
    op.create_index(
        "idx_price_records_key",
        "price_records",
        ["hospital_id", "procedure_id", "target_area_code"],
    )
    op.create_index(
        "idx_price_records_procedure",
        "price_records",
        ["procedure_id", "target_area_code"],
    )

    # ── price_history ─────────────────────────────────────────
    op.create_table(
        "price_history",
        sa.Column("id",                   sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("hospital_id",          sa.String(50), nullable=False),
        sa.Column("procedure_id",         sa.String(80), nullable=False),
        sa.Column("target_area_code",     sa.String(30), nullable=False, server_default="UNKNOWN"),
        sa.Column("price",                sa.BigInteger(), nullable=False),
        sa.Column("shot_count",           sa.Integer()),
        sa.Column("price_per_shot",       sa.BigInteger()),
        sa.Column("screenshot_id",        sa.String(100)),
        sa.Column("previous_history_id",  sa.BigInteger(), sa.ForeignKey("price_history.id")),
        sa.Column("price_change",         sa.BigInteger()),
        sa.Column("price_change_percent", sa.Integer()),
        sa.Column("recorded_at",          _TS, nullable=False, server_default=_NOW),
    )
    op.create_index(
        "idx_price_history_key",
        "price_history",
        ["hospital_id", "procedure_id", "target_area_code", sa.text("recorded_at DESC")],
    )

    # ── price_change_alerts ───────────────────────────────────
    op.create_table(
        "price_change_alerts",
        sa.Column("id",                              sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("subscriber_hospital_id",          sa.String(50), nullable=False),
        sa.Column("competitor_hospital_id",          sa.String(50), nullable=False),
        sa.Column("procedure_id",                    sa.String(80), nullable=False),
        sa.Column("target_area_code",                sa.String(30), nullable=False, server_default="UNKNOWN"),
        sa.Column("previous_price",                  sa.BigInteger(), nullable=False),
        sa.Column("current_price",                   sa.BigInteger(), nullable=False),
        sa.Column("price_change",                    sa.BigInteger(), nullable=False),
        sa.Column("price_change_percent",            sa.Integer(), nullable=False),
        sa.Column("previous_shot_count",             sa.Integer()),
        sa.Column("current_shot_count",              sa.Integer()),
        sa.Column("previous_price_per_shot",         sa.BigInteger()),
        sa.Column("current_price_per_shot",          sa.BigInteger()),
        sa.Column("previous_screenshot_id",          sa.String(100)),
        sa.Column("current_screenshot_id",           sa.String(100)),
        sa.Column("subscriber_same_procedure_price", sa.BigInteger()),
        sa.Column("price_gap",                       sa.BigInteger()),
        sa.Column("price_gap_percent",               sa.Integer()),
        sa.Column("alert_type",                      sa.String(20), nullable=False),
        sa.Column("severity",                        sa.String(20), nullable=False),
        sa.Column("is_read",                         sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("read_at",                         _TS),
        sa.Column("created_at",                      _TS, nullable=False, server_default=_NOW),
        sa.CheckConstraint("alert_type IN ('price_drop','price_rise')", name="ck_alerts_type"),
        sa.CheckConstraint("severity IN ('warning','urgent')", name="ck_alerts_severity"),
    )
    op.create_index(
        "idx_alerts_subscriber",
        "price_change_alerts",
        ["subscriber_hospital_id", "is_read", sa.text("created_at DESC")],
    )

    # ── 설정 테이블 ───────────────────────────────────────────
    op.create_table(
        "competitor_settings",
        sa.Column("id",              sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("hospital_id",     sa.String(50), nullable=False),
        sa.Column("competitor_ids",  postgresql.JSONB, server_default=sa.text("'[]'::jsonb")),
        sa.Column("auto_detect",     sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("same_region",     sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("same_category",   sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("max_competitors", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("region",          sa.String(50)),
        sa.Column("category",        sa.String(50)),
        sa.Column("created_at",      _TS, nullable=False, server_default=_NOW),
        sa.Column("updated_at",      _TS),
    )
    op.create_index("idx_competitor_settings_hospital", "competitor_settings", ["hospital_id"])
    # competitor_ids @> '["HOSP-001"]' 조회용
    op.execute(
        "CREATE INDEX idx_competitor_ids_gin ON competitor_settings USING GIN (competitor_ids)"
    )

    op.create_table(
        "price_watch_settings",
        sa.Column("id",                  sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("hospital_id",         sa.String(50), nullable=False),
        sa.Column("watch_type",          sa.String(20)),
        sa.Column("target_hospital_id",  sa.String(50)),
        sa.Column("target_procedure_id", sa.String(80)),
        sa.Column("alert_on_drop",       sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("alert_on_rise",       sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("threshold_percent",   sa.Integer(), nullable=False, server_default="10"),
        sa.Column("notify_email",        sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("notify_dashboard",    sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("is_active",           sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at",          _TS, nullable=False, server_default=_NOW),
    )
    op.create_index("idx_price_watch_hospital", "price_watch_settings", ["hospital_id"])

    op.create_table(
        "mapping_approval_settings",
        sa.Column("setting_key",   sa.String(50), primary_key=True),
        sa.Column("setting_value", sa.Integer()),
        sa.Column("description",   sa.Text()),
        sa.Column("updated_at",    _TS, server_default=_NOW),
    )


def downgrade() -> None:
    op.drop_table("mapping_approval_settings")
    op.drop_table("price_watch_settings")
    op.execute("DROP INDEX IF EXISTS idx_competitor_ids_gin")
    op.drop_table("competitor_settings")
    op.drop_table("price_change_alerts")
    op.drop_table("price_history")
    op.drop_table("price_records")
    op.drop_table("hospitals")
    op.drop_table("collected_procedure_names")
    op.drop_table("candidate_price_samples")
    op.drop_table("mapping_candidates")
    op.drop_table("package_components")
    op.drop_table("procedure_packages")
    op.drop_table("procedure_aliases")
    op.drop_table("procedures")
    op.drop_table("target_areas")
