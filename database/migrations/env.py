"""
database/migrations/env.py — Alembic 실행 환경 설정

DB URL 선택:
  1. alembic -x database_url=... (CLI 의 --database-url 과 같은 용도)
  2. core.config 설정 (validate_settings 로 누락 시 즉시 실패)

SQLite 대상이면 ALTER 제약 때문에 batch 모드로 실행합니다.
"""

from __future__ import annotations

import sys
from pathlib import Path
from logging.config import fileConfig

sys.path.insert(0, str(Path(__file__).parents[2]))

from alembic import context
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

from core.config import get_settings, validate_settings

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


# ─────────────────────────────────────────────────────────────
# 대상 DB
# ─────────────────────────────────────────────────────────────

def resolve_database_url() -> str:
    override = context.get_x_argument(as_dictionary=True).get("database_url")
    if override:
        return override.replace("postgres://", "postgresql://", 1)
    validate_settings()
    return get_settings().sqlalchemy_url


database_url = resolve_database_url()
config.set_main_option("sqlalchemy.url", database_url)
is_sqlite = make_url(database_url).get_backend_name() == "sqlite"

from database.base import Base        # noqa: E402
import database.models                # noqa: E402, F401

target_metadata = Base.metadata

common_options = dict(
    target_metadata=target_metadata,
    compare_type=True,
    compare_server_default=True,
    render_as_batch=is_sqlite,
)


# ─────────────────────────────────────────────────────────────
# 실행
# ─────────────────────────────────────────────────────────────

def run_migrations_offline() -> None:
    """SQL 스크립트만 출력 (DB 연결 없음)."""
    context.configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **common_options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **common_options)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
