"""database/base.py — SQLAlchemy 선언적 Base 와 공용 컬럼 타입 (순환 임포트 방지용 분리)."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase

# PostgreSQL TIMESTAMP WITH TIME ZONE 편의 별칭
TIMESTAMPTZ = DateTime(timezone=True)

# BIGSERIAL: SQLite 는 INTEGER PRIMARY KEY 만 자동 증가
BIGID = BigInteger().with_variant(Integer, "sqlite")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite 처럼 tzinfo 없이 돌려주는 드라이버 값을 UTC aware 로 맞춥니다."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):
    """모든 ORM 모델의 공통 Base 클래스. datetime 컬럼은 기본 TIMESTAMPTZ."""
    type_annotation_map = {
        datetime: TIMESTAMPTZ,
    }
