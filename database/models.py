"""
database/models.py — SQLAlchemy ORM 모델

테이블:
    target_areas               — 시술 부위 표준 코드 (FACE_FULL, EYE, … UNKNOWN)
    procedures                 — 표준 시술 마스터 + 가격 통계
    procedure_aliases          — 마케팅 명칭/오타/은어 → 표준 시술 (신뢰도 0–100)
    procedure_packages         — 복합 시술 (패키지)
    package_components         — 패키지 구성 시술
    mapping_candidates         — 미매핑 시술명 후보 (collecting → pending_review → approved/rejected)
    candidate_price_samples    — 후보별 가격 샘플 (append-only)
    collected_procedure_names  — 원문 시술명 수집 감사 로그 (write-once)
    hospitals                  — 병원 마스터 (도메인 UNIQUE)
    price_records              — (병원, 시술, 부위) 최신 가격 스냅샷
    price_history              — 가격 이력 원장 (append-only, 직전 행 링크)
    price_change_alerts        — 구독 병원별 가격 변동 알림
    competitor_settings        — 구독 병원의 경쟁사 목록 / 자동 탐지
    price_watch_settings       — 구독 병원의 알림 조건
    mapping_approval_settings  — 후보 승인 조건 (min_cases, min_days, …)

설계 원칙:
    - 외부로 노출되는 ID 는 문자열 PK (PROC-…, HOSP-…, MC-…)
    - append-only 원장(price_history, 알림, 샘플)은 정수 대리키
    - price_records / price_history / price_change_alerts 의 procedure_id 는
      PKG-… / UNMAPPED-… 참조도 담기 때문에 procedures FK 를 걸지 않음
    - JSONB: competitor_ids, missing_fields, includes_items
      (SQLite 테스트에서는 JSON 으로 컴파일)

Alembic autogenerate 기준 파일 — 여기서 모델 변경 → alembic revision --autogenerate
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database.base import BIGID, TIMESTAMPTZ, Base, as_utc, utcnow  # noqa: F401


# ═════════════════════════════════════════════════════════════
# Python Enum 정의
# ═════════════════════════════════════════════════════════════

class CandidateStatus(str, enum.Enum):
    """매핑 후보 상태 — mapping_candidates.status"""
    COLLECTING     = "collecting"      # 사례 누적 중
    PENDING_REVIEW = "pending_review"  # 조건 충족, 관리자 검토 대기
    APPROVED       = "approved"        # 별칭으로 승인됨 (관리자)
    REJECTED       = "rejected"        # 반려 (관리자)


class AlertType(str, enum.Enum):
    """가격 변동 방향 — price_change_alerts.alert_type"""
    PRICE_DROP = "price_drop"
    PRICE_RISE = "price_rise"


class AlertSeverity(str, enum.Enum):
    """알림 심각도 — price_change_alerts.severity"""
    WARNING = "warning"  # |변동률| 10% 이상
    URGENT  = "urgent"   # |변동률| 20% 이상


class MappingStatus(str, enum.Enum):
    """수집 시술명 매핑 상태 — collected_procedure_names.mapping_status"""
    MAPPED    = "mapped"
    CANDIDATE = "candidate"


# ═════════════════════════════════════════════════════════════
# TargetArea
# ═════════════════════════════════════════════════════════════

class TargetArea(Base):
    """시술 부위 표준 코드. 부위 미상은 UNKNOWN."""
    __tablename__ = "target_areas"

    code:          Mapped[str]           = mapped_column(String(30),  primary_key=True)
    name:          Mapped[str]           = mapped_column(String(100), nullable=False)
    category:      Mapped[Optional[str]] = mapped_column(String(30))
    avg_shots:     Mapped[Optional[int]] = mapped_column(Integer)
    display_order: Mapped[int]           = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<TargetArea code={self.code!r} name={self.name!r}>"


# ═════════════════════════════════════════════════════════════
# Procedure / Alias / Package
# ═════════════════════════════════════════════════════════════

class Procedure(Base):
    """
    표준 시술 마스터.

    삭제하지 않고 is_deprecated 로 폐기 처리합니다.
    price_count / avg_price / min_price / max_price 는 price_records 집계로 갱신됩니다.
    """
    __tablename__ = "procedures"

    id:                  Mapped[str]                = mapped_column(String(50),  primary_key=True)
    code:                Mapped[Optional[str]]      = mapped_column(String(50))
    name:                Mapped[str]                = mapped_column(String(200), nullable=False)
    normalized_name:     Mapped[str]                = mapped_column(String(200), nullable=False)
    official_name:       Mapped[Optional[str]]      = mapped_column(String(200))
    category:            Mapped[Optional[str]]      = mapped_column(String(50))
    subcategory:         Mapped[Optional[str]]      = mapped_column(String(50))
    manufacturer:        Mapped[Optional[str]]      = mapped_column(String(100))
    equipment_type:      Mapped[Optional[str]]      = mapped_column(String(100))
    is_verified:         Mapped[bool]               = mapped_column(Boolean, nullable=False, default=False)
    verification_source: Mapped[Optional[str]]      = mapped_column(String(200))
    is_deprecated:       Mapped[bool]               = mapped_column(Boolean, nullable=False, default=False)

    # ── 가격 통계 ─────────────────────────────────────────────
    price_count:  Mapped[int]                = mapped_column(Integer, nullable=False, default=0)
    avg_price:    Mapped[Optional[float]]    = mapped_column(Float)
    min_price:    Mapped[Optional[int]]      = mapped_column(BigInteger)
    max_price:    Mapped[Optional[int]]      = mapped_column(BigInteger)
    last_updated: Mapped[Optional[datetime]] = mapped_column(TIMESTAMPTZ)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow, server_default=func.now())

    aliases: Mapped[list["ProcedureAlias"]] = relationship(back_populates="procedure")

    __table_args__ = (
        Index("idx_procedures_name", "name"),
        Index("idx_procedures_normalized", "normalized_name"),
    )

    def __repr__(self) -> str:
        return f"<Procedure id={self.id!r} name={self.name!r}>"


class ProcedureAlias(Base):
    """
    별칭 → 표준 시술.

    confidence 80 미만 별칭은 매칭에 쓰이지 않습니다.
    관리자 승인으로 생성된 별칭은 mapping_candidate_id 로 원본 후보를 추적합니다.
    """
    __tablename__ = "procedure_aliases"

    id:                   Mapped[str]           = mapped_column(String(50),  primary_key=True)
    procedure_id:         Mapped[str]           = mapped_column(String(50),  ForeignKey("procedures.id"), nullable=False)
    alias_name:           Mapped[str]           = mapped_column(String(200), nullable=False)
    normalized_name:      Mapped[Optional[str]] = mapped_column(String(200))
    alias_type:           Mapped[str]           = mapped_column(String(20),  nullable=False, default="marketing")
    confidence:           Mapped[int]           = mapped_column(Integer,     nullable=False, default=100)
    source:               Mapped[Optional[str]] = mapped_column(String(200))
    source_hospital_id:   Mapped[Optional[str]] = mapped_column(String(50))
    is_verified:          Mapped[bool]          = mapped_column(Boolean, nullable=False, default=True)
    mapping_candidate_id: Mapped[Optional[str]] = mapped_column(String(50))
    created_at:           Mapped[datetime]      = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow, server_default=func.now())

    procedure: Mapped["Procedure"] = relationship(back_populates="aliases")

    __table_args__ = (
        UniqueConstraint("procedure_id", "alias_name", name="uq_alias_procedure_name"),
        CheckConstraint("confidence BETWEEN 0 AND 100", name="ck_alias_confidence"),
        Index("idx_alias_name", "alias_name"),
        Index("idx_alias_normalized", "normalized_name"),
    )

    def __repr__(self) -> str:
        return f"<ProcedureAlias {self.alias_name!r} → {self.procedure_id!r} ({self.confidence})>"


class ProcedurePackage(Base):
    """복합 시술. 외부에는 PKG-<id> 로 노출됩니다."""
    __tablename__ = "procedure_packages"

    id:                  Mapped[str]           = mapped_column(String(50),  primary_key=True)
    package_name:        Mapped[str]           = mapped_column(String(200), nullable=False)
    normalized_name:     Mapped[Optional[str]] = mapped_column(String(200))
    package_type:        Mapped[Optional[str]] = mapped_column(String(30))
    description:         Mapped[Optional[str]] = mapped_column(Text)
    is_official:         Mapped[bool]          = mapped_column(Boolean, nullable=False, default=False)
    expected_price_min:  Mapped[Optional[int]] = mapped_column(BigInteger)
    expected_price_max:  Mapped[Optional[int]] = mapped_column(BigInteger)
    created_at:          Mapped[datetime]      = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow, server_default=func.now())

    components: Mapped[list["PackageComponent"]] = relationship(
        back_populates="package", order_by="PackageComponent.display_order"
    )

    __table_args__ = (
        Index("idx_package_name", "package_name"),
        Index("idx_package_normalized", "normalized_name"),
    )

    def __repr__(self) -> str:
        return f"<ProcedurePackage id={self.id!r} name={self.package_name!r}>"


class PackageComponent(Base):
    """패키지 구성 시술 (수량·단위·부위)."""
    __tablename__ = "package_components"

    id:               Mapped[int]             = mapped_column(BIGID, primary_key=True, autoincrement=True)
    package_id:       Mapped[str]             = mapped_column(String(50), ForeignKey("procedure_packages.id"), nullable=False)
    procedure_id:     Mapped[str]             = mapped_column(String(50), ForeignKey("procedures.id"), nullable=False)
    quantity:         Mapped[int]             = mapped_column(Integer, nullable=False, default=1)
    unit:             Mapped[Optional[str]]   = mapped_column(String(20))
    unit_amount:      Mapped[Optional[float]] = mapped_column(Float)
    target_area_code: Mapped[Optional[str]]   = mapped_column(String(30))
    display_order:    Mapped[int]             = mapped_column(Integer, nullable=False, default=0)

    package: Mapped["ProcedurePackage"] = relationship(back_populates="components")


# ═════════════════════════════════════════════════════════════
# MappingCandidate
# ═════════════════════════════════════════════════════════════

class MappingCandidate(Base):
    """
    미매핑 시술명 후보.

    정규화 이름당 1행 (normalized_name UNIQUE). 상태는 앞으로만 진행합니다:
        collecting ──(조건 2개 이상 충족)──► pending_review ──(관리자)──► approved / rejected

    가격 통계(price_avg/min/max)와 unique_hospitals 는 candidate_price_samples 집계값입니다.
    """
    __tablename__ = "mapping_candidates"

    id:                   Mapped[str]                = mapped_column(String(50),  primary_key=True)
    alias_name:           Mapped[str]                = mapped_column(String(200), nullable=False)
    normalized_name:      Mapped[str]                = mapped_column(String(200), nullable=False, unique=True)
    total_cases:          Mapped[int]                = mapped_column(Integer, nullable=False, default=1)
    unique_hospitals:     Mapped[int]                = mapped_column(Integer, nullable=False, default=0)
    first_seen_at:        Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)
    last_seen_at:         Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)
    price_avg:            Mapped[Optional[float]]    = mapped_column(Float)
    price_min:            Mapped[Optional[int]]      = mapped_column(BigInteger)
    price_max:            Mapped[Optional[int]]      = mapped_column(BigInteger)
    meets_case_threshold: Mapped[bool]               = mapped_column(Boolean, nullable=False, default=False)
    meets_time_threshold: Mapped[bool]               = mapped_column(Boolean, nullable=False, default=False)
    status:               Mapped[str]                = mapped_column(String(20), nullable=False, default=CandidateStatus.COLLECTING.value)
    approved_alias_id:    Mapped[Optional[str]]      = mapped_column(String(50))
    reviewed_by:          Mapped[Optional[str]]      = mapped_column(String(100))
    reviewed_at:          Mapped[Optional[datetime]] = mapped_column(TIMESTAMPTZ)
    rejection_reason:     Mapped[Optional[str]]      = mapped_column(Text)
    created_at:           Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow, server_default=func.now())
    updated_at:           Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow, onupdate=utcnow)

    samples: Mapped[list["CandidatePriceSample"]] = relationship(
        back_populates="candidate", order_by="CandidatePriceSample.id"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('collecting','pending_review','approved','rejected')",
            name="ck_mapping_candidates_status",
        ),
        Index("idx_candidates_status_cases", "status", "total_cases"),
    )

    def __repr__(self) -> str:
        return (
            f"<MappingCandidate id={self.id!r} name={self.alias_name!r} "
            f"cases={self.total_cases} status={self.status!r}>"
        )


class CandidatePriceSample(Base):
    """후보에 누적된 가격 샘플 1건."""
    __tablename__ = "candidate_price_samples"

    id:           Mapped[int]           = mapped_column(BIGID, primary_key=True, autoincrement=True)
    candidate_id: Mapped[str]           = mapped_column(String(50), ForeignKey("mapping_candidates.id"), nullable=False)
    price:        Mapped[int]           = mapped_column(BigInteger, nullable=False)
    hospital_id:  Mapped[Optional[str]] = mapped_column(String(50))
    observed_at:  Mapped[datetime]      = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)

    candidate: Mapped["MappingCandidate"] = relationship(back_populates="samples")

    __table_args__ = (
        Index("idx_candidate_samples_candidate", "candidate_id"),
    )


class CollectedProcedureName(Base):
    """원문 시술명 감사 로그. 처음 후보가 생길 때 1회 기록합니다."""
    __tablename__ = "collected_procedure_names"

    id:                   Mapped[str]           = mapped_column(String(50),  primary_key=True)
    raw_name:             Mapped[str]           = mapped_column(String(500), nullable=False)
    normalized_name:      Mapped[str]           = mapped_column(String(200), nullable=False)
    mapping_status:       Mapped[str]           = mapped_column(String(20),  nullable=False, default=MappingStatus.CANDIDATE.value)
    mapping_candidate_id: Mapped[Optional[str]] = mapped_column(String(50))
    source_url:           Mapped[Optional[str]] = mapped_column(Text)
    source_hospital_id:   Mapped[Optional[str]] = mapped_column(String(50))
    first_seen_at:        Mapped[datetime]      = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)


# ═════════════════════════════════════════════════════════════
# Hospital
# ═════════════════════════════════════════════════════════════

class Hospital(Base):
    """병원 마스터. 자동 생성된 병원은 is_verified=False, 병합은 하지 않습니다."""
    __tablename__ = "hospitals"

    id:           Mapped[str]                = mapped_column(String(50),  primary_key=True)
    name:         Mapped[str]                = mapped_column(String(200), nullable=False)
    domain:       Mapped[Optional[str]]      = mapped_column(String(255), unique=True)
    category:     Mapped[Optional[str]]      = mapped_column(String(50))
    region:       Mapped[Optional[str]]      = mapped_column(String(50))
    address:      Mapped[Optional[str]]      = mapped_column(Text)
    is_verified:  Mapped[bool]               = mapped_column(Boolean, nullable=False, default=False)
    total_prices: Mapped[int]                = mapped_column(Integer, nullable=False, default=0)
    last_crawled: Mapped[Optional[datetime]] = mapped_column(TIMESTAMPTZ)
    created_at:   Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("idx_hospitals_name", "name"),
        Index("idx_hospitals_region", "region"),
    )

    def __repr__(self) -> str:
        return f"<Hospital id={self.id!r} name={self.name!r} domain={self.domain!r}>"


# ═════════════════════════════════════════════════════════════
# PriceRecord / PriceHistory
# ═════════════════════════════════════════════════════════════

class PriceRecord(Base):
    """
    (병원, 시술, 부위) 최신 가격 스냅샷.

    같은 키로 다시 등록되면 덮어씁니다. 변화 추적은 price_history 가 담당합니다.
    병원을 식별하지 못한 가격은 키 없이 매번 새 행으로 저장됩니다.
    """
    __tablename__ = "price_records"

    id:                 Mapped[int]                = mapped_column(BIGID, primary_key=True, autoincrement=True)
    hospital_id:        Mapped[Optional[str]]      = mapped_column(String(50))
    procedure_id:       Mapped[str]                = mapped_column(String(80), nullable=False)
    target_area_code:   Mapped[str]                = mapped_column(String(30), nullable=False, default="UNKNOWN")

    price:              Mapped[int]                = mapped_column(BigInteger, nullable=False)
    price_type:         Mapped[Optional[str]]      = mapped_column(String(20))
    original_text:      Mapped[Optional[str]]      = mapped_column(Text)
    procedure_name_raw: Mapped[Optional[str]]      = mapped_column(String(500))

    # ── 단위 가격 ─────────────────────────────────────────────
    shot_count:         Mapped[Optional[int]]      = mapped_column(Integer)
    volume_cc:          Mapped[Optional[float]]    = mapped_column(Float)
    session_count:      Mapped[Optional[int]]      = mapped_column(Integer)
    price_per_shot:     Mapped[Optional[int]]      = mapped_column(BigInteger)
    price_per_cc:       Mapped[Optional[int]]      = mapped_column(BigInteger)
    price_per_session:  Mapped[Optional[int]]      = mapped_column(BigInteger)

    # ── 출처 / 이벤트 ─────────────────────────────────────────
    source_url:         Mapped[Optional[str]]      = mapped_column(Text)
    source_type:        Mapped[Optional[str]]      = mapped_column(String(20))
    screenshot_id:      Mapped[Optional[str]]      = mapped_column(String(100))
    is_event:           Mapped[Optional[bool]]     = mapped_column(Boolean)
    event_name:         Mapped[Optional[str]]      = mapped_column(String(200))
    event_end_date:     Mapped[Optional[str]]      = mapped_column(String(20))
    includes_items:     Mapped[Optional[list]]     = mapped_column(JSONB)

    # ── 품질 ──────────────────────────────────────────────────
    completeness_score: Mapped[int]                = mapped_column(Integer, nullable=False, default=0)
    missing_fields:     Mapped[Optional[list]]     = mapped_column(JSONB)

    collected_at:       Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)
    updated_at:         Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_price_records_key", "hospital_id", "procedure_id", "target_area_code"),
        Index("idx_price_records_procedure", "procedure_id", "target_area_code"),
    )

    def __repr__(self) -> str:
        return (
            f"<PriceRecord id={self.id} hospital={self.hospital_id!r} "
            f"procedure={self.procedure_id!r} price={self.price}>"
        )


class PriceHistory(Base):
    """
    가격 이력 원장 (append-only).

    (병원, 시술, 부위) 키별로 previous_history_id 가 직전 행을 가리키는 단일 연결 리스트입니다.
    첫 관측 행의 price_change / price_change_percent 는 NULL.
    """
    __tablename__ = "price_history"

    id:                   Mapped[int]             = mapped_column(BIGID, primary_key=True, autoincrement=True)
    hospital_id:          Mapped[str]             = mapped_column(String(50), nullable=False)
    procedure_id:         Mapped[str]             = mapped_column(String(80), nullable=False)
    target_area_code:     Mapped[str]             = mapped_column(String(30), nullable=False, default="UNKNOWN")
    price:                Mapped[int]             = mapped_column(BigInteger, nullable=False)
    shot_count:           Mapped[Optional[int]]   = mapped_column(Integer)
    price_per_shot:       Mapped[Optional[int]]   = mapped_column(BigInteger)
    screenshot_id:        Mapped[Optional[str]]   = mapped_column(String(100))
    previous_history_id:  Mapped[Optional[int]]   = mapped_column(BIGID, ForeignKey("price_history.id"))
    price_change:         Mapped[Optional[int]]   = mapped_column(BigInteger)
    price_change_percent: Mapped[Optional[int]]   = mapped_column(Integer)
    recorded_at:          Mapped[datetime]        = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_price_history_key", "hospital_id", "procedure_id", "target_area_code", "recorded_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PriceHistory id={self.id} {self.hospital_id!r}/{self.procedure_id!r} "
            f"price={self.price} change%={self.price_change_percent}>"
        )


# ═════════════════════════════════════════════════════════════
# PriceChangeAlert
# ═════════════════════════════════════════════════════════════

class PriceChangeAlert(Base):
    """구독 병원 1곳에 대한 경쟁 병원 가격 변동 알림."""
    __tablename__ = "price_change_alerts"

    id:                              Mapped[int]                = mapped_column(BIGID, primary_key=True, autoincrement=True)
    subscriber_hospital_id:          Mapped[str]                = mapped_column(String(50), nullable=False)
    competitor_hospital_id:          Mapped[str]                = mapped_column(String(50), nullable=False)
    procedure_id:                    Mapped[str]                = mapped_column(String(80), nullable=False)
    target_area_code:                Mapped[str]                = mapped_column(String(30), nullable=False, default="UNKNOWN")

    previous_price:                  Mapped[int]                = mapped_column(BigInteger, nullable=False)
    current_price:                   Mapped[int]                = mapped_column(BigInteger, nullable=False)
    price_change:                    Mapped[int]                = mapped_column(BigInteger, nullable=False)
    price_change_percent:            Mapped[int]                = mapped_column(Integer, nullable=False)

    previous_shot_count:             Mapped[Optional[int]]      = mapped_column(Integer)
    current_shot_count:              Mapped[Optional[int]]      = mapped_column(Integer)
    previous_price_per_shot:         Mapped[Optional[int]]      = mapped_column(BigInteger)
    current_price_per_shot:          Mapped[Optional[int]]      = mapped_column(BigInteger)
    previous_screenshot_id:          Mapped[Optional[str]]      = mapped_column(String(100))
    current_screenshot_id:           Mapped[Optional[str]]      = mapped_column(String(100))

    # ── 구독 병원 자기 가격 대비 ───────────────────────────────
    subscriber_same_procedure_price: Mapped[Optional[int]]      = mapped_column(BigInteger)
    price_gap:                       Mapped[Optional[int]]      = mapped_column(BigInteger)
    price_gap_percent:               Mapped[Optional[int]]      = mapped_column(Integer)

    alert_type:                      Mapped[str]                = mapped_column(String(20), nullable=False)
    severity:                        Mapped[str]                = mapped_column(String(20), nullable=False)
    is_read:                         Mapped[bool]               = mapped_column(Boolean, nullable=False, default=False)
    read_at:                         Mapped[Optional[datetime]] = mapped_column(TIMESTAMPTZ)
    created_at:                      Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("alert_type IN ('price_drop','price_rise')", name="ck_alerts_type"),
        CheckConstraint("severity IN ('warning','urgent')", name="ck_alerts_severity"),
        Index("idx_alerts_subscriber", "subscriber_hospital_id", "is_read", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<PriceChangeAlert id={self.id} to={self.subscriber_hospital_id!r} "
            f"from={self.competitor_hospital_id!r} {self.alert_type}/{self.severity}>"
        )


# ═════════════════════════════════════════════════════════════
# 설정 테이블 (관리자 API 가 기록, 코어는 읽기만)
# ═════════════════════════════════════════════════════════════

class CompetitorSettings(Base):
    """
    구독 병원의 경쟁사 설정.

    competitor_ids (JSONB) 예시: ["HOSP-001", "HOSP-002"]
    auto_detect=True 이면 모든 병원의 가격 변동을 구독합니다.
    """
    __tablename__ = "competitor_settings"

    id:              Mapped[int]                = mapped_column(BIGID, primary_key=True, autoincrement=True)
    hospital_id:     Mapped[str]                = mapped_column(String(50), nullable=False)
    competitor_ids:  Mapped[Optional[list]]     = mapped_column(JSONB, default=list)
    auto_detect:     Mapped[bool]               = mapped_column(Boolean, nullable=False, default=False)
    same_region:     Mapped[bool]               = mapped_column(Boolean, nullable=False, default=True)
    same_category:   Mapped[bool]               = mapped_column(Boolean, nullable=False, default=True)
    max_competitors: Mapped[int]                = mapped_column(Integer, nullable=False, default=10)
    region:          Mapped[Optional[str]]      = mapped_column(String(50))
    category:        Mapped[Optional[str]]      = mapped_column(String(50))
    created_at:      Mapped[datetime]           = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)
    updated_at:      Mapped[Optional[datetime]] = mapped_column(TIMESTAMPTZ, onupdate=utcnow)

    __table_args__ = (
        Index("idx_competitor_settings_hospital", "hospital_id"),
    )


class PriceWatchSettings(Base):
    """구독 병원의 알림 조건. 팬아웃 시 조인해서 읽지만 대상 필터로는 쓰지 않습니다."""
    __tablename__ = "price_watch_settings"

    id:                  Mapped[int]           = mapped_column(BIGID, primary_key=True, autoincrement=True)
    hospital_id:         Mapped[str]           = mapped_column(String(50), nullable=False)
    watch_type:          Mapped[Optional[str]] = mapped_column(String(20))
    target_hospital_id:  Mapped[Optional[str]] = mapped_column(String(50))
    target_procedure_id: Mapped[Optional[str]] = mapped_column(String(80))
    alert_on_drop:       Mapped[bool]          = mapped_column(Boolean, nullable=False, default=True)
    alert_on_rise:       Mapped[bool]          = mapped_column(Boolean, nullable=False, default=False)
    threshold_percent:   Mapped[int]           = mapped_column(Integer, nullable=False, default=10)
    notify_email:        Mapped[bool]          = mapped_column(Boolean, nullable=False, default=True)
    notify_dashboard:    Mapped[bool]          = mapped_column(Boolean, nullable=False, default=True)
    is_active:           Mapped[bool]          = mapped_column(Boolean, nullable=False, default=True)
    created_at:          Mapped[datetime]      = mapped_column(TIMESTAMPTZ, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_price_watch_hospital", "hospital_id"),
    )


class MappingApprovalSettings(Base):
    """후보 승인 조건 키-값 (min_cases, min_days, min_hospitals, …)."""
    __tablename__ = "mapping_approval_settings"

    setting_key:   Mapped[str]                = mapped_column(String(50), primary_key=True)
    setting_value: Mapped[Optional[int]]      = mapped_column(Integer)
    description:   Mapped[Optional[str]]      = mapped_column(Text)
    updated_at:    Mapped[Optional[datetime]] = mapped_column(TIMESTAMPTZ, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<MappingApprovalSettings {self.setting_key}={self.setting_value}>"
