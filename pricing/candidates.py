"""
pricing/candidates.py — 미매핑 시술명 후보 수명 주기

상태 전이 (앞으로만 진행, 자동 승인 없음):

    collecting ──(조건 플래그 2개 이상)──► pending_review ──(관리자 API)──► approved / rejected

조건 플래그:
    meets_case_threshold : total_cases ≥ min_cases (기본 5)
    meets_time_threshold : first_seen_at 으로부터 경과 일수 ≥ min_days (기본 7)

사례 누적(record_sighting)은 잠금 없는 read-modify-write 입니다.
동시 요청이 겹치면 total_cases 가 경합 1회당 최대 1 적게 집계될 수 있습니다.
가격 통계는 candidate_price_samples 집계로 매번 다시 계산합니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session

from core.db import Store
from core.logger import Phase, log_context
from database.models import (
    CandidatePriceSample,
    CandidateStatus,
    CollectedProcedureName,
    MappingApprovalSettings,
    MappingCandidate,
    MappingStatus,
    as_utc,
    utcnow,
)
from pricing.refs import new_id

logger = structlog.get_logger(__name__)

DEFAULT_MIN_CASES = 5
DEFAULT_MIN_DAYS  = 7
# pending_review 로 올리기 위해 필요한 충족 조건 수
REQUIRED_CONDITIONS = 2


@dataclass(frozen=True)
class ApprovalSettings:
    min_cases: int = DEFAULT_MIN_CASES
    min_days:  int = DEFAULT_MIN_DAYS


@dataclass(frozen=True)
class CandidateSnapshot:
    """세션 밖으로 넘기는 후보 행의 읽기 전용 사본."""
    id:                str
    alias_name:        str
    normalized_name:   str
    status:            str
    total_cases:       int
    approved_alias_id: Optional[str]

    @classmethod
    def of(cls, row: MappingCandidate) -> "CandidateSnapshot":
        return cls(
            id=row.id,
            alias_name=row.alias_name,
            normalized_name=row.normalized_name,
            status=row.status,
            total_cases=row.total_cases,
            approved_alias_id=row.approved_alias_id,
        )


def _positive_int(raw: object, default: int) -> int:
    """설정값이 없거나 숫자가 아니거나 0 이하면 기본값."""
    try:
        value = int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class CandidateLifecycle:
    def __init__(self, store: Store, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    # ── 조회 ──────────────────────────────────────────────────

    def find_by_normalized(self, normalized: str) -> Optional[CandidateSnapshot]:
        with self._store.session() as db:
            row = db.scalar(
                select(MappingCandidate).where(MappingCandidate.normalized_name == normalized)
            )
            return CandidateSnapshot.of(row) if row else None

    def load_approval_settings(self) -> ApprovalSettings:
        with self._store.session() as db:
            return self._read_settings(db)

    @staticmethod
    def _read_settings(db: Session) -> ApprovalSettings:
        rows = db.execute(
            select(MappingApprovalSettings.setting_key, MappingApprovalSettings.setting_value)
        ).all()
        config = {key: value for key, value in rows}
        return ApprovalSettings(
            min_cases=_positive_int(config.get("min_cases"), DEFAULT_MIN_CASES),
            min_days=_positive_int(config.get("min_days"), DEFAULT_MIN_DAYS),
        )

    # ── 쓰기 ──────────────────────────────────────────────────

    def create(
        self,
        raw_name: str,
        normalized: str,
        price: Optional[int] = None,
        hospital_id: Optional[str] = None,
        source_url: Optional[str] = None,
    ) -> CandidateSnapshot:
        """
        신규 후보 + 첫 가격 샘플 + 원문 감사 로그를 한 번에 기록합니다.

        같은 정규화 이름의 후보가 동시에 만들어지면 UNIQUE 위반으로 DatabaseError 가 납니다.
        호출자는 기존 후보 경로로 재시도해야 합니다.
        """
        now = self._clock()
        candidate = MappingCandidate(
            id               = new_id("MC"),
            alias_name       = raw_name,
            normalized_name  = normalized,
            total_cases      = 1,
            unique_hospitals = 1 if (hospital_id and price is not None) else 0,
            first_seen_at    = now,
            last_seen_at     = now,
            price_avg        = float(price) if price is not None else None,
            price_min        = price,
            price_max        = price,
            status           = CandidateStatus.COLLECTING.value,
            created_at       = now,
            updated_at       = now,
        )
        with log_context(phase=Phase.CANDIDATE, candidate_id=candidate.id):
            with self._store.session() as db:
                db.add(candidate)
                db.flush()
                if price is not None:
                    db.add(CandidatePriceSample(
                        candidate_id=candidate.id, price=price,
                        hospital_id=hospital_id, observed_at=now,
                    ))
                db.add(CollectedProcedureName(
                    id                   = new_id("CPN"),
                    raw_name             = raw_name,
                    normalized_name      = normalized,
                    mapping_status       = MappingStatus.CANDIDATE.value,
                    mapping_candidate_id = candidate.id,
                    source_url           = source_url,
                    source_hospital_id   = hospital_id,
                    first_seen_at        = now,
                ))

            logger.info("매핑 후보 생성", name=raw_name, normalized=normalized)
        return CandidateSnapshot.of(candidate)

    def record_sighting(
        self,
        candidate_id: str,
        price: Optional[int] = None,
        hospital_id: Optional[str] = None,
    ) -> None:
        """사례 수 +1, 마지막 발견 시각 갱신, 가격 샘플 추가 후 통계 재계산."""
        with log_context(phase=Phase.CANDIDATE, candidate_id=candidate_id):
            now = self._clock()
            with self._store.session() as db:
                candidate = db.get(MappingCandidate, candidate_id)
                if candidate is None:
                    logger.warning("사례 누적 대상 후보 없음")
                    return

                candidate.total_cases  = candidate.total_cases + 1
                candidate.last_seen_at = now
                candidate.updated_at   = now

                if price is not None:
                    db.add(CandidatePriceSample(
                        candidate_id=candidate_id, price=price,
                        hospital_id=hospital_id, observed_at=now,
                    ))
                db.flush()

                count, avg, low, high, hospitals = db.execute(
                    select(
                        func.count(CandidatePriceSample.id),
                        func.avg(CandidatePriceSample.price),
                        func.min(CandidatePriceSample.price),
                        func.max(CandidatePriceSample.price),
                        func.count(distinct(CandidatePriceSample.hospital_id)),
                    ).where(CandidatePriceSample.candidate_id == candidate_id)
                ).one()
                if count:
                    candidate.price_avg = float(avg)
                    candidate.price_min = low
                    candidate.price_max = high
                candidate.unique_hospitals = hospitals

            logger.debug(
                "후보 사례 누적",
                total_cases=candidate.total_cases, price=price,
            )

    def check_approval_conditions(self, candidate_id: str) -> None:
        """
        승인 조건 플래그를 갱신하고, collecting 상태에서 2개 이상 충족 시 pending_review 로 올립니다.

        플래그는 한 번 켜지면 끄지 않습니다. approved / rejected 로는 절대 바꾸지 않습니다.
        """
        with log_context(phase=Phase.CANDIDATE, candidate_id=candidate_id):
            now = self._clock()
            with self._store.session() as db:
                candidate = db.get(MappingCandidate, candidate_id)
                if candidate is None:
                    return

                settings = self._read_settings(db)

                if candidate.total_cases >= settings.min_cases:
                    candidate.meets_case_threshold = True

                first_seen = as_utc(candidate.first_seen_at)
                age_days = (now - first_seen).total_seconds() / 86400
                if age_days >= settings.min_days:
                    candidate.meets_time_threshold = True

                met = sum((candidate.meets_case_threshold, candidate.meets_time_threshold))
                if met >= REQUIRED_CONDITIONS and candidate.status == CandidateStatus.COLLECTING.value:
                    candidate.status = CandidateStatus.PENDING_REVIEW.value
                    logger.info(
                        "매핑 후보 검토 대기 전환",
                        total_cases=candidate.total_cases,
                        age_days=round(age_days, 1),
                    )

                if db.is_modified(candidate):
                    candidate.updated_at = now
