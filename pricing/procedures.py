"""
pricing/procedures.py — 원문 시술명 → 표준 시술 식별

단계별 매칭 (첫 번째 일치에서 종료):

    단계        조건                                          결과                 신뢰도
    ─────────   ───────────────────────────────────────────   ──────────────────   ──────
    direct      procedure_id 명시                             ProcedureId          100
    exact       name == 원문  또는  normalized_name == 정규화  ProcedureId          100
    alias       별칭 최고 신뢰도 ≥ 80                          ProcedureId          별칭 값
    package     패키지명 일치                                  PackageId (PKG-…)    90
    candidate   기존 후보 (승인+별칭 존재 시 별칭의 시술)       CandidateId / PId    0 / 90
    new         신규 후보 생성                                 CandidateId          0

exact / alias / package 는 읽기 전용, candidate / new 는 후보 테이블에 기록합니다.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy import func, or_, select

from core.db import DatabaseError, Store
from database.models import (
    CandidateStatus,
    PriceRecord,
    Procedure,
    ProcedureAlias,
    ProcedurePackage,
    utcnow,
)
from pricing.candidates import CandidateLifecycle, CandidateSnapshot
from pricing.errors import InputError
from pricing.models import ProcedureInfo
from pricing.normalizer import normalize
from pricing.refs import CandidateId, PackageId, ProcedureId, ProcedureRef

logger = structlog.get_logger(__name__)

MIN_ALIAS_CONFIDENCE       = 80
PACKAGE_CONFIDENCE         = 90
APPROVED_ALIAS_CONFIDENCE  = 90


class ResolveMethod(str, enum.Enum):
    DIRECT        = "direct"
    EXACT         = "exact"
    ALIAS         = "alias"
    PACKAGE       = "package"
    CANDIDATE     = "candidate"
    NEW_CANDIDATE = "new_candidate"


@dataclass(frozen=True)
class ResolveResult:
    procedure_id: ProcedureRef
    method:       ResolveMethod
    is_new:       bool = False
    is_candidate: bool = False
    confidence:   int  = 0


class ProcedureResolver:
    def __init__(self, store: Store, candidates: CandidateLifecycle) -> None:
        self._store      = store
        self._candidates = candidates

    def resolve(
        self,
        info: ProcedureInfo,
        *,
        price: Optional[int] = None,
        hospital_id: Optional[str] = None,
        source_url: Optional[str] = None,
    ) -> ResolveResult:
        if info.procedure_id:
            return ResolveResult(ProcedureId(info.procedure_id), ResolveMethod.DIRECT, confidence=100)

        raw = info.procedure_name
        if not raw:
            raise InputError("procedure_id 또는 procedure_name 이 필요합니다.")

        normalized = normalize(raw)

        result = self._match_catalog(raw, normalized)
        if result:
            logger.debug("시술 매칭", method=result.method.value, procedure_id=str(result.procedure_id))
            return result

        existing = self._candidates.find_by_normalized(normalized)
        if existing:
            return self._resolve_existing(existing, price, hospital_id)

        try:
            created = self._candidates.create(raw, normalized, price, hospital_id, source_url)
        except DatabaseError:
            # 동일 정규화 이름 후보가 동시에 생성됨 → 승자 행에 사례로 누적
            existing = self._candidates.find_by_normalized(normalized)
            if existing is None:
                raise
            logger.info("후보 동시 생성 충돌 — 기존 후보에 누적", candidate_id=existing.id)
            return self._resolve_existing(existing, price, hospital_id)

        return ResolveResult(
            CandidateId(created.id), ResolveMethod.NEW_CANDIDATE,
            is_new=True, is_candidate=True, confidence=0,
        )

    # ── 읽기 전용 단계 ────────────────────────────────────────

    def _match_catalog(self, raw: str, normalized: str) -> Optional[ResolveResult]:
        with self._store.session() as db:
            proc_id = db.scalar(
                select(Procedure.id)
                .where(or_(Procedure.name == raw, Procedure.normalized_name == normalized))
                .order_by(Procedure.is_deprecated, Procedure.id)
                .limit(1)
            )
            if proc_id:
                return ResolveResult(ProcedureId(proc_id), ResolveMethod.EXACT, confidence=100)

            alias = db.execute(
                select(ProcedureAlias.procedure_id, ProcedureAlias.confidence)
                .where(or_(ProcedureAlias.alias_name == raw, ProcedureAlias.normalized_name == normalized))
                .order_by(ProcedureAlias.confidence.desc())
                .limit(1)
            ).first()
            if alias and alias.confidence >= MIN_ALIAS_CONFIDENCE:
                return ResolveResult(
                    ProcedureId(alias.procedure_id), ResolveMethod.ALIAS, confidence=alias.confidence
                )
            if alias:
                logger.debug("별칭 신뢰도 미달", alias_confidence=alias.confidence, name=raw)

            package_id = db.scalar(
                select(ProcedurePackage.id)
                .where(or_(
                    ProcedurePackage.package_name == raw,
                    ProcedurePackage.normalized_name == normalized,
                ))
                .limit(1)
            )
            if package_id:
                return ResolveResult(PackageId(package_id), ResolveMethod.PACKAGE, confidence=PACKAGE_CONFIDENCE)

        return None

    # ── 후보 단계 ─────────────────────────────────────────────

    def _resolve_existing(
        self,
        candidate: CandidateSnapshot,
        price: Optional[int],
        hospital_id: Optional[str],
    ) -> ResolveResult:
        self._candidates.record_sighting(candidate.id, price, hospital_id)
        self._candidates.check_approval_conditions(candidate.id)

        # 누적 전에 읽은 상태 기준
        if candidate.status == CandidateStatus.APPROVED.value and candidate.approved_alias_id:
            with self._store.session() as db:
                alias_proc = db.scalar(
                    select(ProcedureAlias.procedure_id)
                    .where(ProcedureAlias.id == candidate.approved_alias_id)
                )
            if alias_proc:
                return ResolveResult(
                    ProcedureId(alias_proc), ResolveMethod.ALIAS, confidence=APPROVED_ALIAS_CONFIDENCE
                )

        return ResolveResult(
            CandidateId(candidate.id), ResolveMethod.CANDIDATE, is_candidate=True, confidence=0
        )


# ─────────────────────────────────────────────────────────────
# 시술 가격 통계
# ─────────────────────────────────────────────────────────────

def update_procedure_stats(store: Store, procedure_id: str) -> None:
    """price_records 스냅샷으로 procedures 의 건수·평균·최저·최고가를 다시 계산합니다."""
    with store.session() as db:
        procedure = db.get(Procedure, procedure_id)
        if procedure is None:
            logger.debug("통계 갱신 대상 시술 없음", procedure_id=procedure_id)
            return

        count, avg, low, high = db.execute(
            select(
                func.count(PriceRecord.id),
                func.avg(PriceRecord.price),
                func.min(PriceRecord.price),
                func.max(PriceRecord.price),
            ).where(PriceRecord.procedure_id == procedure_id)
        ).one()

        procedure.price_count  = count
        procedure.avg_price    = float(avg) if avg is not None else None
        procedure.min_price    = low
        procedure.max_price    = high
        procedure.last_updated = utcnow()
