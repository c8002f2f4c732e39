"""
pricing/ingest.py — 가격 등록 진입점

register_price() 실행 순서 (단계별로 각자 커밋, 전체를 감싸는 트랜잭션 없음):

    1. HospitalResolver.resolve()        병원 식별 / 자동 생성
    2. ProcedureResolver.resolve()       시술 식별 (후보 누적 포함)
    3. 단위 가격 · 완성도 점수 계산
    4. price_records UPSERT              (병원, 시술, 부위) 최신 스냅샷
    5. update_procedure_stats()          표준 시술(ProcedureId)일 때만
    6. hospitals.total_prices += 1       병원이 있을 때만
    7. PriceHistoryTracker.record()      병원이 있을 때만 → 변동 시 팬아웃

사용법:
    store = Store.from_settings()
    ingestor = PriceIngestor.from_store(store)
    result = ingestor.register_price(
        {"hospital_name": "강남스킨의원", "source_url": "https://gangnam-clinic.kr/event"},
        {"procedure_name": "울쎄라 리프팅"},
        {"price": 500000, "shot_count": 300},
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError
from sqlalchemy import select

from core.db import Store
from core.logger import Phase, log_context
from database.models import Hospital, PriceRecord, utcnow
from pricing.alerts import AlertFanoutEngine
from pricing.candidates import CandidateLifecycle
from pricing.errors import InputError
from pricing.history import HistoryResult, PriceHistoryTracker, PriceObservation
from pricing.hospitals import HospitalResolver
from pricing.models import HospitalInfo, PriceInfo, ProcedureInfo
from pricing.normalizer import round_half_up
from pricing.procedures import ProcedureResolver, ResolveResult, update_procedure_stats
from pricing.refs import ProcedureId, ProcedureRef

logger = structlog.get_logger(__name__)

UNKNOWN_AREA = "UNKNOWN"


# ─────────────────────────────────────────────────────────────
# 완성도 점수
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Completeness:
    score:          int
    missing_fields: list[str] = field(default_factory=list)


def calculate_completeness(info: PriceInfo) -> Completeness:
    """
    가격 레코드 정보 완성도 (0–100).

        price 30 / 부위(UNKNOWN 제외) 25 / 샷 수 20 / 스크린샷 15 / 이벤트 여부 5 / 포함 항목 5
    """
    score = 0
    missing: list[str] = []

    if info.price:
        score += 30
    else:
        missing.append("price")
    if info.target_area_code and info.target_area_code != UNKNOWN_AREA:
        score += 25
    else:
        missing.append("target_area")
    if info.shot_count:
        score += 20
    else:
        missing.append("shot_count")
    if info.screenshot_id:
        score += 15
    else:
        missing.append("screenshot")
    if info.is_event is not None:
        score += 5
    if info.includes_items is not None:
        score += 5

    return Completeness(score, missing)


def unit_price(price: int, units: Optional[float]) -> Optional[int]:
    """단위(샷·cc·회차)당 가격. 단위가 없거나 0 이면 None."""
    if not units:
        return None
    return round_half_up(price / units)


# ─────────────────────────────────────────────────────────────
# 결과
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class RegistrationResult:
    procedure_id:     ProcedureRef
    hospital_id:      Optional[str]
    is_candidate:     bool
    alerts_emitted:   int
    price_record_id:  int
    resolution:       ResolveResult
    hospital_is_new:  bool                    = False
    completeness:     Optional[Completeness]  = None
    history:          Optional[HistoryResult] = None


ModelInput = Union[BaseModel, dict, None]


def _coerce(model: type[BaseModel], payload: ModelInput, what: str) -> Any:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload or {})
    except ValidationError as exc:
        raise InputError(f"{what} 입력 오류: {exc.errors(include_url=False)}") from exc


# ─────────────────────────────────────────────────────────────
# PriceIngestor
# ─────────────────────────────────────────────────────────────

class PriceIngestor:
    def __init__(
        self,
        store: Store,
        hospitals: HospitalResolver,
        procedures: ProcedureResolver,
        history: PriceHistoryTracker,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store      = store
        self._hospitals  = hospitals
        self._procedures = procedures
        self._history    = history
        self._clock      = clock

    @classmethod
    def from_store(
        cls,
        store: Store,
        *,
        fanout_workers: int = 8,
        clock: Callable[[], datetime] = utcnow,
    ) -> "PriceIngestor":
        """Store 하나로 전체 컴포넌트 그래프를 조립합니다."""
        candidates = CandidateLifecycle(store, clock=clock)
        fanout     = AlertFanoutEngine(store, max_workers=fanout_workers, clock=clock)
        return cls(
            store      = store,
            hospitals  = HospitalResolver(store),
            procedures = ProcedureResolver(store, candidates),
            history    = PriceHistoryTracker(store, fanout, clock=clock),
            clock      = clock,
        )

    def register_price(
        self,
        hospital_info: ModelInput,
        procedure_info: ModelInput,
        price_info: ModelInput,
    ) -> RegistrationResult:
        hospital  = _coerce(HospitalInfo, hospital_info, "hospital")
        procedure = _coerce(ProcedureInfo, procedure_info, "procedure")
        price     = _coerce(PriceInfo, price_info, "price")

        if not procedure.procedure_id and not procedure.procedure_name:
            raise InputError("procedure_id 또는 procedure_name 이 필요합니다.")

        source_url = price.source_url or hospital.source_url
        if hospital.source_url is None and source_url:
            hospital = hospital.model_copy(update={"source_url": source_url})

        with log_context(phase=Phase.INGEST):
            # ① 병원
            with log_context(phase=Phase.RESOLVE):
                hosp = self._hospitals.resolve(hospital)

            with log_context(hospital_id=hosp.hospital_id):
                # ② 시술
                with log_context(phase=Phase.RESOLVE):
                    resolved = self._procedures.resolve(
                        procedure,
                        price=price.price,
                        hospital_id=hosp.hospital_id,
                        source_url=source_url,
                    )
                proc_key = str(resolved.procedure_id)

                with log_context(procedure_id=proc_key, phase=Phase.DB_WRITE):
                    # ③ 단위 가격 · 완성도
                    per_shot     = unit_price(price.price, price.shot_count)
                    completeness = calculate_completeness(price)

                    # ④ 스냅샷
                    record_id = self._upsert_price_record(
                        hosp.hospital_id, proc_key, procedure.procedure_name,
                        price, per_shot, completeness, source_url,
                    )

                    # ⑤ 시술 통계
                    if isinstance(resolved.procedure_id, ProcedureId):
                        update_procedure_stats(self._store, resolved.procedure_id.value)

                    # ⑥ 병원 카운터
                    if hosp.hospital_id:
                        self._touch_hospital(hosp.hospital_id)

                # ⑦ 이력 + 팬아웃
                history: Optional[HistoryResult] = None
                if hosp.hospital_id:
                    history = self._history.record(PriceObservation(
                        hospital_id      = hosp.hospital_id,
                        procedure_id     = resolved.procedure_id,
                        price            = price.price,
                        target_area_code = price.target_area_code,
                        shot_count       = price.shot_count,
                        price_per_shot   = per_shot,
                        screenshot_id    = price.screenshot_id,
                    ))

                result = RegistrationResult(
                    procedure_id    = resolved.procedure_id,
                    hospital_id     = hosp.hospital_id,
                    is_candidate    = resolved.is_candidate,
                    alerts_emitted  = history.alerts_emitted if history else 0,
                    price_record_id = record_id,
                    resolution      = resolved,
                    hospital_is_new = hosp.is_new,
                    completeness    = completeness,
                    history         = history,
                )
                logger.info(
                    "가격 등록 완료",
                    procedure_id=proc_key,
                    method=resolved.method.value,
                    price=price.price,
                    area=price.target_area_code,
                    completeness=completeness.score,
                    alerts=result.alerts_emitted,
                )
                return result

    # ── 내부 ──────────────────────────────────────────────────

    def _upsert_price_record(
        self,
        hospital_id: Optional[str],
        procedure_id: str,
        raw_name: Optional[str],
        info: PriceInfo,
        per_shot: Optional[int],
        completeness: Completeness,
        source_url: Optional[str],
    ) -> int:
        now = self._clock()
        values = dict(
            price              = info.price,
            price_type         = info.price_type or "fixed",
            original_text      = info.original_text,
            procedure_name_raw = raw_name,
            shot_count         = info.shot_count or None,
            volume_cc          = info.volume_cc or None,
            session_count      = info.session_count or None,
            price_per_shot     = per_shot,
            price_per_cc       = unit_price(info.price, info.volume_cc),
            price_per_session  = unit_price(info.price, info.session_count),
            source_url         = source_url,
            source_type        = info.source_type or "crawl",
            screenshot_id      = info.screenshot_id,
            is_event           = info.is_event,
            event_name         = info.event_name,
            event_end_date     = info.event_end_date,
            includes_items     = info.includes_items,
            completeness_score = completeness.score,
            missing_fields     = completeness.missing_fields,
            collected_at       = now,
            updated_at         = now,
        )
        with self._store.session() as db:
            record = None
            if hospital_id:
                record = db.scalar(
                    select(PriceRecord)
                    .where(
                        PriceRecord.hospital_id == hospital_id,
                        PriceRecord.procedure_id == procedure_id,
                        PriceRecord.target_area_code == info.target_area_code,
                    )
                    .order_by(PriceRecord.collected_at.desc(), PriceRecord.id.desc())
                    .limit(1)
                )
            if record is None:
                record = PriceRecord(
                    hospital_id=hospital_id,
                    procedure_id=procedure_id,
                    target_area_code=info.target_area_code,
                    **values,
                )
                db.add(record)
            else:
                for key, value in values.items():
                    setattr(record, key, value)
            db.flush()
            return record.id

    def _touch_hospital(self, hospital_id: str) -> None:
        with self._store.session() as db:
            hospital = db.get(Hospital, hospital_id)
            if hospital is None:
                logger.warning("가격 카운터 갱신 대상 병원 없음")
                return
            hospital.total_prices = (hospital.total_prices or 0) + 1
            hospital.last_crawled = self._clock()
