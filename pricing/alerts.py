"""
pricing/alerts.py — 경쟁 병원 가격 변동 알림 팬아웃

구독 대상:
    competitor_settings 에서
      - competitor_ids 에 가격을 바꾼 병원 ID 가 정확히 포함되어 있거나
      - auto_detect = true 인 병원
    price_watch_settings 는 LEFT JOIN 으로 함께 읽지만 대상을 거르지 않습니다.
    가격을 바꾼 병원 자신은 구독 대상에서 제외합니다.

알림 1건 (구독 병원별, 병렬):
    alert_type   : 변동액 < 0 → price_drop, 그 외 price_rise
    severity     : |변동률| ≥ 20 → urgent, 그 외 warning
    price_gap    : 새 가격 − 구독 병원 자신의 같은 시술·부위 최신 가격
    price_gap_%  : price_gap / 구독 병원 가격 × 100 (반올림)

구독 병원 1곳의 실패는 로그 + FanoutResult.failed 에만 남고 다른 병원 처리는 계속됩니다.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import select

from core.db import Store
from core.logger import Phase, log_context
from database.models import (
    AlertSeverity,
    AlertType,
    CompetitorSettings,
    PriceChangeAlert,
    PriceRecord,
    PriceWatchSettings,
    utcnow,
)
from pricing.normalizer import percent_of

logger = structlog.get_logger(__name__)

ALERT_THRESHOLD_PERCENT  = 10
URGENT_THRESHOLD_PERCENT = 20


def is_significant(change_percent: Optional[int]) -> bool:
    return change_percent is not None and abs(change_percent) >= ALERT_THRESHOLD_PERCENT


def classify_severity(change_percent: int) -> AlertSeverity:
    if abs(change_percent) >= URGENT_THRESHOLD_PERCENT:
        return AlertSeverity.URGENT
    return AlertSeverity.WARNING


def classify_alert_type(price_change: int) -> AlertType:
    return AlertType.PRICE_DROP if price_change < 0 else AlertType.PRICE_RISE


@dataclass(frozen=True)
class PriceChange:
    """직전 이력 행과 새 이력 행에서 뽑은 변동 정보."""
    competitor_hospital_id:  str
    procedure_id:            str
    target_area_code:        str
    previous_price:          int
    current_price:           int
    price_change:            int
    price_change_percent:    int
    previous_shot_count:     Optional[int] = None
    current_shot_count:      Optional[int] = None
    previous_price_per_shot: Optional[int] = None
    current_price_per_shot:  Optional[int] = None
    previous_screenshot_id:  Optional[str] = None
    current_screenshot_id:   Optional[str] = None


@dataclass
class FanoutResult:
    subscribers: list[str]      = field(default_factory=list)
    created:     dict[str, int] = field(default_factory=dict)   # subscriber_id → alert id
    failed:      dict[str, str] = field(default_factory=dict)   # subscriber_id → 오류 요약

    @property
    def alerts_emitted(self) -> int:
        return len(self.created)


class AlertFanoutEngine:
    def __init__(
        self,
        store: Store,
        max_workers: int = 8,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store       = store
        self._max_workers = max(1, max_workers)
        self._clock       = clock

    # ── 구독 대상 ─────────────────────────────────────────────

    def find_subscribers(self, competitor_hospital_id: str) -> list[str]:
        with self._store.session() as db:
            rows = db.execute(
                select(
                    CompetitorSettings.hospital_id,
                    CompetitorSettings.competitor_ids,
                    CompetitorSettings.auto_detect,
                    PriceWatchSettings.threshold_percent,
                )
                .outerjoin(
                    PriceWatchSettings,
                    PriceWatchSettings.hospital_id == CompetitorSettings.hospital_id,
                )
                .order_by(CompetitorSettings.id)
            ).all()

        subscribers: list[str] = []
        for row in rows:
            if row.hospital_id == competitor_hospital_id or row.hospital_id in subscribers:
                continue
            watched = row.competitor_ids or []
            if row.auto_detect or competitor_hospital_id in watched:
                subscribers.append(row.hospital_id)
        return subscribers

    # ── 팬아웃 ────────────────────────────────────────────────

    def fan_out(self, change: PriceChange) -> FanoutResult:
        result = FanoutResult(subscribers=self.find_subscribers(change.competitor_hospital_id))
        if not result.subscribers:
            logger.debug("구독 병원 없음 — 알림 생략", competitor=change.competitor_hospital_id)
            return result

        workers = min(self._max_workers, len(result.subscribers))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fanout") as pool:
            futures = {
                sub: pool.submit(self._alert_subscriber, sub, change)
                for sub in result.subscribers
            }
            for sub, future in futures.items():
                try:
                    result.created[sub] = future.result()
                except Exception as exc:
                    result.failed[sub] = f"{exc.__class__.__name__}: {exc}"
                    logger.error(
                        "구독 병원 알림 생성 실패",
                        subscriber_id=sub,
                        competitor=change.competitor_hospital_id,
                        procedure_id=change.procedure_id,
                        exc_info=exc,
                    )

        logger.info(
            "가격 변동 팬아웃 완료",
            competitor=change.competitor_hospital_id,
            procedure_id=change.procedure_id,
            change_percent=change.price_change_percent,
            emitted=result.alerts_emitted,
            failed=len(result.failed),
        )
        return result

    def _alert_subscriber(self, subscriber_id: str, change: PriceChange) -> int:
        with log_context(
            hospital_id=change.competitor_hospital_id,
            procedure_id=change.procedure_id,
            subscriber_id=subscriber_id,
            phase=Phase.FANOUT,
        ):
            with self._store.session() as db:
                own_price = db.scalar(
                    select(PriceRecord.price)
                    .where(
                        PriceRecord.hospital_id == subscriber_id,
                        PriceRecord.procedure_id == change.procedure_id,
                        PriceRecord.target_area_code == change.target_area_code,
                    )
                    .order_by(PriceRecord.collected_at.desc(), PriceRecord.id.desc())
                    .limit(1)
                )
                gap = gap_percent = None
                if own_price:
                    gap = change.current_price - own_price
                    gap_percent = percent_of(gap, own_price)
                else:
                    own_price = None

                severity   = classify_severity(change.price_change_percent)
                alert_type = classify_alert_type(change.price_change)
                alert = PriceChangeAlert(
                    subscriber_hospital_id          = subscriber_id,
                    competitor_hospital_id          = change.competitor_hospital_id,
                    procedure_id                    = change.procedure_id,
                    target_area_code                = change.target_area_code,
                    previous_price                  = change.previous_price,
                    current_price                   = change.current_price,
                    price_change                    = change.price_change,
                    price_change_percent            = change.price_change_percent,
                    previous_shot_count             = change.previous_shot_count,
                    current_shot_count              = change.current_shot_count,
                    previous_price_per_shot         = change.previous_price_per_shot,
                    current_price_per_shot          = change.current_price_per_shot,
                    previous_screenshot_id          = change.previous_screenshot_id,
                    current_screenshot_id           = change.current_screenshot_id,
                    subscriber_same_procedure_price = own_price,
                    price_gap                       = gap,
                    price_gap_percent               = gap_percent,
                    alert_type                      = alert_type.value,
                    severity                        = severity.value,
                    created_at                      = self._clock(),
                )
                db.add(alert)
                db.flush()
                alert_id = alert.id

            logger.info(
                "가격 변동 알림 생성",
                alert_id=alert_id, alert_type=alert_type.value,
                severity=severity.value, price_gap=gap,
            )
            return alert_id
