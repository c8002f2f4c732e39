"""
pricing/history.py — (병원, 시술, 부위) 가격 이력 원장

record() 한 번 = price_history 행 1개 추가:

    1. 같은 키의 직전 행 조회 (recorded_at DESC, id DESC, LIMIT 1)
    2. price_change = 새 가격 − 직전 가격
       price_change_percent = round(price_change × 100 / 직전 가격)
       첫 관측이면 둘 다 NULL
    3. previous_history_id 로 직전 행을 가리키는 새 행 INSERT (기존 행은 수정하지 않음)
    4. 커밋 후 |변동률| ≥ 10 이면 AlertFanoutEngine.fan_out()

1 ↔ 3 사이는 잠금이 없습니다. 같은 키로 동시에 기록하면 두 행이 같은 직전 행을
가리킬 수 있고, 이 경우 변동률은 각자 자신이 읽은 직전 행 기준입니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog
from sqlalchemy import select

from core.db import Store
from core.logger import Phase, log_context
from database.models import PriceHistory, utcnow
from pricing.alerts import AlertFanoutEngine, FanoutResult, PriceChange, is_significant
from pricing.normalizer import percent_of
from pricing.refs import ProcedureRef

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PriceObservation:
    hospital_id:      str
    procedure_id:     ProcedureRef
    price:            int
    target_area_code: str           = "UNKNOWN"
    shot_count:       Optional[int] = None
    price_per_shot:   Optional[int] = None
    screenshot_id:    Optional[str] = None


@dataclass(frozen=True)
class HistoryResult:
    history_id:           int
    previous_history_id:  Optional[int]
    price_change:         Optional[int]
    price_change_percent: Optional[int]
    fanout:               Optional[FanoutResult] = None

    @property
    def alerts_emitted(self) -> int:
        return self.fanout.alerts_emitted if self.fanout else 0


class PriceHistoryTracker:
    def __init__(
        self,
        store: Store,
        fanout: AlertFanoutEngine,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store  = store
        self._fanout = fanout
        self._clock  = clock

    def latest(self, hospital_id: str, procedure_id: str, target_area_code: str) -> Optional[PriceHistory]:
        with self._store.session() as db:
            return db.scalar(
                select(PriceHistory)
                .where(
                    PriceHistory.hospital_id == hospital_id,
                    PriceHistory.procedure_id == procedure_id,
                    PriceHistory.target_area_code == target_area_code,
                )
                .order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc())
                .limit(1)
            )

    def record(self, entry: PriceObservation) -> HistoryResult:
        proc_key = str(entry.procedure_id)
        with log_context(hospital_id=entry.hospital_id, procedure_id=proc_key, phase=Phase.HISTORY):
            previous = self.latest(entry.hospital_id, proc_key, entry.target_area_code)

            change = change_percent = None
            if previous is not None:
                change = entry.price - previous.price
                if previous.price:
                    change_percent = percent_of(change, previous.price)

            row = PriceHistory(
                hospital_id          = entry.hospital_id,
                procedure_id         = proc_key,
                target_area_code     = entry.target_area_code,
                price                = entry.price,
                shot_count           = entry.shot_count,
                price_per_shot       = entry.price_per_shot,
                screenshot_id        = entry.screenshot_id,
                previous_history_id  = previous.id if previous is not None else None,
                price_change         = change,
                price_change_percent = change_percent,
                recorded_at          = self._clock(),
            )
            with self._store.session() as db:
                db.add(row)
                db.flush()
                history_id = row.id

            logger.info(
                "가격 이력 기록",
                history_id=history_id, price=entry.price,
                price_change=change, change_percent=change_percent,
            )

            fanout: Optional[FanoutResult] = None
            if previous is not None and is_significant(change_percent):
                fanout = self._fanout.fan_out(PriceChange(
                    competitor_hospital_id  = entry.hospital_id,
                    procedure_id            = proc_key,
                    target_area_code        = entry.target_area_code,
                    previous_price          = previous.price,
                    current_price           = entry.price,
                    price_change            = change,
                    price_change_percent    = change_percent,
                    previous_shot_count     = previous.shot_count,
                    current_shot_count      = entry.shot_count,
                    previous_price_per_shot = previous.price_per_shot,
                    current_price_per_shot  = entry.price_per_shot,
                    previous_screenshot_id  = previous.screenshot_id,
                    current_screenshot_id   = entry.screenshot_id,
                ))

            return HistoryResult(
                history_id           = history_id,
                previous_history_id  = row.previous_history_id,
                price_change         = change,
                price_change_percent = change_percent,
                fanout               = fanout,
            )
