"""
pricing/queries.py — 읽기 전용 조회 (관리자 API / CLI 용)

쓰기 경로(후보 승인, 알림 읽음 처리)는 이 패키지 밖의 관리자 API 가 담당합니다.
반환값은 JSON 직렬화 가능한 dict 목록입니다.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select

from core.db import Store
from database.models import (
    CandidatePriceSample,
    CandidateStatus,
    Hospital,
    MappingCandidate,
    PriceChangeAlert,
    PriceHistory,
    PriceRecord,
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def list_candidates(
    store: Store,
    status: Optional[str] = CandidateStatus.PENDING_REVIEW.value,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """후보 목록 (사례 수 내림차순). status=None 이면 전체."""
    stmt = select(MappingCandidate)
    if status:
        stmt = stmt.where(MappingCandidate.status == status)
    stmt = stmt.order_by(MappingCandidate.total_cases.desc(), MappingCandidate.id).limit(limit)

    with store.session() as db:
        return [
            {
                "id":                   c.id,
                "alias_name":           c.alias_name,
                "normalized_name":      c.normalized_name,
                "status":               c.status,
                "total_cases":          c.total_cases,
                "unique_hospitals":     c.unique_hospitals,
                "price_avg":            c.price_avg,
                "price_min":            c.price_min,
                "price_max":            c.price_max,
                "meets_case_threshold": c.meets_case_threshold,
                "meets_time_threshold": c.meets_time_threshold,
                "first_seen_at":        _iso(c.first_seen_at),
                "last_seen_at":         _iso(c.last_seen_at),
            }
            for c in db.scalars(stmt)
        ]


def candidate_samples(store: Store, candidate_id: str) -> list[dict[str, Any]]:
    with store.session() as db:
        rows = db.scalars(
            select(CandidatePriceSample)
            .where(CandidatePriceSample.candidate_id == candidate_id)
            .order_by(CandidatePriceSample.id)
        )
        return [
            {"price": s.price, "hospital_id": s.hospital_id, "observed_at": _iso(s.observed_at)}
            for s in rows
        ]


def list_alerts(
    store: Store,
    subscriber_id: Optional[str] = None,
    unread_only: bool = False,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """알림 목록 (최신순)."""
    stmt = select(PriceChangeAlert)
    if subscriber_id:
        stmt = stmt.where(PriceChangeAlert.subscriber_hospital_id == subscriber_id)
    if unread_only:
        stmt = stmt.where(PriceChangeAlert.is_read.is_(False))
    stmt = stmt.order_by(PriceChangeAlert.created_at.desc(), PriceChangeAlert.id.desc()).limit(limit)

    with store.session() as db:
        return [
            {
                "id":                     a.id,
                "subscriber_hospital_id": a.subscriber_hospital_id,
                "competitor_hospital_id": a.competitor_hospital_id,
                "procedure_id":           a.procedure_id,
                "target_area_code":       a.target_area_code,
                "previous_price":         a.previous_price,
                "current_price":          a.current_price,
                "price_change":           a.price_change,
                "price_change_percent":   a.price_change_percent,
                "subscriber_price":       a.subscriber_same_procedure_price,
                "price_gap":              a.price_gap,
                "price_gap_percent":      a.price_gap_percent,
                "alert_type":             a.alert_type,
                "severity":               a.severity,
                "is_read":                a.is_read,
                "created_at":             _iso(a.created_at),
            }
            for a in db.scalars(stmt)
        ]


def price_timeline(
    store: Store,
    hospital_id: str,
    procedure_id: str,
    target_area_code: Optional[str] = None,
    limit: int = 50,
) -> list[dict[str, Any]]:
    """(병원, 시술[, 부위]) 가격 이력 (최신순)."""
    stmt = select(PriceHistory).where(
        PriceHistory.hospital_id == hospital_id,
        PriceHistory.procedure_id == procedure_id,
    )
    if target_area_code:
        stmt = stmt.where(PriceHistory.target_area_code == target_area_code)
    stmt = stmt.order_by(PriceHistory.recorded_at.desc(), PriceHistory.id.desc()).limit(limit)

    with store.session() as db:
        return [
            {
                "id":                   h.id,
                "target_area_code":     h.target_area_code,
                "price":                h.price,
                "shot_count":           h.shot_count,
                "price_per_shot":       h.price_per_shot,
                "previous_history_id":  h.previous_history_id,
                "price_change":         h.price_change,
                "price_change_percent": h.price_change_percent,
                "recorded_at":          _iso(h.recorded_at),
            }
            for h in db.scalars(stmt)
        ]


def compare_prices(
    store: Store,
    procedure_id: str,
    target_area_code: Optional[str] = None,
    region: Optional[str] = None,
) -> dict[str, Any]:
    """
    병원별 최신 스냅샷 비교.

    샷당 가격 오름차순(없는 값은 뒤로), 같으면 가격 오름차순으로 정렬합니다.
    """
    stmt = (
        select(PriceRecord, Hospital.name, Hospital.region)
        .outerjoin(Hospital, Hospital.id == PriceRecord.hospital_id)
        .where(PriceRecord.procedure_id == procedure_id)
    )
    if target_area_code:
        stmt = stmt.where(PriceRecord.target_area_code == target_area_code)
    if region:
        # 부분 일치, % · _ 는 문자 그대로
        stmt = stmt.where(Hospital.region.contains(region, autoescape=True))

    with store.session() as db:
        rows = db.execute(stmt).all()

    rows.sort(key=lambda r: (
        r.PriceRecord.price_per_shot is None,
        r.PriceRecord.price_per_shot or 0,
        r.PriceRecord.price,
    ))

    prices    = [r.PriceRecord.price for r in rows]
    per_shots = [r.PriceRecord.price_per_shot for r in rows if r.PriceRecord.price_per_shot]

    summary: dict[str, Any] = {
        "count":           len(prices),
        "min_price":       min(prices) if prices else None,
        "max_price":       max(prices) if prices else None,
        "avg_price":       round(sum(prices) / len(prices)) if prices else None,
        "min_per_shot":    min(per_shots) if per_shots else None,
        "max_per_shot":    max(per_shots) if per_shots else None,
        "avg_per_shot":    round(sum(per_shots) / len(per_shots)) if per_shots else None,
        "with_screenshot": sum(1 for r in rows if r.PriceRecord.screenshot_id),
    }
    return {
        "procedure_id": procedure_id,
        "summary": summary,
        "prices": [
            {
                "hospital_id":      r.PriceRecord.hospital_id,
                "hospital_name":    r.name,
                "region":           r.region,
                "target_area_code": r.PriceRecord.target_area_code,
                "price":            r.PriceRecord.price,
                "shot_count":       r.PriceRecord.shot_count,
                "price_per_shot":   r.PriceRecord.price_per_shot,
                "screenshot_id":    r.PriceRecord.screenshot_id,
                "is_event":         r.PriceRecord.is_event,
                "collected_at":     _iso(r.PriceRecord.collected_at),
            }
            for r in rows
        ],
    }
