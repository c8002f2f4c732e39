"""
pricing/hospitals.py — 병원 식별 / 자동 생성

조회 순서 (첫 번째 일치에서 종료):
  1. hospital_id 명시     → 그대로 사용
  2. 도메인 정확 일치     → hospitals.domain
  3. 이름 정확 일치       → hospitals.name
  4. 신규 생성            → HOSP-AUTO-…, 도메인이 없으면 source_url 호스트, 지역은 URL/도메인에서 추정

hospital_id · 도메인 · 이름이 모두 없으면 source_url 이 있어도 병원 없이 진행합니다.

유사 이름 매칭은 하지 않습니다. 도메인 UNIQUE 충돌(동시 생성)은 승자 행을 다시 읽어 해결합니다.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote, urlsplit

import structlog
from sqlalchemy import select

from core.db import DatabaseError, Store
from database.models import Hospital
from pricing.models import HospitalInfo
from pricing.refs import new_id

logger = structlog.get_logger(__name__)

# 지역 사전 (검색어, 표시 지역명). 먼저 나온 항목이 우선합니다.
REGION_GAZETTEER: list[tuple[str, str]] = [
    ("강남",      "서울 강남"),
    ("gangnam",   "서울 강남"),
    ("서초",      "서울 서초"),
    ("seocho",    "서울 서초"),
    ("청담",      "서울 청담"),
    ("cheongdam", "서울 청담"),
    ("압구정",    "서울 압구정"),
    ("apgujeong", "서울 압구정"),
    ("apg",       "서울 압구정"),
    ("신사",      "서울 신사"),
    ("sinsa",     "서울 신사"),
    ("분당",      "경기 분당"),
    ("bundang",   "경기 분당"),
    ("판교",      "경기 판교"),
    ("pangyo",    "경기 판교"),
    ("일산",      "경기 일산"),
    ("ilsan",     "경기 일산"),
    ("부산",      "부산"),
    ("busan",     "부산"),
    ("대구",      "대구"),
    ("daegu",     "대구"),
    ("인천",      "인천"),
    ("incheon",   "인천"),
    ("광주",      "광주"),
    ("gwangju",   "광주"),
    ("대전",      "대전"),
    ("daejeon",   "대전"),
]


@dataclass(frozen=True)
class HospitalResolution:
    hospital_id: Optional[str]
    is_new:      bool = False


# ─────────────────────────────────────────────────────────────
# 순수 함수
# ─────────────────────────────────────────────────────────────

def extract_domain(url: Optional[str]) -> Optional[str]:
    """
    URL 의 호스트명을 반환합니다.

    스킴이 없는 값("clinic.kr/event")은 첫 '/' 앞 부분을 그대로 씁니다.
    """
    if not url:
        return None
    url = url.strip()
    if "://" in url:
        host = urlsplit(url).hostname
        if host:
            return host.lower()
    head = url.split("/")[0]
    return head.lower() or None


def infer_region(text: Optional[str]) -> Optional[str]:
    """URL·도메인 문자열에서 지역명을 추정합니다. 일치 없으면 None."""
    if not text:
        return None
    haystack = unquote(text).lower()
    for needle, region in REGION_GAZETTEER:
        if needle in haystack:
            return region
    return None


# ─────────────────────────────────────────────────────────────
# HospitalResolver
# ─────────────────────────────────────────────────────────────

class HospitalResolver:
    def __init__(self, store: Store) -> None:
        self._store = store

    def resolve(self, info: HospitalInfo) -> HospitalResolution:
        if info.hospital_id:
            return HospitalResolution(info.hospital_id, is_new=False)

        # source_url 은 식별 정보가 아님 (신규 생성 시 도메인·지역 추정에만 사용)
        if not info.domain and not info.hospital_name:
            logger.debug("병원 식별 정보 없음 — 병원 없이 진행")
            return HospitalResolution(None, is_new=False)

        existing = self._lookup(info.domain, info.hospital_name)
        if existing:
            return HospitalResolution(existing, is_new=False)

        return self._create(info)

    # ── 내부 ──────────────────────────────────────────────────

    def _lookup(self, domain: Optional[str], name: Optional[str]) -> Optional[str]:
        with self._store.session() as db:
            if domain:
                hid = db.scalar(select(Hospital.id).where(Hospital.domain == domain).limit(1))
                if hid:
                    return hid
            if name:
                hid = db.scalar(select(Hospital.id).where(Hospital.name == name).limit(1))
                if hid:
                    return hid
        return None

    def _create(self, info: HospitalInfo) -> HospitalResolution:
        domain = info.domain or extract_domain(info.source_url)
        name   = info.hospital_name
        region = info.region or infer_region(info.source_url or domain)
        hospital = Hospital(
            id       = new_id("HOSP-AUTO"),
            name     = name or domain or "Unknown",
            domain   = domain,
            region   = region,
            category = info.category,
            address  = info.address,
        )
        try:
            with self._store.session() as db:
                db.add(hospital)
        except DatabaseError:
            # 도메인 UNIQUE 충돌 (동시 생성, 또는 URL 도메인이 다른 이름으로 이미 등록됨)
            winner = self._lookup(domain, None) if domain else None
            if winner is None:
                raise
            logger.info("병원 동시 생성 충돌 — 기존 행 사용", hospital_id=winner, domain=domain)
            return HospitalResolution(winner, is_new=False)

        logger.info(
            "병원 자동 생성",
            hospital_id=hospital.id, name=hospital.name, domain=domain, region=region,
        )
        return HospitalResolution(hospital.id, is_new=True)
