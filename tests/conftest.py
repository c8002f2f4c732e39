"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import JSON

import database.models  # noqa: F401  ← 모델 등록
from core.db import Store
from database.base import Base
from database.models import CompetitorSettings, Hospital
from database.reference_data import seed
from pricing.alerts import AlertFanoutEngine
from pricing.candidates import CandidateLifecycle
from pricing.history import PriceHistoryTracker
from pricing.hospitals import HospitalResolver
from pricing.ingest import PriceIngestor
from pricing.procedures import ProcedureResolver


def _patch_jsonb_to_json(base):
    """
    SQLite에서 JSONB를 JSON으로 변경하여 컴파일 오류 방지.
    테스트용으로만 사용.
    """
    from sqlalchemy.dialects.postgresql import JSONB

    for table in base.metadata.sorted_tables:
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()


_patch_jsonb_to_json(Base)


class FakeClock:
    """테스트용 시계. 호출할 때마다 같은 시각을 돌려주고 advance() 로만 움직입니다."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture(scope="function")
def store(tmp_path) -> Store:
    """
    테스트용 Store fixture.
    각 테스트마다 새 SQLite 파일 DB 생성 (팬아웃 스레드가 같은 DB 를 보도록 파일 사용).
    """
    s = Store.from_url(f"sqlite:///{tmp_path / 'pricing.db'}")
    s.create_all()
    with s.session() as db:
        seed(db)
    yield s
    s.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def candidates(store, clock) -> CandidateLifecycle:
    return CandidateLifecycle(store, clock=clock)


@pytest.fixture
def procedure_resolver(store, candidates) -> ProcedureResolver:
    return ProcedureResolver(store, candidates)


@pytest.fixture
def hospital_resolver(store) -> HospitalResolver:
    return HospitalResolver(store)


@pytest.fixture
def fanout(store, clock) -> AlertFanoutEngine:
    return AlertFanoutEngine(store, max_workers=4, clock=clock)


@pytest.fixture
def history(store, fanout, clock) -> PriceHistoryTracker:
    return PriceHistoryTracker(store, fanout, clock=clock)


@pytest.fixture
def ingestor(store, clock) -> PriceIngestor:
    return PriceIngestor.from_store(store, fanout_workers=4, clock=clock)


@pytest.fixture
def add_hospital(store):
    """병원 행을 직접 추가하는 헬퍼."""
    def _add(hospital_id: str, name: str = None, domain: str = None, region: str = None):
        with store.session() as db:
            db.add(Hospital(id=hospital_id, name=name or hospital_id, domain=domain, region=region))
        return hospital_id
    return _add


@pytest.fixture
def subscribe(store):
    """competitor_settings 구독 행을 추가하는 헬퍼."""
    def _subscribe(hospital_id: str, competitor_ids=None, auto_detect: bool = False):
        with store.session() as db:
            db.add(CompetitorSettings(
                hospital_id=hospital_id,
                competitor_ids=list(competitor_ids or []),
                auto_detect=auto_detect,
            ))
    return _subscribe


# 테스트 마커 정의
def pytest_configure(config):
    """Pytest 마커 등록."""
    config.addinivalue_line("markers", "unit: 단위 테스트 (DB 불필요)")
    config.addinivalue_line("markers", "integration: 통합 테스트 (SQLite 파일 DB 사용)")
