"""
매핑 후보 수명 주기 테스트

승인 조건 플래그 2개 이상 충족 시에만 pending_review 로 전환되는지 검증합니다.
"""

import pytest
import structlog

from core.logger import Phase
from database.models import CandidateStatus, MappingApprovalSettings, MappingCandidate
from pricing.candidates import ApprovalSettings, _positive_int


def _candidate(store, candidate_id):
    with store.session() as db:
        return db.get(MappingCandidate, candidate_id)


@pytest.mark.unit
class TestPositiveInt:
    def test_fallbacks(self):
        assert _positive_int(None, 5) == 5
        assert _positive_int("abc", 5) == 5
        assert _positive_int(0, 5) == 5
        assert _positive_int(-3, 7) == 7
        assert _positive_int("9", 5) == 9


@pytest.mark.integration
class TestApprovalSettings:
    def test_seeded_values(self, candidates):
        assert candidates.load_approval_settings() == ApprovalSettings(min_cases=5, min_days=7)

    def test_missing_table_rows_use_defaults(self, store, candidates):
        with store.session() as db:
            db.query(MappingApprovalSettings).delete()
        assert candidates.load_approval_settings() == ApprovalSettings()

    def test_custom_values(self, store, candidates):
        with store.session() as db:
            db.get(MappingApprovalSettings, "min_cases").setting_value = 2
        assert candidates.load_approval_settings().min_cases == 2


@pytest.mark.integration
class TestApprovalGating:
    """collecting → pending_review 전환 조건"""

    def test_case_threshold_alone_is_not_enough(self, store, candidates):
        """5건 누적(사례 조건만 충족) → 여전히 collecting"""
        snap = candidates.create("신규 시술", "신규시술", 100000, "H1")
        for _ in range(4):
            candidates.record_sighting(snap.id, 100000, "H1")
            candidates.check_approval_conditions(snap.id)

        cand = _candidate(store, snap.id)
        assert cand.total_cases == 5
        assert cand.meets_case_threshold is True
        assert cand.meets_time_threshold is False
        assert cand.status == CandidateStatus.COLLECTING.value

    def test_time_threshold_alone_is_not_enough(self, store, candidates, clock):
        """7일 경과(기간 조건만 충족) → 여전히 collecting"""
        snap = candidates.create("오래된 시술", "오래된시술", 100000, "H1")
        clock.advance(days=8)
        candidates.record_sighting(snap.id, 120000, "H2")
        candidates.check_approval_conditions(snap.id)

        cand = _candidate(store, snap.id)
        assert cand.meets_time_threshold is True
        assert cand.meets_case_threshold is False
        assert cand.status == CandidateStatus.COLLECTING.value

    def test_both_conditions_promote(self, store, candidates, clock):
        snap = candidates.create("승격 시술", "승격시술", 100000, "H1")
        for _ in range(4):
            candidates.record_sighting(snap.id, 100000, "H1")
            candidates.check_approval_conditions(snap.id)
        assert _candidate(store, snap.id).status == CandidateStatus.COLLECTING.value

        clock.advance(days=7)
        candidates.record_sighting(snap.id, 100000, "H1")
        candidates.check_approval_conditions(snap.id)

        cand = _candidate(store, snap.id)
        assert cand.total_cases == 6
        assert cand.status == CandidateStatus.PENDING_REVIEW.value

    def test_never_auto_approves(self, store, candidates, clock):
        """조건을 계속 충족해도 approved 로는 바뀌지 않음"""
        snap = candidates.create("계속 시술", "계속시술", 100000, "H1")
        clock.advance(days=30)
        for _ in range(10):
            candidates.record_sighting(snap.id, 100000, "H1")
            candidates.check_approval_conditions(snap.id)
        assert _candidate(store, snap.id).status == CandidateStatus.PENDING_REVIEW.value

    def test_flags_are_sticky(self, store, candidates):
        """min_cases 를 올려도 이미 켜진 플래그는 유지"""
        snap = candidates.create("고정 시술", "고정시술", 100000, "H1")
        for _ in range(4):
            candidates.record_sighting(snap.id, 100000, "H1")
        candidates.check_approval_conditions(snap.id)
        assert _candidate(store, snap.id).meets_case_threshold is True

        with store.session() as db:
            db.get(MappingApprovalSettings, "min_cases").setting_value = 100
        candidates.check_approval_conditions(snap.id)
        assert _candidate(store, snap.id).meets_case_threshold is True

    def test_rejected_is_terminal(self, store, candidates, clock):
        snap = candidates.create("거절 시술", "거절시술", 100000, "H1")
        with store.session() as db:
            db.get(MappingCandidate, snap.id).status = CandidateStatus.REJECTED.value

        clock.advance(days=10)
        for _ in range(5):
            candidates.record_sighting(snap.id, 100000, "H1")
        candidates.check_approval_conditions(snap.id)
        assert _candidate(store, snap.id).status == CandidateStatus.REJECTED.value


@pytest.mark.integration
class TestSighting:
    def test_last_seen_and_stats(self, store, candidates, clock):
        snap = candidates.create("통계 시술", "통계시술", 100000, "H1")
        clock.advance(hours=3)
        candidates.record_sighting(snap.id, 200000, "H1")
        candidates.record_sighting(snap.id, None, "H2")

        cand = _candidate(store, snap.id)
        assert cand.total_cases == 3
        # 가격 없는 사례는 샘플이 없으므로 병원 수에 포함되지 않음
        assert cand.unique_hospitals == 1
        assert cand.price_avg == pytest.approx(150000)
        assert cand.last_seen_at.replace(tzinfo=None) == clock.now.replace(tzinfo=None)

    def test_unknown_candidate_is_ignored(self, candidates):
        candidates.record_sighting("MC-missing", 1000, "H1")
        candidates.check_approval_conditions("MC-missing")

    def test_duplicate_normalized_name_raises(self, candidates):
        from pricing.errors import DatabaseError

        candidates.create("중복", "중복", None, None)
        with pytest.raises(DatabaseError):
            candidates.create("중 복", "중복", None, None)


class _ContextRecorder:
    """로그 호출 시점의 contextvars 를 기록하는 대체 로거"""

    def __init__(self):
        self.records = []

    def __getattr__(self, level):
        def log(event, **kwargs):
            self.records.append((level, event, dict(structlog.contextvars.get_contextvars())))
        return log


@pytest.mark.integration
class TestCandidateLogContext:
    """후보 쓰기 작업 로그에 Candidate 단계와 후보 ID 가 붙는지"""

    def test_create_and_sighting_bind_candidate_phase(self, monkeypatch, candidates):
        recorder = _ContextRecorder()
        monkeypatch.setattr("pricing.candidates.logger", recorder)

        snap = candidates.create("로그 시술", "로그시술", 1000, "H1")
        candidates.record_sighting(snap.id, 2000, "H2")

        events = {event: ctx for _, event, ctx in recorder.records}
        for event in ("매핑 후보 생성", "후보 사례 누적"):
            assert events[event]["phase"] == Phase.CANDIDATE
            assert events[event]["candidate_id"] == snap.id
        assert "candidate_id" not in structlog.contextvars.get_contextvars()

    def test_promotion_logged_in_candidate_phase(self, monkeypatch, store, candidates, clock):
        snap = candidates.create("승격 로그", "승격로그", None, None)
        for _ in range(4):
            candidates.record_sighting(snap.id)
        clock.advance(days=7)

        recorder = _ContextRecorder()
        monkeypatch.setattr("pricing.candidates.logger", recorder)
        candidates.check_approval_conditions(snap.id)

        [(level, _, ctx)] = recorder.records
        assert level == "info"
        assert ctx["phase"] == Phase.CANDIDATE
        assert ctx["candidate_id"] == snap.id
        assert _candidate(store, snap.id).status == CandidateStatus.PENDING_REVIEW.value
