"""
시술명 → 표준 시술 식별 테스트

exact > alias(≥80) > package > candidate 순서와 후보 누적을 검증합니다.
"""

import pytest

from database.models import (
    CandidateStatus,
    CollectedProcedureName,
    MappingCandidate,
    Procedure,
    ProcedureAlias,
)
from pricing.errors import InputError
from pricing.models import ProcedureInfo
from pricing.normalizer import normalize
from pricing.procedures import ResolveMethod
from pricing.refs import CandidateId, PackageId, ProcedureId


def _add_alias(store, alias_id, procedure_id, alias_name, confidence):
    with store.session() as db:
        db.add(ProcedureAlias(
            id=alias_id, procedure_id=procedure_id, alias_name=alias_name,
            normalized_name=normalize(alias_name), confidence=confidence,
        ))


@pytest.mark.integration
class TestCatalogMatching:
    """읽기 전용 단계 (direct / exact / alias / package)"""

    def test_direct_id(self, procedure_resolver):
        res = procedure_resolver.resolve(ProcedureInfo(procedure_id="PROC-EYE-001"))
        assert res.procedure_id == ProcedureId("PROC-EYE-001")
        assert res.method is ResolveMethod.DIRECT
        assert res.confidence == 100

    def test_exact_name(self, procedure_resolver):
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="울쎄라 리프팅"))
        assert res.procedure_id == ProcedureId("PROC-SKIN-008")
        assert res.method is ResolveMethod.EXACT
        assert res.confidence == 100
        assert res.is_candidate is False

    def test_exact_normalized_name(self, procedure_resolver):
        """공백·기호가 달라도 정규화 이름이 같으면 exact"""
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="보톡스(이마)"))
        assert res.procedure_id == ProcedureId("PROC-SKIN-001")
        assert res.method is ResolveMethod.EXACT

    def test_exact_beats_alias(self, store, procedure_resolver):
        """시술명과 같은 별칭이 다른 시술을 가리켜도 exact 가 우선"""
        _add_alias(store, "PA-T1", "PROC-SKIN-001", "써마지", 100)
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="써마지"))
        assert res.procedure_id == ProcedureId("PROC-SKIN-009")
        assert res.method is ResolveMethod.EXACT

    def test_alias_match(self, procedure_resolver):
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="핑크주사"))
        assert res.procedure_id == ProcedureId("PROC-SKIN-001")
        assert res.method is ResolveMethod.ALIAS
        assert res.confidence == 100

    def test_alias_typo_confidence(self, procedure_resolver):
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="울세라"))
        assert res.procedure_id == ProcedureId("PROC-SKIN-008")
        assert res.confidence == 90

    def test_alias_at_threshold_accepted(self, store, procedure_resolver):
        _add_alias(store, "PA-T80", "PROC-SKIN-006", "토닝80", 80)
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="토닝80"))
        assert res.procedure_id == ProcedureId("PROC-SKIN-006")
        assert res.confidence == 80

    def test_alias_below_threshold_falls_through(self, store, procedure_resolver):
        """신뢰도 79 별칭은 무시되고 후보로 넘어감"""
        _add_alias(store, "PA-T79", "PROC-SKIN-006", "토닝79", 79)
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="토닝79"))
        assert isinstance(res.procedure_id, CandidateId)
        assert res.method is ResolveMethod.NEW_CANDIDATE

    def test_highest_confidence_alias_wins(self, store, procedure_resolver):
        _add_alias(store, "PA-LO", "PROC-SKIN-006", "겹치는별칭", 85)
        _add_alias(store, "PA-HI", "PROC-SKIN-007", "겹치는 별칭", 95)
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="겹치는별칭"))
        assert res.procedure_id == ProcedureId("PROC-SKIN-007")
        assert res.confidence == 95

    def test_package(self, procedure_resolver):
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="울써마지"))
        assert res.procedure_id == PackageId("PP-001")
        assert str(res.procedure_id) == "PKG-PP-001"
        assert res.method is ResolveMethod.PACKAGE
        assert res.confidence == 90

    def test_missing_identity_raises(self, procedure_resolver):
        with pytest.raises(InputError):
            procedure_resolver.resolve(ProcedureInfo())


@pytest.mark.integration
class TestCandidatePath:
    """미매핑 시술명 → 후보 생성 / 누적"""

    def test_new_candidate_created(self, store, procedure_resolver):
        res = procedure_resolver.resolve(
            ProcedureInfo(procedure_name="슈퍼 울트라 리프팅"),
            price=300000, hospital_id="HOSP-1", source_url="https://a.kr",
        )
        assert isinstance(res.procedure_id, CandidateId)
        assert str(res.procedure_id).startswith("UNMAPPED-MC-")
        assert res.is_new is True
        assert res.is_candidate is True
        assert res.confidence == 0

        with store.session() as db:
            cand = db.get(MappingCandidate, res.procedure_id.value)
            assert cand.normalized_name == "슈퍼울트라리프팅"
            assert cand.total_cases == 1
            assert cand.status == CandidateStatus.COLLECTING.value
            assert cand.price_min == cand.price_max == 300000
            audit = db.query(CollectedProcedureName).filter_by(mapping_candidate_id=cand.id).one()
            assert audit.raw_name == "슈퍼 울트라 리프팅"

    def test_same_normalized_name_accumulates(self, store, procedure_resolver):
        """정규화 이름이 같으면 같은 후보에 +1"""
        first = procedure_resolver.resolve(
            ProcedureInfo(procedure_name="슈퍼 울트라 리프팅"), price=300000, hospital_id="HOSP-1",
        )
        second = procedure_resolver.resolve(
            ProcedureInfo(procedure_name="슈퍼울트라-리프팅"), price=500000, hospital_id="HOSP-2",
        )
        assert second.procedure_id == first.procedure_id
        assert second.method is ResolveMethod.CANDIDATE
        assert second.is_new is False

        with store.session() as db:
            cand = db.get(MappingCandidate, first.procedure_id.value)
            assert cand.total_cases == 2
            assert cand.unique_hospitals == 2
            assert cand.price_min == 300000
            assert cand.price_max == 500000
            assert cand.price_avg == pytest.approx(400000)

    def test_concurrent_candidate_create_accumulates(self, store, candidates, procedure_resolver, monkeypatch):
        """조회 뒤 다른 요청이 같은 정규화 이름 후보를 먼저 생성 → UNIQUE 충돌 후 승자 행에 누적"""
        first = procedure_resolver.resolve(
            ProcedureInfo(procedure_name="슈퍼 울트라 리프팅"), price=300000, hospital_id="HOSP-1",
        )

        original = candidates.find_by_normalized
        calls = []

        def misses_once(normalized):
            calls.append(normalized)
            if len(calls) == 1:
                return None
            return original(normalized)

        monkeypatch.setattr(candidates, "find_by_normalized", misses_once)
        second = procedure_resolver.resolve(
            ProcedureInfo(procedure_name="슈퍼울트라 리프팅"), price=500000, hospital_id="HOSP-2",
        )

        assert second.procedure_id == first.procedure_id
        assert second.method is ResolveMethod.CANDIDATE
        assert second.is_new is False
        assert len(calls) == 2
        with store.session() as db:
            assert db.query(MappingCandidate).count() == 1
            assert db.get(MappingCandidate, first.procedure_id.value).total_cases == 2

    def test_approved_candidate_with_alias_resolves_to_procedure(self, store, procedure_resolver):
        """승인 + 별칭 연결된 후보는 별칭의 표준 시술로 해석"""
        first = procedure_resolver.resolve(ProcedureInfo(procedure_name="메가 리프팅"), price=100000)
        with store.session() as db:
            cand = db.get(MappingCandidate, first.procedure_id.value)
            cand.status = CandidateStatus.APPROVED.value
            cand.approved_alias_id = "PA-005"

        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="메가리프팅"), price=110000)
        assert res.procedure_id == ProcedureId("PROC-SKIN-008")
        assert res.method is ResolveMethod.ALIAS
        assert res.confidence == 90
        assert res.is_candidate is False

    def test_rejected_candidate_stays_candidate(self, store, procedure_resolver):
        first = procedure_resolver.resolve(ProcedureInfo(procedure_name="거절된 시술"))
        with store.session() as db:
            db.get(MappingCandidate, first.procedure_id.value).status = CandidateStatus.REJECTED.value

        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="거절된시술"))
        assert res.procedure_id == first.procedure_id
        assert res.is_candidate is True
        with store.session() as db:
            assert db.get(MappingCandidate, first.procedure_id.value).status == "rejected"

    def test_candidate_without_price(self, store, procedure_resolver):
        """가격 없이도 후보 생성 (샘플 없음, 통계 NULL)"""
        res = procedure_resolver.resolve(ProcedureInfo(procedure_name="가격없는 시술"))
        with store.session() as db:
            cand = db.get(MappingCandidate, res.procedure_id.value)
            assert cand.price_avg is None
            assert cand.unique_hospitals == 0


@pytest.mark.integration
class TestProcedureStats:
    """update_procedure_stats()"""

    def test_stats_from_price_records(self, store, ingestor):
        ingestor.register_price({"hospital_id": "H1"}, {"procedure_id": "PROC-SKIN-009"}, {"price": 1000000})
        ingestor.register_price({"hospital_id": "H2"}, {"procedure_id": "PROC-SKIN-009"}, {"price": 2000000})

        with store.session() as db:
            proc = db.get(Procedure, "PROC-SKIN-009")
            assert proc.price_count == 2
            assert proc.min_price == 1000000
            assert proc.max_price == 2000000
            assert proc.avg_price == pytest.approx(1500000)
