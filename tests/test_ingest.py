"""
가격 등록 진입점 (PriceIngestor.register_price) 테스트
"""

import pytest

from database.models import Hospital, MappingCandidate, PriceHistory, PriceRecord, Procedure
from pricing.errors import InputError
from pricing.ingest import calculate_completeness, unit_price
from pricing.models import HospitalInfo, PriceInfo, ProcedureInfo
from pricing.procedures import ResolveMethod
from pricing.refs import CandidateId, PackageId, ProcedureId


@pytest.mark.unit
class TestCompleteness:
    """완성도 점수"""

    def test_price_only(self):
        c = calculate_completeness(PriceInfo(price=100000))
        assert c.score == 30
        assert c.missing_fields == ["target_area", "shot_count", "screenshot"]

    def test_full_record(self):
        c = calculate_completeness(PriceInfo(
            price=100000, target_area_code="FACE_FULL", shot_count=300,
            screenshot_id="SS-1", is_event=False, includes_items=[],
        ))
        assert c.score == 100
        assert c.missing_fields == []

    def test_is_event_false_still_counts(self):
        """is_event=False 도 정보가 있는 것으로 봄"""
        assert calculate_completeness(PriceInfo(price=1, is_event=False)).score == 35


@pytest.mark.unit
class TestUnitPrice:
    def test_rounds_half_up(self):
        assert unit_price(500000, 300) == 1667
        assert unit_price(1000, 400) == 3

    def test_missing_units(self):
        assert unit_price(1000, None) is None
        assert unit_price(1000, 0) is None


@pytest.mark.integration
class TestInputValidation:
    """입력 오류는 InputError"""

    def test_missing_price(self, ingestor):
        with pytest.raises(InputError):
            ingestor.register_price({}, {"procedure_name": "써마지"}, {})

    def test_negative_price(self, ingestor):
        with pytest.raises(InputError):
            ingestor.register_price({}, {"procedure_name": "써마지"}, {"price": -5})

    def test_missing_procedure_identity(self, store, ingestor):
        with pytest.raises(InputError):
            ingestor.register_price({"hospital_id": "H1"}, {}, {"price": 1000})
        with store.session() as db:
            assert db.query(PriceRecord).count() == 0

    def test_input_error_is_value_error(self, ingestor):
        with pytest.raises(ValueError):
            ingestor.register_price({}, {"procedure_name": "써마지"}, {"price": "abc"})


@pytest.mark.integration
class TestRegisterPrice:
    """전체 등록 흐름"""

    def test_exact_procedure_with_new_hospital(self, store, ingestor):
        result = ingestor.register_price(
            HospitalInfo(hospital_name="강남클리닉", source_url="https://gangnam-clinic.kr/event"),
            ProcedureInfo(procedure_name="울쎄라 리프팅"),
            PriceInfo(price=500000, shot_count=300, target_area_code="face_full"),
        )
        assert result.procedure_id == ProcedureId("PROC-SKIN-008")
        assert result.resolution.method is ResolveMethod.EXACT
        assert result.hospital_is_new is True
        assert result.is_candidate is False
        assert result.alerts_emitted == 0

        with store.session() as db:
            rec = db.get(PriceRecord, result.price_record_id)
            assert rec.hospital_id == result.hospital_id
            assert rec.target_area_code == "FACE_FULL"
            assert rec.price_per_shot == 1667
            assert rec.source_url == "https://gangnam-clinic.kr/event"
            assert rec.procedure_name_raw == "울쎄라 리프팅"
            assert rec.completeness_score == 75

            hosp = db.get(Hospital, result.hospital_id)
            assert hosp.total_prices == 1
            assert hosp.last_crawled is not None
            assert hosp.region == "서울 강남"

    def test_dict_inputs_accepted(self, ingestor):
        result = ingestor.register_price(
            {"hospital_id": "H1"}, {"procedure_name": "핑크주사"}, {"price": 150000},
        )
        assert result.procedure_id == ProcedureId("PROC-SKIN-001")
        assert result.resolution.method is ResolveMethod.ALIAS

    def test_package_ref_stored_with_prefix(self, store, ingestor):
        result = ingestor.register_price({"hospital_id": "H1"}, {"procedure_name": "울써마지"}, {"price": 2500000})
        assert result.procedure_id == PackageId("PP-001")
        with store.session() as db:
            assert db.get(PriceRecord, result.price_record_id).procedure_id == "PKG-PP-001"

    def test_unmapped_name_becomes_candidate(self, store, ingestor):
        result = ingestor.register_price(
            {"hospital_id": "H1"}, {"procedure_name": "듀얼 리프팅 스페셜"}, {"price": 700000},
        )
        assert isinstance(result.procedure_id, CandidateId)
        assert result.is_candidate is True
        with store.session() as db:
            rec = db.get(PriceRecord, result.price_record_id)
            assert rec.procedure_id.startswith("UNMAPPED-MC-")
            assert db.query(MappingCandidate).count() == 1

    def test_snapshot_upserted_per_key(self, store, ingestor, clock):
        """같은 (병원, 시술, 부위) 는 스냅샷 1행, 이력은 누적"""
        first = ingestor.register_price({"hospital_id": "H1"}, {"procedure_id": "PROC-SKIN-009"}, {"price": 1000000})
        clock.advance(days=1)
        second = ingestor.register_price({"hospital_id": "H1"}, {"procedure_id": "PROC-SKIN-009"}, {"price": 1050000})

        assert second.price_record_id == first.price_record_id
        assert second.history.previous_history_id == first.history.history_id
        assert second.history.price_change == 50000
        assert second.history.price_change_percent == 5
        with store.session() as db:
            assert db.query(PriceRecord).count() == 1
            assert db.get(PriceRecord, first.price_record_id).price == 1050000
            assert db.query(PriceHistory).count() == 2
            assert db.get(Procedure, "PROC-SKIN-009").price_count == 1

    def test_different_area_is_separate_snapshot(self, store, ingestor):
        a = ingestor.register_price({"hospital_id": "H1"}, {"procedure_id": "PROC-SKIN-009"}, {"price": 1000000, "target_area_code": "FACE_FULL"})
        b = ingestor.register_price({"hospital_id": "H1"}, {"procedure_id": "PROC-SKIN-009"}, {"price": 400000, "target_area_code": "EYE"})
        assert a.price_record_id != b.price_record_id

    def test_stats_only_for_standard_procedure(self, store, ingestor):
        ingestor.register_price({"hospital_id": "H1"}, {"procedure_name": "울써마지"}, {"price": 2500000})
        with store.session() as db:
            assert db.get(Procedure, "PROC-SKIN-008").price_count == 0
            assert db.get(Procedure, "PROC-SKIN-009").price_count == 0

    def test_total_prices_counts_every_registration(self, store, ingestor, add_hospital):
        add_hospital("HOSP-1", domain="clinic-one.kr")
        for price in (100000, 100000, 120000):
            ingestor.register_price({"domain": "clinic-one.kr"}, {"procedure_id": "PROC-SKIN-006"}, {"price": price})
        with store.session() as db:
            assert db.get(Hospital, "HOSP-1").total_prices == 3

    def test_without_hospital(self, store, ingestor):
        """병원 정보가 없으면 스냅샷만 새로 INSERT, 이력·카운터 없음"""
        a = ingestor.register_price(None, {"procedure_id": "PROC-SKIN-006"}, {"price": 90000})
        b = ingestor.register_price(None, {"procedure_id": "PROC-SKIN-006"}, {"price": 90000})

        assert a.hospital_id is None
        assert a.history is None
        assert a.price_record_id != b.price_record_id
        with store.session() as db:
            assert db.query(PriceHistory).count() == 0
            assert db.query(PriceRecord).filter(PriceRecord.hospital_id.is_(None)).count() == 2

    def test_source_url_only_registers_without_hospital(self, store, ingestor):
        """source_url 만 있으면 병원을 만들지 않고 URL 은 스냅샷에만 기록"""
        result = ingestor.register_price(
            {}, {"procedure_id": "PROC-SKIN-006"},
            {"price": 90000, "source_url": "https://clinic-x.kr/e"},
        )
        assert result.hospital_id is None
        assert result.hospital_is_new is False
        assert result.history is None
        with store.session() as db:
            assert db.query(Hospital).count() == 0
            assert db.query(PriceHistory).count() == 0
            assert db.get(PriceRecord, result.price_record_id).source_url == "https://clinic-x.kr/e"

    def test_competitor_price_drop_alerts_subscriber(self, store, ingestor, subscribe, clock):
        """A 병원 500,000 → 400,000 인하 시 B 병원(420,000원)에 긴급 알림"""
        subscribe("HOSP-B", auto_detect=True)
        ingestor.register_price(
            {"hospital_id": "HOSP-B"}, {"procedure_name": "울쎄라 리프팅"},
            {"price": 420000, "target_area_code": "FACE_FULL"},
        )
        ingestor.register_price(
            {"hospital_id": "HOSP-A"}, {"procedure_name": "울쎄라 리프팅"},
            {"price": 500000, "target_area_code": "FACE_FULL"},
        )
        clock.advance(days=3)
        result = ingestor.register_price(
            {"hospital_id": "HOSP-A"}, {"procedure_name": "울쎄라리프팅"},
            {"price": 400000, "target_area_code": "FACE_FULL"},
        )

        assert result.history.price_change_percent == -20
        assert result.alerts_emitted == 1
        fanout = result.history.fanout
        assert fanout.subscribers == ["HOSP-B"]

        from database.models import PriceChangeAlert
        with store.session() as db:
            alert = db.get(PriceChangeAlert, fanout.created["HOSP-B"])
            assert alert.alert_type == "price_drop"
            assert alert.severity == "urgent"
            assert alert.price_gap == -20000
            assert alert.price_gap_percent == -5
