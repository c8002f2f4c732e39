"""
병원 식별 / 자동 생성 테스트
"""

import pytest

from database.models import Hospital
from pricing.hospitals import extract_domain, infer_region
from pricing.models import HospitalInfo


@pytest.mark.unit
class TestDomainAndRegion:
    """URL → 도메인 / 지역 추정"""

    def test_extract_domain_from_url(self):
        assert extract_domain("https://Gangnam-Clinic.kr/event?id=3") == "gangnam-clinic.kr"

    def test_extract_domain_without_scheme(self):
        assert extract_domain("busan-skin.co.kr/price") == "busan-skin.co.kr"

    def test_extract_domain_empty(self):
        assert extract_domain(None) is None
        assert extract_domain("") is None

    def test_infer_region_english(self):
        assert infer_region("https://gangnam-clinic.kr") == "서울 강남"
        assert infer_region("bundang-derma.com") == "경기 분당"

    def test_infer_region_percent_encoded_korean(self):
        """퍼센트 인코딩된 한글 경로도 인식"""
        assert infer_region("https://clinic.kr/%EB%B6%80%EC%82%B0") == "부산"

    def test_infer_region_none(self):
        assert infer_region("https://example.com") is None


@pytest.mark.integration
class TestHospitalResolver:
    """HospitalResolver.resolve() 조회 순서"""

    def test_explicit_id_used_as_is(self, hospital_resolver):
        """hospital_id 명시 시 DB 조회 없이 그대로 사용"""
        res = hospital_resolver.resolve(HospitalInfo(hospital_id="HOSP-NOT-IN-DB"))
        assert res.hospital_id == "HOSP-NOT-IN-DB"
        assert res.is_new is False

    def test_match_by_domain(self, hospital_resolver, add_hospital):
        add_hospital("HOSP-1", name="강남피부과", domain="gangnam-clinic.kr")
        res = hospital_resolver.resolve(HospitalInfo(domain="gangnam-clinic.kr"))
        assert res.hospital_id == "HOSP-1"
        assert res.is_new is False

    def test_match_by_name(self, hospital_resolver, add_hospital):
        add_hospital("HOSP-2", name="청담피부과")
        res = hospital_resolver.resolve(HospitalInfo(hospital_name="청담피부과"))
        assert res.hospital_id == "HOSP-2"

    def test_similar_name_is_not_matched(self, hospital_resolver, add_hospital):
        """유사 이름은 매칭하지 않고 새 병원 생성"""
        add_hospital("HOSP-3", name="청담피부과")
        res = hospital_resolver.resolve(HospitalInfo(hospital_name="청담 피부과의원"))
        assert res.hospital_id != "HOSP-3"
        assert res.is_new is True

    def test_auto_create_takes_domain_and_region_from_url(self, store, hospital_resolver):
        """이름만 있으면 신규 생성, 도메인·지역은 source_url 에서 추정"""
        res = hospital_resolver.resolve(HospitalInfo(
            hospital_name="강남뉴의원", source_url="https://gangnam-new.kr/price",
        ))
        assert res.is_new is True
        assert res.hospital_id.startswith("HOSP-AUTO-")

        with store.session() as db:
            row = db.get(Hospital, res.hospital_id)
            assert row.domain == "gangnam-new.kr"
            assert row.name == "강남뉴의원"
            assert row.region == "서울 강남"

    def test_domain_only_uses_domain_as_name(self, store, hospital_resolver):
        res = hospital_resolver.resolve(HospitalInfo(domain="bundang-derma.com"))
        with store.session() as db:
            row = db.get(Hospital, res.hospital_id)
            assert row.name == "bundang-derma.com"
            assert row.region == "경기 분당"

    def test_second_resolve_reuses_created(self, hospital_resolver):
        """같은 도메인으로 두 번째 호출 시 기존 행 재사용"""
        first = hospital_resolver.resolve(HospitalInfo(
            hospital_name="부산스킨", source_url="https://busan-skin.kr",
        ))
        second = hospital_resolver.resolve(HospitalInfo(domain="busan-skin.kr"))
        assert second.hospital_id == first.hospital_id
        assert second.is_new is False

    def test_no_identity_returns_none(self, hospital_resolver):
        res = hospital_resolver.resolve(HospitalInfo())
        assert res.hospital_id is None
        assert res.is_new is False

    def test_source_url_alone_is_not_identity(self, store, hospital_resolver):
        """source_url 만 있으면 병원을 만들지 않음"""
        res = hospital_resolver.resolve(HospitalInfo(source_url="https://gangnam-new.kr/price"))
        assert res.hospital_id is None
        assert res.is_new is False
        with store.session() as db:
            assert db.query(Hospital).count() == 0


@pytest.mark.integration
class TestHospitalDomainConflict:
    """도메인 UNIQUE 충돌 시 기존 행 재사용"""

    def test_concurrent_create_reuses_winner(self, hospital_resolver, add_hospital, monkeypatch):
        """조회와 INSERT 사이에 다른 요청이 같은 도메인을 먼저 생성"""
        original = hospital_resolver._lookup
        calls = []

        def lookup_misses_once(domain, name):
            calls.append((domain, name))
            if len(calls) == 1:
                add_hospital("HOSP-WIN", name="먼저 생성", domain="race-clinic.kr")
                return None
            return original(domain, name)

        monkeypatch.setattr(hospital_resolver, "_lookup", lookup_misses_once)
        res = hospital_resolver.resolve(HospitalInfo(domain="race-clinic.kr"))

        assert res.hospital_id == "HOSP-WIN"
        assert res.is_new is False
        assert len(calls) == 2

    def test_url_domain_registered_under_other_name(self, store, hospital_resolver, add_hospital):
        """이름 불일치로 생성 시도 → URL 도메인이 이미 있으면 그 병원 사용"""
        add_hospital("HOSP-OLD", name="예전 이름", domain="renamed-clinic.kr")
        res = hospital_resolver.resolve(HospitalInfo(
            hospital_name="새 이름", source_url="https://renamed-clinic.kr/event",
        ))
        assert res.hospital_id == "HOSP-OLD"
        assert res.is_new is False
        with store.session() as db:
            assert db.query(Hospital).count() == 1
