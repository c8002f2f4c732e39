"""
database/reference_data.py — 기준 데이터 (부위 코드, 승인 조건, 기본 시술 카탈로그)

0002_reference_data 마이그레이션과 개발용 init-db / 테스트 픽스처가 같은 데이터를 씁니다.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from database.models import (
    MappingApprovalSettings,
    Procedure,
    ProcedureAlias,
    ProcedurePackage,
    TargetArea,
)
from pricing.normalizer import normalize

# (code, name, category, avg_shots, display_order)
TARGET_AREAS: list[tuple] = [
    ("FACE_FULL",  "얼굴 전체", "face",    500,  1),
    ("FACE_LOWER", "하안면",    "face",    300,  2),
    ("FACE_UPPER", "상안면",    "face",    200,  3),
    ("EYE",        "눈가",      "face",    100,  4),
    ("FOREHEAD",   "이마",      "face",    150,  5),
    ("CHEEK",      "볼",        "face",    150,  6),
    ("CHIN",       "턱",        "face",    100,  7),
    ("JAWLINE",    "턱라인",    "face",    150,  8),
    ("NECK",       "목",        "face",    200,  9),
    ("NASOLABIAL", "팔자",      "face",    80,   10),
    ("BODY_ARM",   "팔",        "body",    300,  20),
    ("BODY_BELLY", "복부",      "body",    500,  21),
    ("BODY_THIGH", "허벅지",    "body",    600,  22),
    ("BODY_BACK",  "등",        "body",    800,  23),
    ("BODY_HIP",   "엉덩이",    "body",    400,  24),
    ("UNKNOWN",    "부위 미상", "unknown", None, 99),
]

# (setting_key, setting_value, description)
APPROVAL_SETTINGS: list[tuple] = [
    ("min_cases",               5,  "최소 발견 횟수"),
    ("min_hospitals",           3,  "최소 발견 병원 수"),
    ("min_days",                7,  "최소 대기 일수"),
    ("price_tolerance_percent", 40, "가격 허용 오차 (%)"),
    ("min_similarity",          70, "최소 유사도 (%)"),
    ("auto_approve_threshold",  80, "자동 승인 신뢰도 (%)"),
]

# (id, code, name, category, subcategory)
PROCEDURES: list[tuple] = [
    ("PROC-EYE-001",  "EYE-001",  "쌍꺼풀 수술 (매몰법)", "성형외과", "눈성형"),
    ("PROC-EYE-002",  "EYE-002",  "쌍꺼풀 수술 (절개법)", "성형외과", "눈성형"),
    ("PROC-EYE-003",  "EYE-003",  "눈매교정",             "성형외과", "눈성형"),
    ("PROC-NOSE-001", "NOSE-001", "코 높이기 (융비술)",   "성형외과", "코성형"),
    ("PROC-FACE-001", "FACE-001", "사각턱 축소",          "성형외과", "윤곽성형"),
    ("PROC-SKIN-001", "SKIN-001", "보톡스 (이마)",        "피부과",   "보톡스"),
    ("PROC-SKIN-002", "SKIN-002", "보톡스 (미간)",        "피부과",   "보톡스"),
    ("PROC-SKIN-004", "SKIN-004", "필러 (코)",            "피부과",   "필러"),
    ("PROC-SKIN-006", "SKIN-006", "레이저 토닝",          "피부과",   "레이저"),
    ("PROC-SKIN-007", "SKIN-007", "프락셀 레이저",        "피부과",   "레이저"),
    ("PROC-SKIN-008", "SKIN-008", "울쎄라 리프팅",        "피부과",   "리프팅"),
    ("PROC-SKIN-009", "SKIN-009", "써마지",               "피부과",   "리프팅"),
    ("PROC-DENT-001", "DENT-001", "임플란트 (1개)",       "치과",     "임플란트"),
    ("PROC-DENT-003", "DENT-003", "치아미백",             "치과",     "심미치료"),
]

# (id, procedure_id, alias_name, alias_type, confidence)
ALIASES: list[tuple] = [
    ("PA-001", "PROC-SKIN-001", "핑크주사",      "marketing", 100),
    ("PA-002", "PROC-SKIN-001", "물광주사",      "marketing", 90),
    ("PA-003", "PROC-SKIN-001", "연예인주사",    "marketing", 85),
    ("PA-004", "PROC-SKIN-001", "K-BOOSTER주사", "brand",     100),
    ("PA-005", "PROC-SKIN-008", "울쎄라리프팅",  "marketing", 100),
    ("PA-006", "PROC-SKIN-008", "HIFU울쎄라",    "marketing", 95),
    ("PA-007", "PROC-SKIN-008", "울세라",        "typo",      90),
    ("PA-008", "PROC-SKIN-001", "보툴리눔톡신",  "medical",   100),
    ("PA-009", "PROC-SKIN-001", "나보타",        "brand",     95),
    ("PA-010", "PROC-SKIN-001", "제오민",        "brand",     95),
]

# (id, package_name, package_type, description)
PACKAGES: list[tuple] = [
    ("PP-001", "울써마지",       "combo", "울쎄라 + 써마지"),
    ("PP-002", "슈링크턱스",     "combo", "슈링크 + 울쎄라"),
    ("PP-003", "인모드듀오",     "combo", "인모드FX + 인모드GFX"),
    ("PP-004", "리프테라울쎄라", "combo", "리프테라 + 울쎄라"),
]


def target_area_rows() -> list[dict]:
    return [
        {"code": c, "name": n, "category": cat, "avg_shots": shots, "display_order": order}
        for c, n, cat, shots, order in TARGET_AREAS
    ]


def approval_setting_rows() -> list[dict]:
    return [
        {"setting_key": k, "setting_value": v, "description": d}
        for k, v, d in APPROVAL_SETTINGS
    ]


def procedure_rows() -> list[dict]:
    return [
        {
            "id": pid, "code": code, "name": name, "normalized_name": normalize(name),
            "category": cat, "subcategory": sub, "is_verified": True,
        }
        for pid, code, name, cat, sub in PROCEDURES
    ]


def alias_rows() -> list[dict]:
    return [
        {
            "id": aid, "procedure_id": pid, "alias_name": name,
            "normalized_name": normalize(name), "alias_type": atype,
            "confidence": conf, "is_verified": True,
        }
        for aid, pid, name, atype, conf in ALIASES
    ]


def package_rows() -> list[dict]:
    return [
        {
            "id": pid, "package_name": name, "normalized_name": normalize(name),
            "package_type": ptype, "description": desc, "is_official": True,
        }
        for pid, name, ptype, desc in PACKAGES
    ]


def seed(session: Session) -> None:
    """비어 있는 DB 에 기준 데이터를 넣습니다. 이미 있는 키는 건너뜁니다."""
    for model, rows, key in (
        (TargetArea,              target_area_rows(),      "code"),
        (MappingApprovalSettings, approval_setting_rows(), "setting_key"),
        (Procedure,               procedure_rows(),        "id"),
        (ProcedurePackage,        package_rows(),          "id"),
    ):
        for row in rows:
            if session.get(model, row[key]) is None:
                session.add(model(**row))
    session.flush()

    for row in alias_rows():
        if session.get(ProcedureAlias, row["id"]) is None:
            session.add(ProcedureAlias(**row))
