"""
pricing/models.py — Pydantic v2 입력 모델

스크래퍼 → 가격 코어 전달 구조:

  HospitalInfo   : 병원 식별 정보 (id / 도메인 / 이름 / 출처 URL)
  ProcedureInfo  : 시술 식별 정보 (id 또는 원문 시술명)
  PriceInfo      : 가격 및 단위 정보 (샷·cc·회차, 부위, 이벤트)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator


def _blank_to_none(v: object) -> object:
    if isinstance(v, str) and not v.strip():
        return None
    return v


# ─────────────────────────────────────────────────────────────
# 1. 병원
# ─────────────────────────────────────────────────────────────

class HospitalInfo(BaseModel):
    """병원 식별 정보. 모든 필드가 비어 있으면 병원 없이 가격만 저장됩니다."""

    hospital_id:   Optional[str] = None
    hospital_name: Optional[str] = None
    domain:        Optional[str] = None
    source_url:    Optional[str] = None
    region:        Optional[str] = None
    category:      Optional[str] = None
    address:       Optional[str] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("*", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return _blank_to_none(v)

    @field_validator("domain")
    @classmethod
    def lower_domain(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v


# ─────────────────────────────────────────────────────────────
# 2. 시술
# ─────────────────────────────────────────────────────────────

class ProcedureInfo(BaseModel):
    """
    시술 식별 정보.

    procedure_id 가 있으면 매칭 없이 그대로 사용합니다.
    없으면 procedure_name (크롤링 원문) 으로 단계별 매칭을 수행합니다.
    """

    procedure_id:   Optional[str] = None
    procedure_name: Optional[str] = Field(None, max_length=500)

    model_config = {"str_strip_whitespace": True}

    @field_validator("procedure_id", "procedure_name", mode="before")
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return _blank_to_none(v)


# ─────────────────────────────────────────────────────────────
# 3. 가격
# ─────────────────────────────────────────────────────────────

class PriceInfo(BaseModel):
    """
    가격 1건.

    유효성 규칙:
      - price 는 필수, 0 초과 정수 (원)
      - target_area_code 미지정 시 UNKNOWN, 대문자로 통일
      - shot_count / session_count / volume_cc 는 0 초과일 때만 단위 가격 계산에 사용
    """

    price:            int             = Field(..., gt=0, description="원 단위 가격")
    price_type:       Optional[str]   = None
    original_text:    Optional[str]   = None
    target_area_code: str             = "UNKNOWN"

    shot_count:       Optional[int]   = Field(None, ge=0)
    volume_cc:        Optional[float] = Field(None, ge=0)
    session_count:    Optional[int]   = Field(None, ge=0)

    source_url:       Optional[str]   = None
    source_type:      Optional[str]   = None
    screenshot_id:    Optional[str]   = None

    is_event:         Optional[bool]      = None
    event_name:       Optional[str]       = None
    event_end_date:   Optional[str]       = None
    includes_items:   Optional[list[str]] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator(
        "price_type", "original_text", "source_url", "source_type",
        "screenshot_id", "event_name", "event_end_date",
        mode="before",
    )
    @classmethod
    def empty_to_none(cls, v: object) -> object:
        return _blank_to_none(v)

    @field_validator("target_area_code", mode="before")
    @classmethod
    def default_area(cls, v: object) -> object:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "UNKNOWN"
        return v.strip().upper() if isinstance(v, str) else v
