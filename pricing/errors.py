"""
pricing/errors.py — 가격 코어 예외

    PricingError
    ├── InputError      식별 필드 누락, 가격 누락/음수, 입력 스키마 위반
    └── (DatabaseError) core.db 에서 정의, 저장소 실패 — 재시도하지 않음

후보 매칭 단계의 미스(fallthrough)는 예외가 아니라 다음 단계로 넘어갑니다.
팬아웃의 구독 병원별 실패는 로그로만 남기고 결과에 집계합니다.
"""

from __future__ import annotations

from core.db import DatabaseError

__all__ = ["PricingError", "InputError", "DatabaseError"]


class PricingError(Exception):
    """가격 코어 예외 기본 클래스."""


class InputError(PricingError, ValueError):
    """호출자 입력이 잘못된 경우. 상위 계층에서 400 류 응답으로 변환합니다."""
