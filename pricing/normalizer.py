"""
pricing/normalizer.py — 시술명 정규화

모든 퍼지 조회(시술·별칭·패키지·후보)의 조인 키입니다.

    normalize("울쎄라 리프팅")   → "울쎄라리프팅"
    normalize("K-BOOSTER 주사") → "kbooster주사"
    normalize("HIFU(울쎄라)")   → "hifu울쎄라"
"""

from __future__ import annotations

import math
import re

_WHITESPACE = re.compile(r"\s+")
# 영문·숫자·밑줄·한글 음절 이외 문자 제거
_NON_WORD   = re.compile(r"[^0-9A-Za-z_가-힣]")


def normalize(raw: str) -> str:
    """소문자화 → 공백 제거 → 영숫자·밑줄·한글 음절 외 문자 제거. 멱등."""
    lowered = raw.lower()
    return _NON_WORD.sub("", _WHITESPACE.sub("", lowered))


def round_half_up(value: float) -> int:
    """0.5 는 양의 무한대 방향으로 반올림합니다 (-2.5 → -2, 2.5 → 3)."""
    return math.floor(value + 0.5)


def percent_of(delta: float, base: float) -> int:
    """delta / base 를 정수 퍼센트로 반올림합니다. base 는 0 이 아니어야 합니다."""
    return round_half_up(delta * 100 / base)
