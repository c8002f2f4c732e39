"""
pricing/refs.py — 시술 참조 식별자

가격 레코드·이력·알림의 procedure_id 컬럼은 세 종류의 참조를 담습니다.

    ProcedureId("PROC-SKIN-008")  → "PROC-SKIN-008"
    PackageId("PP-001")           → "PKG-PP-001"
    CandidateId("MC-1a2b3c4d")    → "UNMAPPED-MC-1a2b3c4d"

저장 형식(문자열)은 그대로 두고, 코드에서는 타입으로 구분합니다.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Union

PACKAGE_PREFIX   = "PKG-"
CANDIDATE_PREFIX = "UNMAPPED-"


@dataclass(frozen=True)
class ProcedureId:
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PackageId:
    value: str

    def __str__(self) -> str:
        return f"{PACKAGE_PREFIX}{self.value}"


@dataclass(frozen=True)
class CandidateId:
    value: str

    def __str__(self) -> str:
        return f"{CANDIDATE_PREFIX}{self.value}"


ProcedureRef = Union[ProcedureId, PackageId, CandidateId]


def parse_procedure_ref(text: str) -> ProcedureRef:
    """저장된 procedure_id 문자열을 참조 타입으로 되돌립니다."""
    if text.startswith(PACKAGE_PREFIX):
        return PackageId(text[len(PACKAGE_PREFIX):])
    if text.startswith(CANDIDATE_PREFIX):
        return CandidateId(text[len(CANDIDATE_PREFIX):])
    return ProcedureId(text)


def new_id(prefix: str) -> str:
    """MC-1a2b3c4d5e6f 형식의 신규 문자열 ID."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"
