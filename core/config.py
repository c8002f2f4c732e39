"""
core/config.py — MedCheck 가격 인텔리전스 통합 설정

시크릿 로드 우선순위:
  1. AWS Secrets Manager  (ENVIRONMENT=production 일 때)
  2. 환경 변수 / .env 파일 (로컬 개발)

사용법:
    from core.config import get_settings

    s = get_settings()
    url = s.DATABASE_URL
    print(s.is_production)

─────────────────────────────────────────────────────────────────
[설정값 vs 비즈니스 규칙]

 여기에는 "배포 환경마다 달라지는 값"만 둡니다.

   DATABASE_URL / 풀 크기 / 로그 레벨 / 팬아웃 동시성   → Settings
   별칭 신뢰도 80 / 알림 10% / 긴급 20% / 2-of-N 규칙  → pricing 모듈 상수
   후보 승인 조건 min_cases / min_days                  → mapping_approval_settings 테이블

 임계값을 환경 변수로 빼면 환경마다 알림 결과가 달라지므로 코드 상수로 고정합니다.
─────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# -------------------------------------------------------
# Secrets Manager 헬퍼
# -------------------------------------------------------

def _fetch_secret(secret_id: str, region: str) -> dict[str, Any]:
    """Secrets Manager 에서 JSON 시크릿을 가져옵니다. 실패 시 빈 딕셔너리 반환."""
    import boto3

    try:
        client = boto3.client("secretsmanager", region_name=region)
        raw = client.get_secret_value(SecretId=secret_id)["SecretString"]
        return json.loads(raw)
    except (BotoCoreError, ClientError, KeyError, ValueError) as exc:
        logger.debug("Secrets Manager 조회 실패 [%s]: %s", secret_id, exc)
        return {}


def _load_secrets(region: str) -> dict[str, Any]:
    """프로젝트 시크릿을 일괄 로드합니다."""
    combined: dict[str, Any] = {}
    for key in ("DATABASE_URL",):
        combined.update(_fetch_secret(f"medcheck/{key}", region))
    return combined


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("정수가 아닌 설정값 무시 [%s=%r] → 기본값 %d", key, raw, default)
        return default


# -------------------------------------------------------
# 설정 데이터클래스
# -------------------------------------------------------

@dataclass(frozen=True)
class Settings:
    # ── 민감 정보 ────────────────────────────────────────
    DATABASE_URL: str

    # ── AWS ──────────────────────────────────────────────
    AWS_REGION: str = "ap-northeast-2"

    # ── 배포 환경 ─────────────────────────────────────────
    ENVIRONMENT: str = "development"

    # ── DB 연결 풀 ────────────────────────────────────────
    DB_POOL_SIZE: int       = 5
    DB_MAX_OVERFLOW: int    = 10
    DB_POOL_RECYCLE: int    = 1800  # 초
    DB_CONNECT_TIMEOUT: int = 10    # 초
    DB_ECHO: bool           = False

    # ── 가격 변동 팬아웃 ──────────────────────────────────
    FANOUT_MAX_WORKERS: int = 8     # 구독 병원별 알림 생성 동시 스레드 수

    # ── 로깅 ──────────────────────────────────────────────
    LOG_LEVEL: str  = "INFO"
    LOG_FORMAT: str = "auto"        # auto | json | console

    # ── 편의 프로퍼티 ─────────────────────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def sqlalchemy_url(self) -> str:
        # SQLAlchemy 2.x: postgres:// → postgresql://
        return self.DATABASE_URL.replace("postgres://", "postgresql://", 1)


# -------------------------------------------------------
# 싱글톤 팩토리
# -------------------------------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Settings 싱글톤을 반환합니다.

    - production: Secrets Manager 우선 → 환경 변수 fallback
    - 그 외: 환경 변수 / .env 만 사용
    """
    env    = os.getenv("ENVIRONMENT", "development")
    region = os.getenv("AWS_REGION", "ap-northeast-2")

    secrets: dict[str, Any] = {}
    if env == "production":
        logger.info("Secrets Manager에서 시크릿 로드 중...")
        secrets = _load_secrets(region)

    def resolve(key: str) -> str:
        """Secrets Manager → 환경 변수 순으로 값 탐색"""
        return secrets.get(key) or os.getenv(key, "")

    return Settings(
        DATABASE_URL       = resolve("DATABASE_URL"),
        AWS_REGION         = region,
        ENVIRONMENT        = env,
        DB_POOL_SIZE       = _int_env("DB_POOL_SIZE", 5),
        DB_MAX_OVERFLOW    = _int_env("DB_MAX_OVERFLOW", 10),
        DB_POOL_RECYCLE    = _int_env("DB_POOL_RECYCLE", 1800),
        DB_CONNECT_TIMEOUT = _int_env("DB_CONNECT_TIMEOUT", 10),
        DB_ECHO            = os.getenv("DB_ECHO", "").lower() in ("1", "true", "yes"),
        FANOUT_MAX_WORKERS = max(1, _int_env("FANOUT_MAX_WORKERS", 8)),
        LOG_LEVEL          = os.getenv("LOG_LEVEL", "INFO"),
        LOG_FORMAT         = os.getenv("LOG_FORMAT", "auto"),
    )


# -------------------------------------------------------
# 시작 시 필수 값 검증
# -------------------------------------------------------

def validate_settings() -> None:
    """앱 시작 시 호출하여 필수 설정이 모두 있는지 확인합니다."""
    s = get_settings()
    missing = []

    if not s.DATABASE_URL:
        missing.append("DATABASE_URL")

    if missing:
        raise ValueError(
            f"필수 시크릿 누락: {', '.join(missing)}\n"
            "  운영: aws secretsmanager put-secret-value --secret-id medcheck/<KEY> ...\n"
            "  로컬: .env 파일에 KEY=value 형식으로 추가"
        )

    logger.info(
        "설정 로드 완료 | env=%s | DB=%s | fanout_workers=%d",
        s.ENVIRONMENT,
        "OK" if s.DATABASE_URL else "MISSING",
        s.FANOUT_MAX_WORKERS,
    )
