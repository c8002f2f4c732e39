"""
pricing/cli.py — 커맨드라인 진입점

    python -m pricing.cli ingest prices.jsonl [--dry-run]
    python -m pricing.cli candidates [--status pending_review] [--limit 50]
    python -m pricing.cli alerts [--subscriber HOSP-001] [--unread]
    python -m pricing.cli compare PROC-SKIN-008 [--area FACE_FULL] [--region 강남]
    python -m pricing.cli init-db [--seed]

ingest 입력 (JSON Lines, 스크래퍼 출력 1줄 = 가격 1건):
    {"hospital": {"hospital_name": "강남스킨의원", "source_url": "https://gangnam-clinic.kr"},
     "procedure": {"procedure_name": "울쎄라 리프팅"},
     "price": {"price": 500000, "shot_count": 300, "target_area_code": "FACE_FULL"}}

공통 옵션:
    --database-url   DATABASE_URL 대신 사용할 URL (예: sqlite:///local.db)
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import structlog
from pydantic import ValidationError

from core.config import get_settings, validate_settings
from core.db import Store
from core.logger import Phase, bind_log_context, configure_logging, log_context
from pricing import queries
from pricing.errors import InputError
from pricing.ingest import PriceIngestor
from pricing.models import HospitalInfo, PriceInfo, ProcedureInfo

logger = structlog.get_logger(__name__)


def _open_store(args: argparse.Namespace) -> Store:
    if args.database_url:
        return Store.from_url(args.database_url)
    validate_settings()
    return Store.from_settings()


def _print_json(payload: object) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


# ── 서브커맨드 ────────────────────────────────────────────────

def cmd_ingest(args: argparse.Namespace) -> int:
    path = Path(args.file)
    store = None if args.dry_run else _open_store(args)
    ingestor = (
        PriceIngestor.from_store(store, fanout_workers=get_settings().FANOUT_MAX_WORKERS)
        if store else None
    )

    stats = {"lines": 0, "registered": 0, "candidates": 0, "alerts": 0, "invalid": 0}
    with log_context(phase=Phase.CLI, source_file=str(path)):
        with path.open(encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                if not line.strip():
                    continue
                stats["lines"] += 1
                bind_log_context(line=lineno)
                try:
                    item = json.loads(line)
                    if ingestor is None:
                        HospitalInfo.model_validate(item.get("hospital") or {})
                        ProcedureInfo.model_validate(item.get("procedure") or {})
                        PriceInfo.model_validate(item.get("price") or {})
                        continue
                    result = ingestor.register_price(
                        item.get("hospital"), item.get("procedure"), item.get("price")
                    )
                except (json.JSONDecodeError, AttributeError, ValidationError, InputError) as exc:
                    stats["invalid"] += 1
                    logger.warning("입력 라인 건너뜀", line=lineno, error=str(exc))
                    continue

                stats["registered"] += 1
                stats["candidates"] += int(result.is_candidate)
                stats["alerts"] += result.alerts_emitted

    logger.info("일괄 등록 완료", **stats)
    _print_json(stats)
    return 0 if stats["invalid"] == 0 else 2


def cmd_candidates(args: argparse.Namespace) -> int:
    status = None if args.status == "all" else args.status
    _print_json(queries.list_candidates(_open_store(args), status=status, limit=args.limit))
    return 0


def cmd_alerts(args: argparse.Namespace) -> int:
    _print_json(queries.list_alerts(
        _open_store(args),
        subscriber_id=args.subscriber,
        unread_only=args.unread,
        limit=args.limit,
    ))
    return 0


def cmd_compare(args: argparse.Namespace) -> int:
    _print_json(queries.compare_prices(
        _open_store(args), args.procedure_id,
        target_area_code=args.area, region=args.region,
    ))
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    from database.reference_data import seed

    store = _open_store(args)
    store.create_all()
    if args.seed:
        with store.session() as db:
            seed(db)
    logger.info("DB 초기화 완료", seed=args.seed, phase=Phase.INIT)
    return 0


# ── 진입점 ────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pricing", description="MedCheck 가격 인텔리전스 CLI")
    parser.add_argument("--database-url", default=None, help="DATABASE_URL 대신 사용할 DB URL")
    parser.add_argument("--log-level", default=None, help="로그 레벨 (기본: LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("ingest", help="JSON Lines 가격 파일 일괄 등록")
    p.add_argument("file", help="JSON Lines 파일 경로")
    p.add_argument("--dry-run", action="store_true", help="입력 검증만 수행")
    p.set_defaults(func=cmd_ingest)

    p = sub.add_parser("candidates", help="매핑 후보 목록")
    p.add_argument(
        "--status", default="pending_review",
        choices=["collecting", "pending_review", "approved", "rejected", "all"],
    )
    p.add_argument("--limit", type=int, default=50)
    p.set_defaults(func=cmd_candidates)

    p = sub.add_parser("alerts", help="가격 변동 알림 목록")
    p.add_argument("--subscriber", default=None, help="구독 병원 ID")
    p.add_argument("--unread", action="store_true", help="읽지 않은 알림만")
    p.add_argument("--limit", type=int, default=50)
    p.set_defaults(func=cmd_alerts)

    p = sub.add_parser("compare", help="시술 병원별 가격 비교")
    p.add_argument("procedure_id")
    p.add_argument("--area", default=None, help="부위 코드 (예: FACE_FULL)")
    p.add_argument("--region", default=None, help="지역 (부분 일치)")
    p.set_defaults(func=cmd_compare)

    p = sub.add_parser("init-db", help="테이블 생성 (개발용, 운영은 alembic upgrade head)")
    p.add_argument("--seed", action="store_true", help="기준 데이터 입력")
    p.set_defaults(func=cmd_init_db)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
