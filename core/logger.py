"""
core/logger.py — MedCheck 가격 인텔리전스 구조화 로깅

아키텍처:
    structlog ──► stdlib.LoggerFactory ──► 핸들러
                                           ├── StreamHandler     (콘솔)
                                           │     개발: 컬러 콘솔
                                           │     프로덕션: JSON
                                           └── RotatingFileHandler (파일, 선택)
                                                 항상 JSON
                                                 10 MB 초과 시 자동 교체

    ProcessorFormatter 가 각 핸들러에서 최종 렌더링을 담당합니다.
    sqlalchemy / alembic / boto3 로그도 동일한 파이프라인을 통과합니다.

Context Injection:
    가격 등록 한 건의 모든 로그에 hospital_id / procedure_id / phase 가 포함됩니다.
    contextvars 기반이므로 팬아웃 스레드에서는 subscriber_id 를 따로 바인딩합니다.

JSON 출력 예시:
    {
        "@timestamp":   "2026-10-18T10:00:00.000000Z",
        "level":        "info",
        "logger":       "pricing.alerts",
        "message":      "가격 변동 알림 생성",
        "service":      "medcheck-pricing",
        "hospital_id":  "HOSP-AUTO-1a2b3c4d",
        "procedure_id": "PROC-SKIN-008",
        "phase":        "Fanout",
        "subscriber_id": "HOSP-0002",
        "severity":     "urgent"
    }

────────────────────────────────────────────────────────────────
빠른 시작:

    from core.logger import configure_logging, get_logger, log_context, Phase
    configure_logging()
    logger = get_logger(__name__)

    with log_context(hospital_id="H1", phase=Phase.INGEST):
        logger.info("가격 등록 시작")
        with log_context(procedure_id="PROC-SKIN-008", phase=Phase.HISTORY):
            logger.info("이력 기록", change_percent=-20)

────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import socket
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Optional

import structlog
from structlog.stdlib import ProcessorFormatter

# ─────────────────────────────────────────────────────────────
# 처리 단계 상수
# ─────────────────────────────────────────────────────────────

class Phase:
    """
    로그 컨텍스트에 사용하는 처리 단계 식별자.

    Usage:
        with log_context(phase=Phase.RESOLVE):
            logger.info("시술명 매칭")
    """
    INGEST    = "Ingest"          # register_price 진입
    RESOLVE   = "Resolve"         # 병원·시술 식별
    CANDIDATE = "Candidate"       # 매핑 후보 누적·승인 조건 평가
    HISTORY   = "History"         # 가격 이력 append
    FANOUT    = "Fanout"          # 경쟁 병원 알림 생성
    DB_WRITE  = "DB Write"        # 스냅샷 UPSERT / 통계 갱신
    CLI       = "CLI"             # 커맨드라인 배치
    INIT      = "Initialization"  # 앱 초기화


# ─────────────────────────────────────────────────────────────
# 내부 상수
# ─────────────────────────────────────────────────────────────

_LOG_DIR  = Path(os.getenv("LOG_DIR", "logs"))
_HOSTNAME = socket.gethostname()
_SERVICE  = "medcheck-pricing"


# ─────────────────────────────────────────────────────────────
# 커스텀 structlog 프로세서
# ─────────────────────────────────────────────────────────────

def _add_service_context(
    logger: Any, method: str, event_dict: dict
) -> dict:
    """모든 로그에 서비스·호스트 메타를 삽입합니다."""
    event_dict.setdefault("service", _SERVICE)
    event_dict.setdefault("host",    _HOSTNAME)
    return event_dict


def _rename_event_to_message(
    logger: Any, method: str, event_dict: dict
) -> dict:
    """structlog 의 'event' 키를 'message' 로 변경합니다 (JSON 핸들러 전용)."""
    event_dict["message"] = event_dict.pop("event", "")
    return event_dict


# ─────────────────────────────────────────────────────────────
# 공유 프로세서 체인
# ─────────────────────────────────────────────────────────────

def _build_shared_processors() -> list:
    """
    structlog 과 stdlib 핸들러(foreign_pre_chain) 양쪽에서 공유하는 프로세서 목록.

    실행 순서:
        1. contextvars  → hospital_id / procedure_id / phase 병합
        2. add_log_level
        3. add_logger_name
        4. PositionalArgumentsFormatter → '%s' 스타일 메시지 지원
        5. TimeStamper → "@timestamp" (UTC ISO 8601)
        6. StackInfoRenderer
        7. _add_service_context
    """
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="@timestamp"),
        structlog.processors.StackInfoRenderer(),
        _add_service_context,
    ]


# ─────────────────────────────────────────────────────────────
# 로깅 설정
# ─────────────────────────────────────────────────────────────

def configure_logging(
    level:     str | None  = None,
    json_logs: bool | None = None,
    log_file:  bool        = False,
) -> None:
    """
    structlog + stdlib logging 을 통합 설정합니다.

    Args:
        level:     로그 레벨 (기본: settings.LOG_LEVEL)
        json_logs: 콘솔 JSON 강제 여부 (기본: LOG_FORMAT, auto 면 production 일 때 JSON)
        log_file:  logs/medcheck.log 회전 파일 핸들러 활성화
    """
    from core.config import get_settings

    settings      = get_settings()
    log_level_str = (level or settings.LOG_LEVEL).upper()
    log_level     = getattr(logging, log_level_str, logging.INFO)

    if json_logs is None:
        fmt = settings.LOG_FORMAT.lower()
        json_logs = settings.is_production if fmt == "auto" else fmt == "json"

    shared = _build_shared_processors()

    # ── ① structlog 설정 (stdlib 브릿지) ─────────────────────
    #  wrap_for_formatter 는 반드시 마지막.
    structlog.configure(
        processors=shared + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    # ── ② 콘솔 포매터 ────────────────────────────────────────
    _console_renderer = (
        structlog.processors.JSONRenderer(ensure_ascii=False)
        if json_logs
        else structlog.dev.ConsoleRenderer(
            colors=sys.stderr.isatty() or sys.stdout.isatty(),
            sort_keys=False,
        )
    )
    console_formatter = ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            ProcessorFormatter.remove_processors_meta,
            structlog.processors.ExceptionRenderer(),
            _console_renderer,
        ],
    )

    # ── ③ 핸들러 조립 ────────────────────────────────────────
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    console_handler.setLevel(log_level)

    all_handlers: list[logging.Handler] = [console_handler]

    if log_file:
        file_formatter = ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                ProcessorFormatter.remove_processors_meta,
                structlog.processors.ExceptionRenderer(),
                _rename_event_to_message,
                structlog.processors.JSONRenderer(ensure_ascii=False),
            ],
        )
        _LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename    = str(_LOG_DIR / "medcheck.log"),
            maxBytes    = 10 * 1024 * 1024,  # 10 MB
            backupCount = 5,
            encoding    = "utf-8",
            delay       = True,
        )
        file_handler.setFormatter(file_formatter)
        file_handler.setLevel(log_level)
        all_handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers.clear()
    for h in all_handlers:
        root.addHandler(h)
    root.setLevel(log_level)

    # ── ④ 외부 라이브러리 로그 레벨 조정 ────────────────────
    _library_levels: dict[str, str] = {
        "sqlalchemy.engine": "INFO" if settings.DB_ECHO else "WARNING",
        "sqlalchemy.pool":   "WARNING",
        "alembic":           "INFO",
        "boto3":             "WARNING",
        "botocore":          "WARNING",
        "urllib3":           "WARNING",
    }
    for lib_name, lib_level in _library_levels.items():
        logging.getLogger(lib_name).setLevel(
            getattr(logging, lib_level, logging.WARNING)
        )

    structlog.get_logger(__name__).info(
        "로깅 초기화 완료",
        level   = log_level_str,
        console = "json" if json_logs else "color",
        file    = str(_LOG_DIR / "medcheck.log") if log_file else "disabled",
        phase   = Phase.INIT,
    )


# ─────────────────────────────────────────────────────────────
# Context Injection API
# ─────────────────────────────────────────────────────────────

def bind_log_context(
    *,
    hospital_id:   Optional[str] = None,
    procedure_id:  Optional[str] = None,
    phase:         Optional[str] = None,
    subscriber_id: Optional[str] = None,
    **extra: Any,
) -> None:
    """
    현재 스레드의 로그 컨텍스트를 설정합니다.

    None 인 키는 무시하고, 지정한 키만 추가/업데이트합니다.
    """
    ctx = {k: v for k, v in {
        "hospital_id":   hospital_id,
        "procedure_id":  procedure_id,
        "phase":         phase,
        "subscriber_id": subscriber_id,
        **extra,
    }.items() if v is not None}

    if ctx:
        structlog.contextvars.bind_contextvars(**ctx)


def clear_log_context() -> None:
    """현재 스레드의 모든 로그 컨텍스트를 초기화합니다."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(
    *,
    hospital_id:   Optional[str] = None,
    procedure_id:  Optional[str] = None,
    phase:         Optional[str] = None,
    subscriber_id: Optional[str] = None,
    **extra: Any,
) -> Generator[None, None, None]:
    """
    로그 컨텍스트를 설정하고 블록 종료 시 이전 상태로 복원하는 컨텍스트 매니저.

    중첩 사용 가능. 예외가 발생해도 외부 컨텍스트가 복원됩니다.

    Usage:
        with log_context(hospital_id="H1", phase=Phase.INGEST):
            logger.info("등록 시작")
            with log_context(phase=Phase.FANOUT):
                logger.info("알림 생성")      # hospital_id=H1, phase=Fanout
            logger.info("등록 완료")          # phase=Ingest (복원됨)
    """
    previous = structlog.contextvars.get_contextvars().copy()

    bind_log_context(
        hospital_id   = hospital_id,
        procedure_id  = procedure_id,
        phase         = phase,
        subscriber_id = subscriber_id,
        **extra,
    )
    try:
        yield
    finally:
        structlog.contextvars.clear_contextvars()
        if previous:
            structlog.contextvars.bind_contextvars(**previous)


# ─────────────────────────────────────────────────────────────
# 편의 함수
# ─────────────────────────────────────────────────────────────

def get_logger(name: str = __name__) -> Any:
    """
    모듈별 structlog 로거를 반환합니다.

    Usage:
        logger = get_logger(__name__)
        logger.info("처리 완료", count=5)
    """
    return structlog.get_logger(name)
