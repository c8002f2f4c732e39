"""
core/db.py — SQLAlchemy 데이터베이스 연결 관리

전역 엔진 싱글턴 대신 Store 객체를 만들어 각 컴포넌트 생성자에 주입합니다.
테스트는 SQLite 파일 DB 로 Store 를 만들어 같은 코드를 그대로 실행합니다.

세션 사용법:
    from core.db import Store
    store = Store.from_settings()

    with store.session() as db:
        db.add(hospital)
    # ← 성공 시 커밋, 예외 시 롤백 후 DatabaseError

    resolver = HospitalResolver(store)

연결 풀 설정 (PostgreSQL):
    pool_size=5        동시 연결 수 (기본)
    max_overflow=10    풀 초과 시 추가 허용 연결
    pool_pre_ping=True 연결 유효성 사전 확인
    pool_recycle=1800  30분 후 연결 재생성 (RDS 유휴 타임아웃 대응)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

if TYPE_CHECKING:
    from core.config import Settings

logger = logging.getLogger(__name__)


class DatabaseError(RuntimeError):
    """저장소 읽기/쓰기 실패. 원인 SQLAlchemyError 는 __cause__ 로 연결됩니다."""


# ─────────────────────────────────────────────────────────────
# 엔진 생성
# ─────────────────────────────────────────────────────────────

def make_engine(
    url: str,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_recycle: int = 1800,
    connect_timeout: int = 10,
    echo: bool = False,
) -> Engine:
    """
    URL 방언에 맞는 엔진을 생성합니다.

    PostgreSQL 에만 풀 크기·connect_timeout·UTC 타임존 고정을 적용하고,
    SQLite(테스트) 는 스레드 간 연결 공유만 허용합니다.
    """
    url = url.replace("postgres://", "postgresql://", 1)

    if url.startswith("sqlite"):
        eng = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

        @event.listens_for(eng, "connect")
        def _sqlite_pragmas(dbapi_conn, connection_record):
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON")
            cur.close()

        return eng

    eng = create_engine(
        url,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_recycle=pool_recycle,
        echo=echo,
        connect_args={
            "connect_timeout": connect_timeout,
            "application_name": "medcheck-pricing",
        },
    )

    # 연결 이벤트: 타임존 고정
    @event.listens_for(eng, "connect")
    def _set_timezone(dbapi_conn, connection_record):
        with dbapi_conn.cursor() as cur:
            cur.execute("SET TIME ZONE 'UTC'")

    return eng


# ─────────────────────────────────────────────────────────────
# Store
# ─────────────────────────────────────────────────────────────

class Store:
    """엔진과 세션 팩토리를 묶은 저장소 핸들. 프로세스당 1개를 만들어 주입합니다."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,   # 커밋 후 객체 재조회 방지
        )

    @classmethod
    def from_url(cls, url: str, **engine_kwargs) -> "Store":
        return cls(make_engine(url, **engine_kwargs))

    @classmethod
    def from_settings(cls, settings: Optional["Settings"] = None) -> "Store":
        from core.config import get_settings

        s = settings or get_settings()
        if not s.DATABASE_URL:
            raise DatabaseError("DATABASE_URL 이 설정되지 않았습니다.")
        store = cls.from_url(
            s.sqlalchemy_url,
            pool_size=s.DB_POOL_SIZE,
            max_overflow=s.DB_MAX_OVERFLOW,
            pool_recycle=s.DB_POOL_RECYCLE,
            connect_timeout=s.DB_CONNECT_TIMEOUT,
            echo=s.DB_ECHO,
        )
        logger.info("SQLAlchemy 엔진 초기화 완료 | dialect=%s", store.engine.dialect.name)
        return store

    # ── 세션 컨텍스트 매니저 ─────────────────────────────────

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        SQLAlchemy 세션 컨텍스트 매니저.

        성공 시 커밋, 예외 시 롤백, 항상 닫음.
        SQLAlchemyError 는 DatabaseError 로 변환됩니다. 그 외 예외는 그대로 전파.
        """
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise DatabaseError(f"DB 작업 실패: {exc.__class__.__name__}: {exc}") from exc
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    # ── 스키마 / 헬스체크 ───────────────────────────────────

    def create_all(self) -> None:
        """ORM 메타데이터로 테이블을 생성합니다 (개발·테스트 전용, 운영은 alembic)."""
        from database.base import Base
        import database.models  # noqa: F401  ← 모델 등록

        Base.metadata.create_all(self.engine)

    def ping(self) -> bool:
        """DB 연결 가능 여부를 확인합니다. True 반환 시 정상."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.error("DB 연결 실패: %s", exc)
            return False

    def dispose(self) -> None:
        self.engine.dispose()
