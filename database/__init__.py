"""
database 패키지 — SQLAlchemy ORM 모델 및 Alembic 마이그레이션

구조:
    database/
    ├── __init__.py      ← 이 파일 (Base 공통 임포트)
    ├── base.py          ← DeclarativeBase
    ├── models.py        ← ORM 모델 (시술·병원·가격·알림·후보)
    └── migrations/      ← Alembic 마이그레이션
        ├── env.py
        └── versions/
            ├── 0001_initial.py
            └── 0002_reference_data.py

마이그레이션 명령어:
    alembic upgrade head
    alembic revision --autogenerate -m "add column"
    alembic downgrade -1
"""

from database.base import Base  # noqa: F401 (다른 모듈에서 Base import용)
