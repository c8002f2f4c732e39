"""
CLI 진입점 테스트
"""

import json

import pytest

from core.db import Store
from database.models import PriceRecord
from pricing.cli import main


@pytest.fixture
def db_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    assert main(["--database-url", url, "init-db", "--seed"]) == 0
    return url


def _write_lines(path, items):
    path.write_text("\n".join(
        item if isinstance(item, str) else json.dumps(item, ensure_ascii=False)
        for item in items
    ), encoding="utf-8")
    return path


@pytest.mark.integration
class TestCli:
    def test_ingest(self, tmp_path, db_url, capsys):
        src = _write_lines(tmp_path / "prices.jsonl", [
            {"hospital": {"hospital_id": "H1"}, "procedure": {"procedure_name": "써마지"},
             "price": {"price": 1500000, "shot_count": 600}},
            {"hospital": {"source_url": "https://busan-skin.kr"}, "procedure": {"procedure_name": "신상 리프팅"},
             "price": {"price": 300000}},
        ])
        assert main(["--database-url", db_url, "ingest", str(src)]) == 0
        out = capsys.readouterr().out
        assert '"registered": 2' in out
        assert '"candidates": 1' in out

        store = Store.from_url(db_url)
        with store.session() as db:
            assert db.query(PriceRecord).count() == 2
        store.dispose()

    def test_ingest_invalid_lines(self, tmp_path, db_url, capsys):
        src = _write_lines(tmp_path / "bad.jsonl", [
            "{not json",
            {"hospital": {}, "procedure": {"procedure_name": "써마지"}, "price": {"price": -1}},
            {"hospital": {}, "procedure": {"procedure_name": "써마지"}, "price": {"price": 1000}},
        ])
        assert main(["--database-url", db_url, "ingest", str(src)]) == 2
        out = capsys.readouterr().out
        assert '"invalid": 2' in out
        assert '"registered": 1' in out

    def test_ingest_dry_run_writes_nothing(self, tmp_path, db_url):
        src = _write_lines(tmp_path / "dry.jsonl", [
            {"hospital": {}, "procedure": {"procedure_name": "써마지"}, "price": {"price": 1000}},
        ])
        assert main(["--database-url", db_url, "ingest", "--dry-run", str(src)]) == 0

        store = Store.from_url(db_url)
        with store.session() as db:
            assert db.query(PriceRecord).count() == 0
        store.dispose()

    def test_compare_and_candidates(self, tmp_path, db_url, capsys):
        src = _write_lines(tmp_path / "p.jsonl", [
            {"hospital": {"hospital_id": "H1"}, "procedure": {"procedure_id": "PROC-SKIN-009"},
             "price": {"price": 1500000}},
        ])
        main(["--database-url", db_url, "ingest", str(src)])
        capsys.readouterr()

        assert main(["--database-url", db_url, "compare", "PROC-SKIN-009"]) == 0
        assert '"procedure_id": "PROC-SKIN-009"' in capsys.readouterr().out

        assert main(["--database-url", db_url, "candidates", "--status", "all"]) == 0
        assert main(["--database-url", db_url, "alerts", "--unread"]) == 0
