# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

from liquitask.logging_setup import _ConsoleNoiseFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_quiets_storage_media_and_third_parties() -> None:
    f = _ConsoleNoiseFilter()

    assert f.filter(_record("liquitask.tasks.task_service", logging.DEBUG))
    assert not f.filter(_record("liquitask.storage.local_sqlite", logging.INFO))
    assert f.filter(_record("liquitask.storage.local_sqlite", logging.WARNING))
    assert not f.filter(_record("py.warnings", logging.WARNING))
    assert not f.filter(_record("pydantic", logging.WARNING))
    assert f.filter(_record("pydantic", logging.ERROR))


def test_setup_logging_writes_log_file(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        setup_logging(log_dir=tmp_path)
        logging.getLogger("liquitask.test").info("hello file")
        for h in root.handlers:
            h.flush()
        assert "hello file" in (tmp_path / "liquitask.log").read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved[0]:
            root.addHandler(h)
        root.setLevel(saved[1])
        logging.captureWarnings(False)
