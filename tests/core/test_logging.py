from __future__ import annotations

import json
import logging
import sys

from progress_service.core.logging import _ContainerFormatter, _JsonFormatter, setup_logging


def _record(level: int = logging.INFO, msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="progress_service.services.progress_service",
        level=level,
        pathname="progress_service.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ---- setup_logging ----


def test_setup_sets_root_level() -> None:
    setup_logging("debug")
    assert logging.getLogger().level == logging.DEBUG
    setup_logging("nonsense")
    assert logging.getLogger().level == logging.INFO


def test_setup_keeps_dependencies_quiet() -> None:
    setup_logging("debug")
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    setup_logging("error")
    assert logging.getLogger("uvicorn").level == logging.ERROR


def test_setup_installs_single_handler() -> None:
    setup_logging("info", json_format=True)
    setup_logging("info", json_format=True)
    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert isinstance(handlers[0].formatter, _JsonFormatter)
    setup_logging("info")


# ---- container format ----


def test_container_info_has_no_location() -> None:
    out = _ContainerFormatter().format(_record())
    assert "hello" in out
    assert "[progress_service.py:" not in out


def test_container_warning_has_location() -> None:
    out = _ContainerFormatter().format(_record(logging.WARNING, "rejected"))
    assert "[progress_service.py:42]" in out


# ---- JSON format ----


def test_json_lifts_domain_context() -> None:
    out = _JsonFormatter().format(
        _record(user_id="u-1", lesson_id="l-9", request_id="req-1")
    )
    parsed = json.loads(out)
    assert parsed["message"] == "hello"
    assert parsed["level"] == "INFO"
    assert parsed["user_id"] == "u-1"
    assert parsed["lesson_id"] == "l-9"
    assert parsed["request_id"] == "req-1"


def test_json_omits_unset_context() -> None:
    parsed = json.loads(_JsonFormatter().format(_record(request_id="-")))
    assert "request_id" not in parsed
    assert "user_id" not in parsed


def test_json_includes_exception() -> None:
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record(logging.ERROR, "failed")
        record.exc_info = sys.exc_info()
    parsed = json.loads(_JsonFormatter().format(record))
    assert "ValueError: boom" in parsed["exception"]
