from __future__ import annotations

import json
import logging
import sys

import pytest

from spanner_repro.utils.logging import (
    CLIENT_LOGGERS,
    JsonFormatter,
    _json_formatter,
    configure_logging,
)

EXPECTED_STATEMENTS = 13


@pytest.fixture(autouse=True)
def _restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    client_levels = {name: logging.getLogger(name).level for name in CLIENT_LOGGERS}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, client_level in client_levels.items():
        logging.getLogger(name).setLevel(client_level)


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello",
        args=(),
        exc_info=None,
    )


def test_json_formatter_promotes_standard_extra_fields() -> None:
    record = _record()
    record.statements = EXPECTED_STATEMENTS
    record.instance = "projects/p/instances/i"

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert payload["message"] == "hello"
    assert payload["statements"] == EXPECTED_STATEMENTS
    assert payload["instance"] == "projects/p/instances/i"
    assert "lineno" not in payload


def test_json_formatter_includes_exception_text() -> None:
    try:
        raise TimeoutError("create instance did not complete within 2s")
    except TimeoutError:
        record = logging.LogRecord(
            "test.logger", logging.ERROR, __file__, 1, "failed", (), sys.exc_info()
        )

    payload = json.loads(_json_formatter(record))

    assert payload["level"] == "ERROR"
    assert "within 2s" in payload["exc_info"]


def test_json_formatter_stringifies_unserializable_values() -> None:
    record = _record()
    record.hosts = ("localhost:9010", object())

    payload = json.loads(_json_formatter(record))

    assert payload["hosts"][0] == "localhost:9010"


def test_configure_logging_keeps_client_loggers_quieter() -> None:
    configure_logging(level="DEBUG", json_logs=False)

    assert logging.getLogger().level == logging.DEBUG
    for name in CLIENT_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_configure_logging_client_level_is_configurable() -> None:
    configure_logging(level="INFO", client_level="DEBUG")

    assert logging.getLogger("grpc").level == logging.DEBUG


def test_configure_logging_json_uses_json_formatter() -> None:
    configure_logging(level="INFO", json_logs=True)

    handlers = logging.getLogger().handlers
    assert handlers
    assert isinstance(handlers[0].formatter, JsonFormatter)
