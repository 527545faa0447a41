"""Tests for logging setup and formatters."""

import json
import logging
import sys

import pytest

from bandstat.utils.logging import (
    ColoredFormatter,
    JSONFormatter,
    create_logger_with_context,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def make_record(**extra):
    record = logging.makeLogRecord({
        "name": "engine", "levelname": "WARNING", "levelno": logging.WARNING,
        "msg": "rate %d not validated", "args": (32000,),
    })
    record.__dict__.update(extra)
    return record


class TestJSONFormatter:
    def test_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["level"] == "WARNING"
        assert data["logger"] == "engine"
        assert data["message"] == "rate 32000 not validated"
        assert "context" not in data

    def test_extra_goes_to_context(self):
        data = json.loads(JSONFormatter().format(make_record(file="mix.wav")))
        assert data["context"] == {"file": "mix.wav"}


class TestColoredFormatter:
    def test_colors_copy_only(self):
        record = make_record()
        text = ColoredFormatter("%(levelname)s %(message)s").format(record)
        assert "\033[33m" in text
        assert record.levelname == "WARNING"


class TestSetupLogging:
    def test_console_on_stderr(self):
        setup_logging(level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert root.handlers[0].stream is sys.stderr

    def test_file_handler_writes_json(self, tmp_path):
        log_file = tmp_path / "logs" / "bandstat.log"
        setup_logging(level="INFO", log_file=str(log_file), console_enabled=False)
        logging.getLogger("batch_processor").info("done")
        for handler in logging.getLogger().handlers:
            handler.flush()
        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "done"


class TestContextLogger:
    def test_context_is_attached(self, caplog):
        log = create_logger_with_context("batch_processor", {"file": "mix.wav"})
        with caplog.at_level(logging.INFO, logger="batch_processor"):
            log.info("loaded")
        assert caplog.records[-1].file == "mix.wav"
