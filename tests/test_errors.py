import json
import logging

import stelle.errors as errors
from stelle.errors import format_error
from stelle.logs import setup_logging


def test_format_error_logs_json_and_returns_friendly(isolated_error_log):
    msg = format_error("backend_launch", "/m/a.mp3", {"elapsed": 3.0}, "No such file")

    assert msg == errors._FRIENDLY_MESSAGES["backend_launch"]
    entry = json.loads(isolated_error_log.read_text().splitlines()[-1])
    assert entry["stage"] == "backend_launch"
    assert entry["context"] == {"elapsed": 3.0}
    assert entry["error"] == "No such file"


def test_format_error_dev_mode_returns_entry(monkeypatch):
    monkeypatch.setattr(errors, "DEV_MODE", True)
    msg = format_error("whatever", raw="boom")
    assert json.loads(msg)["error"] == "boom"


def test_unknown_stage_gets_generic_message():
    assert "mystery" in format_error("mystery")


def test_setup_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "logs" / "stelle.log"
    logger = logging.getLogger("stelle")
    try:
        setup_logging("debug", log_file)
        logging.getLogger("stelle.player").debug("hello from player")
        for h in logger.handlers:
            h.flush()
        assert "hello from player" in log_file.read_text()
        assert logger.propagate is False
    finally:
        for h in logger.handlers:
            h.close()
        logger.handlers.clear()
        logger.propagate = True
