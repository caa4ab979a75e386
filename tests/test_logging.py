import json
import logging

from qr_dining.logging_config import JsonFormatter, setup_logging


def test_json_formatter():
    record = logging.LogRecord("qr_dining.test", logging.WARNING, __file__, 1, "relay %s", ("down",), None)
    data = json.loads(JsonFormatter().format(record))
    assert data["level"] == "WARNING"
    assert data["logger"] == "qr_dining.test"
    assert data["message"] == "relay down"


def test_setup_logging_replaces_root_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(level="debug", fmt="json")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
