"""
Tests for the JSON log formatter.
"""
import json
import logging

from app.logging_config import JSONFormatter, build_logging_config


def _record(**extra):
    record = logging.LogRecord("app.services.upload_orchestrator", logging.INFO, __file__, 10,
                               "[Upload] %s done", ("plan.pdf",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formats_message_and_context():
    line = JSONFormatter().format(_record(project_id=4, category="Kitchen", unrelated="x"))
    entry = json.loads(line)

    assert entry["message"] == "[Upload] plan.pdf done"
    assert entry["level"] == "INFO"
    assert entry["project_id"] == 4
    assert entry["category"] == "Kitchen"
    assert "unrelated" not in entry


def test_unknown_format_falls_back_to_json():
    config = build_logging_config("debug", "xml")

    assert config["handlers"]["console"]["formatter"] == "json"
    assert config["root"]["level"] == "DEBUG"
    assert config["loggers"]["botocore"]["level"] == "WARNING"
