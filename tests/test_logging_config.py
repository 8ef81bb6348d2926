"""Tests for log formatting"""

import json
import logging

from filelabels.logging_config import DevelopmentFormatter, JSONFormatter


def _record(message, **extra):
    record = logging.LogRecord("filelabels.test", logging.WARNING, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    """Test structured context ends up as top-level JSON keys"""
    output = json.loads(JSONFormatter().format(_record("Label quota exceeded", user_id="alice", max_labels=3)))

    assert output["level"] == "WARNING"
    assert output["logger"] == "filelabels.test"
    assert output["message"] == "Label quota exceeded"
    assert output["user_id"] == "alice"
    assert output["max_labels"] == 3
    assert "timestamp" in output


def test_development_formatter_appends_key_values():
    """Test readable lines carry the extra fields as key=value"""
    line = DevelopmentFormatter().format(_record("Label set", file_id=1, key="status"))

    assert "WARNING" in line
    assert "[filelabels.test] Label set" in line
    assert "file_id=1" in line
    assert "key=status" in line
