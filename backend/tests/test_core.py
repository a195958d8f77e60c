"""
Tests for configuration, exceptions and structured logging.
"""

import json
import logging
import sys

import pytest
from pydantic import ValidationError

from autosolve.core.config import Settings
from autosolve.core.exceptions import (
    ERROR_MESSAGES,
    DiagnosisException,
    ErrorCode,
    StorageCorruptedException,
    StorageException,
    ValidationException,
    get_error_message,
)
from autosolve.core.logging import PerformanceLogger, StructuredJsonFormatter, setup_logging


class TestSettings:
    """Test settings defaults and validation."""

    def test_default_limits(self):
        settings = Settings(TIMEZONE="UTC")
        assert settings.weekly_limits == {"free": 2, "premium": 20, "trial": 10}
        assert settings.TRIAL_DURATION_DAYS == 2
        assert settings.HISTORY_MAX_SESSIONS == 50
        assert settings.FOLLOW_UP_DAYS == 3

    def test_limits_overridable_from_env(self, monkeypatch):
        monkeypatch.setenv("FREE_WEEKLY_SCANS", "5")
        assert Settings().weekly_limits["free"] == 5

    def test_tzinfo(self):
        assert Settings(TIMEZONE="Europe/Berlin").tzinfo.key == "Europe/Berlin"
        assert Settings(TIMEZONE="").tzinfo is None

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            Settings(TIMEZONE="Mars/Olympus_Mons")

    def test_unknown_key_strategy_rejected(self):
        with pytest.raises(ValidationError):
            Settings(STATS_KEY_STRATEGY="md5")


class TestExceptions:
    """Test the exception hierarchy."""

    def test_to_dict(self):
        exc = ValidationException("Please enter a vehicle make and model", field="vehicle")
        payload = exc.to_dict()["error"]
        assert payload["code"] == ErrorCode.VALIDATION_ERROR.value
        assert payload["message"] == "Please enter a vehicle make and model"
        assert payload["user_message"] == get_error_message(ErrorCode.VALIDATION_ERROR)
        assert payload["details"] == {"field": "vehicle"}

    def test_corrupted_is_storage_exception(self):
        exc = StorageCorruptedException(key="settings-storage", original_error=ValueError("bad"))
        assert isinstance(exc, StorageException)
        assert exc.code == ErrorCode.STORAGE_CORRUPTED
        assert exc.details == {"key": "settings-storage", "original_error": "bad"}

    def test_every_code_has_a_message(self):
        """Test that the code table only holds codes that are raised."""
        assert set(ERROR_MESSAGES) == set(ErrorCode)
        assert "NOT_FOUND" not in ErrorCode.__members__

    def test_diagnosis_keeps_original_error(self):
        cause = TimeoutError("slow")
        exc = DiagnosisException(original_error=cause)
        assert exc.original_error is cause
        assert exc.details["original_error"] == "slow"


class TestStructuredLogging:
    """Test JSON log output."""

    def _format(self, record: logging.LogRecord) -> dict:
        formatter = StructuredJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        return json.loads(formatter.format(record))

    def test_json_fields(self):
        record = logging.LogRecord("autosolve.test", logging.INFO, __file__, 10, "Scan completed", None, None)
        record.event = "scan_completed"
        payload = self._format(record)
        assert payload["message"] == "Scan completed"
        assert payload["level"] == "INFO"
        assert payload["event"] == "scan_completed"
        assert payload["service"]["name"] == "AutoSolve"
        assert payload["source"]["line"] == 10

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                "autosolve.test", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
            )
        payload = self._format(record)
        assert payload["error"]["type"] == "ValueError"
        assert payload["error"]["message"] == "boom"


class TestPerformanceLogger:
    """Test operation timing logs."""

    def test_context_manager_logs_duration(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="performance"):
            with PerformanceLogger("unit_op", key="k"):
                pass
        record = next(r for r in caplog.records if r.name == "performance")
        assert record.operation == "unit_op"
        assert record.success is True
        assert record.key == "k"

    def test_failure_logged_and_reraised(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="performance"):
            with pytest.raises(RuntimeError):
                with PerformanceLogger("unit_op"):
                    raise RuntimeError("nope")
        record = next(r for r in caplog.records if r.name == "performance")
        assert record.levelno == logging.ERROR
        assert record.error_type == "RuntimeError"

    def test_decorator(self, caplog):
        @PerformanceLogger.track("decorated_op")
        def add(a, b):
            return a + b

        with caplog.at_level(logging.DEBUG, logger="performance"):
            assert add(1, 2) == 3
        assert any(getattr(r, "operation", None) == "decorated_op" for r in caplog.records)


class TestSetupLogging:
    """Test root logger configuration."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_json_output(self, capsys):
        setup_logging(level="INFO", log_format="json")
        logging.getLogger("autosolve.test").info("hello", extra={"event": "greeting"})
        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["message"] == "hello"
        assert payload["event"] == "greeting"

    def test_text_output(self, capsys):
        setup_logging(level="WARNING", log_format="text")
        logging.getLogger("autosolve.test").info("hidden")
        logging.getLogger("autosolve.test").warning("shown")
        err = capsys.readouterr().err
        assert "shown" in err
        assert "hidden" not in err
