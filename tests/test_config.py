"""Tests for settings, logging configuration and session helpers."""

import json
import logging
import os

import pytest
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.orm import Session

from modelguard.config import Settings, build_logging_config, setup_logging
from modelguard.config.logging import CustomJsonFormatter
from modelguard.config.settings import get_settings
from modelguard.db import create_session_factory, get_db, get_default_engine, get_session_factory


class TestSettings:

    def test_defaults(self):
        config = Settings(_env_file=None)

        assert config.ENVIRONMENT == "development"
        assert config.is_development()
        assert not config.is_production()
        assert config.VALIDATE_ON_FLUSH is True

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("MODELGUARD_ENVIRONMENT", "production")
        monkeypatch.setenv("MODELGUARD_VALIDATE_ON_FLUSH", "false")

        config = Settings(_env_file=None)

        assert config.is_production()
        assert config.VALIDATE_ON_FLUSH is False

    def test_log_level_and_format_are_normalized(self):
        config = Settings(_env_file=None, LOG_LEVEL="debug", LOG_FORMAT="JSON")

        assert config.LOG_LEVEL == "DEBUG"
        assert config.LOG_FORMAT == "json"

    @pytest.mark.parametrize("field, value", [
        ("ENVIRONMENT", "moon"),
        ("LOG_LEVEL", "loud"),
        ("LOG_FORMAT", "xml"),
    ])
    def test_rejects_unknown_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})


class TestLoggingConfig:

    def test_console_only_by_default(self):
        config = build_logging_config(Settings(_env_file=None))

        assert set(config["handlers"]) == {"console"}
        assert config["handlers"]["console"]["formatter"] == "standard"
        assert config["loggers"]["modelguard"]["handlers"] == ["console"]
        assert config["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"

    def test_file_handler_when_log_dir_set(self, tmp_path):
        config = build_logging_config(Settings(_env_file=None, LOG_DIR=str(tmp_path)))

        assert config["handlers"]["file"]["formatter"] == "json"
        assert config["handlers"]["file"]["filename"] == os.path.join(str(tmp_path), "modelguard.log")
        assert config["loggers"]["modelguard"]["handlers"] == ["console", "file"]

    def test_debug_lowers_level(self):
        config = build_logging_config(Settings(_env_file=None, DEBUG=True, LOG_LEVEL="ERROR"))

        assert config["loggers"]["modelguard"]["level"] == "DEBUG"

    def test_setup_logging_creates_log_dir(self, tmp_path):
        log_dir = tmp_path / "logs"

        logger = setup_logging(Settings(_env_file=None, LOG_DIR=str(log_dir), LOG_FORMAT="colored"))

        assert logger.name == "modelguard"
        assert log_dir.is_dir()
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)


class TestJsonFormatter:

    def test_adds_environment_and_gate_fields(self):
        formatter = CustomJsonFormatter("%(message)s", environment="testing")
        record = logging.LogRecord("modelguard.validation.gate", logging.INFO, __file__, 1,
                                   "Validation failed", None, None)
        record.model = "Product"
        record.fields = ["sku"]

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "Validation failed"
        assert payload["environment"] == "testing"
        assert payload["level"] == "INFO"
        assert payload["model"] == "Product"
        assert payload["fields"] == ["sku"]


class TestSessionHelpers:

    def test_get_db_closes_session(self):
        factory = create_session_factory("sqlite://")
        sessions = get_db(factory)

        db = next(sessions)
        assert isinstance(db, Session)
        assert db.execute(text("SELECT 1")).scalar_one() == 1

        sessions.close()
        assert not db.in_transaction()
        factory.kw["bind"].dispose()

    def test_factory_disables_autoflush(self):
        factory = create_session_factory("sqlite://")

        assert factory.kw["autoflush"] is False
        factory.kw["bind"].dispose()


class TestDefaultSessions:

    @pytest.fixture
    def in_memory_default(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "DATABASE_URL", "sqlite://")
        get_default_engine.cache_clear()
        get_session_factory.cache_clear()
        yield
        get_default_engine().dispose()
        get_default_engine.cache_clear()
        get_session_factory.cache_clear()

    def test_repeated_get_db_reuses_one_engine(self, in_memory_default):
        binds = []
        for _ in range(3):
            for db in get_db():
                binds.append(db.get_bind())

        assert binds[0] is get_default_engine()
        assert all(bind is binds[0] for bind in binds)

    def test_default_factory_is_shared(self, in_memory_default):
        assert get_session_factory() is get_session_factory()
