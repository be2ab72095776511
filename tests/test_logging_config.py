"""Tests for config.py and tracekit/logging.py."""

import json
import logging

import config
from tracekit.logging import (
    attach_log_file,
    get_log_dir,
    get_logger,
    get_recent_errors,
    log_error,
    setup_logging,
    tagged,
)


class TestConfig:
    def test_dot_key_lookup(self, monkeypatch):
        monkeypatch.setattr(config, "_user_config", {"colors": {"saturation": 0.3}, "max_sessions": 5})
        assert config.get("colors.saturation") == 0.3
        assert config.get("max_sessions") == 5
        assert config.get("colors.lightness", 0.55) == 0.55
        assert config.get("max_sessions.nested", "d") == "d"
        assert config.get("missing") is None

    def test_data_dir_from_env(self, tmp_path):
        assert config.get_data_dir() == (tmp_path / "data").resolve()
        assert get_log_dir() == (tmp_path / "data").resolve() / "logs"

    def test_data_dir_from_config(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TRACELENS_DIR")
        monkeypatch.setattr(config, "_user_config", {"data_dir": str(tmp_path / "cfg")})
        config._reset_data_dir()
        assert config.get_data_dir() == (tmp_path / "cfg").resolve()

    def test_cors_origins_env_wins(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test,")
        assert config.get_cors_origins() == ["http://a.test", "http://b.test"]

    def test_cors_origins_default(self, monkeypatch):
        monkeypatch.delenv("CORS_ORIGINS", raising=False)
        monkeypatch.setattr(config, "_user_config", {})
        assert "http://localhost:3000" in config.get_cors_origins()

    def test_reload_config(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"max_sessions": 7, "colors": {"max_attempts": 3}}))
        monkeypatch.setattr(config, "CONFIG_PATH", path)
        monkeypatch.setattr(config, "_LOCAL_CONFIG_PATH", tmp_path / "absent.json")
        for name in ("MAX_SESSIONS", "STREAM_KEEPALIVE_SECONDS", "STREAM_QUEUE_SIZE",
                     "COLOR_SATURATION", "COLOR_LIGHTNESS", "COLOR_MAX_ATTEMPTS", "_user_config"):
            monkeypatch.setattr(config, name, getattr(config, name))
        config.reload_config()
        assert config.MAX_SESSIONS == 7
        assert config.COLOR_MAX_ATTEMPTS == 3
        assert config.STREAM_QUEUE_SIZE == 1000

    def test_broken_config_file_ignored(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        monkeypatch.setattr(config, "CONFIG_PATH", path)
        monkeypatch.setattr(config, "_LOCAL_CONFIG_PATH", tmp_path / "absent.json")
        assert config._load_config() == {}


class TestLogging:
    def test_setup_logging_console_levels(self):
        logger = setup_logging(verbose=False)
        (handler,) = logger.handlers
        assert handler.level == logging.WARNING
        logger = setup_logging(verbose=True)
        (handler,) = logger.handlers
        assert handler.level == logging.DEBUG

    def test_clean_console_format(self, monkeypatch):
        monkeypatch.setattr(config, "_user_config", {"console_format": "clean"})
        assert setup_logging().handlers == []

    def test_get_logger_configures_once(self):
        logger = get_logger()
        assert logger.name == "tracelens"
        assert get_logger().handlers == logger.handlers

    def test_log_file_written_with_tag(self):
        setup_logging()
        path = attach_log_file("unit")
        get_logger().info("hello file", extra=tagged("session"))
        text = path.read_text(encoding="utf-8")
        assert path.name == "unit.log"
        assert "| session | hello file" in text
        # Untagged records still format
        assert "Log file:" in text

    def test_recent_errors_roundtrip(self):
        setup_logging()
        path = attach_log_file("server")
        logger = get_logger()
        logger.info("not an error")
        logger.warning("first warning")
        log_error("Listener failed", exc=RuntimeError("boom"), context={"event": "add"})
        errors = get_recent_errors()
        assert [e["level"] for e in errors] == ["WARNING", "ERROR"]
        assert errors[1]["message"] == "Listener failed"
        details = "\n".join(errors[1]["details"])
        assert "event: add" in details
        assert "RuntimeError" in details
        assert get_recent_errors(limit=1) == errors[-1:]
        assert get_recent_errors(path=path) == errors

    def test_recent_errors_missing_file(self, tmp_path):
        assert get_recent_errors(path=tmp_path / "nope.log") == []
