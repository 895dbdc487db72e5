"""Tests for environment-driven settings."""
import os

from pastebin.config import Settings


def test_defaults_select_sqlite():
    settings = Settings({})
    assert settings.REDIS_URL is None
    assert settings.DATABASE_PATH == os.path.join("data", "pastes.db")
    assert settings.APP_DOMAIN is None
    assert settings.TEST_MODE is False
    assert settings.DEBUG is False
    assert settings.LOG_LEVEL == "INFO"
    assert settings.storage_backend == "sqlite"


def test_redis_url_selects_redis():
    settings = Settings({"REDIS_URL": "redis://localhost:6379/0"})
    assert settings.storage_backend == "redis"


def test_empty_redis_url_is_treated_as_unset():
    assert Settings({"REDIS_URL": ""}).storage_backend == "sqlite"


def test_boolean_flags():
    for value in ("1", "true", "TRUE", "yes"):
        assert Settings({"TEST_MODE": value}).TEST_MODE is True
    for value in ("0", "false", "no", ""):
        assert Settings({"TEST_MODE": value}).TEST_MODE is False


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_PATH", "/tmp/elsewhere.db")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    settings = Settings()
    assert settings.DATABASE_PATH == "/tmp/elsewhere.db"
    assert settings.LOG_LEVEL == "DEBUG"


def test_unknown_log_level_falls_back_to_info():
    assert Settings({"LOG_LEVEL": "VERBOSE"}).LOG_LEVEL == "INFO"
    assert Settings({"LOG_LEVEL": " warning "}).LOG_LEVEL == "WARNING"
