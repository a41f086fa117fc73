import logging

from dartscore.backend.config import configure_logging, load_settings


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("DARTSCORE_SERVER_SALT", "salt-1")
    monkeypatch.setenv("DARTSCORE_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("DARTSCORE_HOST", "localhost")
    monkeypatch.setenv("DARTSCORE_PORT", "9000")
    monkeypatch.setenv("DARTSCORE_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.server_salt == "salt-1"
    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for name in (
        "DARTSCORE_SERVER_SALT",
        "DARTSCORE_DATABASE_URL",
        "DARTSCORE_HOST",
        "DARTSCORE_PORT",
        "DARTSCORE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.server_salt == "dev-salt"
    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.log_level == "INFO"


def test_configure_logging_passes_level_to_basic_config(monkeypatch) -> None:
    calls: list[dict] = []
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))

    configure_logging("warning")
    configure_logging("nonsense")

    assert calls[0]["level"] == logging.WARNING
    assert calls[1]["level"] == logging.INFO
