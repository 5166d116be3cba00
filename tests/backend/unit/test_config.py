from catchgame.backend.config import load_settings


def test_load_settings_reads_expected_env(monkeypatch) -> None:
    monkeypatch.setenv("CATCHGAME_SERVER_SALT", "salt-1")
    monkeypatch.setenv("CATCHGAME_DATABASE_URL", "postgresql://local")
    monkeypatch.setenv("CATCHGAME_HOST", "localhost")
    monkeypatch.setenv("CATCHGAME_PORT", "9000")
    monkeypatch.setenv("CATCHGAME_LOG_LEVEL", "debug")
    monkeypatch.setenv("CATCHGAME_DEV_ORACLE", "true")

    settings = load_settings()

    assert settings.server_salt == "salt-1"
    assert settings.database_url == "postgresql://local"
    assert settings.host == "localhost"
    assert settings.port == 9000
    assert settings.log_level == "DEBUG"
    assert settings.dev_oracle is True


def test_load_settings_applies_defaults(monkeypatch) -> None:
    for name in (
        "CATCHGAME_SERVER_SALT",
        "CATCHGAME_DATABASE_URL",
        "CATCHGAME_HOST",
        "CATCHGAME_PORT",
        "CATCHGAME_LOG_LEVEL",
        "CATCHGAME_DEV_ORACLE",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.server_salt == "dev-salt"
    assert settings.database_url is None
    assert settings.host == "127.0.0.1"
    assert settings.port == 8000
    assert settings.log_level == "INFO"
    assert settings.dev_oracle is False
