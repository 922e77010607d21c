import logging

from curtis_os.config import load_settings


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("CURTIS_DATABASE_URL", "sqlite:///./elsewhere.db")
    monkeypatch.setenv("CURTIS_DUE_SOON_DAYS", "5")
    monkeypatch.setenv("CURTIS_SQL_ECHO", "yes")

    settings = load_settings()

    assert settings.database_url == "sqlite:///./elsewhere.db"
    assert settings.due_soon_days == 5
    assert settings.sql_echo is True


def test_malformed_integer_falls_back_with_warning(monkeypatch, caplog):
    monkeypatch.setenv("CURTIS_PORT", "eighty")
    monkeypatch.setenv("CURTIS_DUE_SOON_DAYS", "3.5")

    with caplog.at_level(logging.WARNING, logger="curtis_os.config"):
        settings = load_settings()

    assert settings.port == 8000
    assert settings.due_soon_days == 3
    messages = [r.getMessage() for r in caplog.records]
    assert any("CURTIS_PORT" in m for m in messages)
    assert any("CURTIS_DUE_SOON_DAYS" in m for m in messages)
