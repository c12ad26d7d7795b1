import pytest
from shared.service_settings import (
    CORS_ENV_VAR,
    DATA_BACKEND_ENV_VAR,
    DB_URL_ENV_VAR,
    DEFAULT_CORS_ORIGINS,
    DEFAULT_YEAR_ENV_VAR,
    SettingsError,
    load_service_settings,
)


@pytest.fixture(autouse=True)
def clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (DATA_BACKEND_ENV_VAR, DB_URL_ENV_VAR, DEFAULT_YEAR_ENV_VAR, CORS_ENV_VAR):
        monkeypatch.delenv(name, raising=False)


def test_defaults_use_database_backend() -> None:
    settings = load_service_settings()

    assert settings.data_backend == "database"
    assert settings.database_url is None
    assert settings.default_year is None
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(DATA_BACKEND_ENV_VAR, " Memory ")
    monkeypatch.setenv(DB_URL_ENV_VAR, "sqlite:///tmp/rkas.db")
    monkeypatch.setenv(DEFAULT_YEAR_ENV_VAR, "2026")
    monkeypatch.setenv(CORS_ENV_VAR, "https://rkas.sch.id, http://localhost:5000")

    settings = load_service_settings()

    assert settings.data_backend == "memory"
    assert settings.database_url == "sqlite:///tmp/rkas.db"
    assert settings.default_year == 2026
    assert settings.cors_origins == ("https://rkas.sch.id", "http://localhost:5000")


def test_wildcard_origin_collapses(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(CORS_ENV_VAR, "https://rkas.sch.id,*")

    assert load_service_settings().cors_origins == ("*",)


def test_unknown_backend_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(DATA_BACKEND_ENV_VAR, "firebase")

    with pytest.raises(SettingsError):
        load_service_settings()


def test_non_integer_default_year_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(DEFAULT_YEAR_ENV_VAR, "tahun ini")

    with pytest.raises(SettingsError):
        load_service_settings()
