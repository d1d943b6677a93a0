import pytest

from ollama_chat.config import ConfigError, load_config


_ENV = (
    "OLLAMA_CHAT_DATABASE_URL",
    "DATABASE_URL",
    "AUTH_JWT_SECRET",
    "JWT_SECRET",
    "OLLAMA_API_URL",
    "AUTH_TOKEN_EXPIRE_MINUTES",
    "OLLAMA_DEFAULT_MODEL",
    "OLLAMA_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_missing_everything_names_all_variables():
    with pytest.raises(ConfigError) as exc:
        load_config(dotenv=False)
    msg = str(exc.value)
    assert "DATABASE_URL" in msg
    assert "AUTH_JWT_SECRET" in msg
    assert "OLLAMA_API_URL" in msg


def test_missing_secret_is_fatal(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "./x.sqlite")
    monkeypatch.setenv("OLLAMA_API_URL", "http://localhost:11434")
    with pytest.raises(ConfigError, match="AUTH_JWT_SECRET"):
        load_config(dotenv=False)


def test_full_config_with_defaults(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "./x.sqlite")
    monkeypatch.setenv("JWT_SECRET", "abc")
    monkeypatch.setenv("OLLAMA_API_URL", "http://localhost:11434")
    cfg = load_config(dotenv=False)
    assert cfg.DB_DSN == "./x.sqlite"
    assert cfg.AUTH_JWT_SECRET == "abc"
    assert cfg.AUTH_TOKEN_EXPIRE_MINUTES == 60
    assert cfg.OLLAMA_DEFAULT_MODEL == "llama2"
    assert cfg.OLLAMA_TIMEOUT_SECONDS is None


def test_optional_overrides(monkeypatch):
    monkeypatch.setenv("OLLAMA_CHAT_DATABASE_URL", "sqlite:///tmp/a.sqlite")
    monkeypatch.setenv("DATABASE_URL", "ignored")
    monkeypatch.setenv("AUTH_JWT_SECRET", "abc")
    monkeypatch.setenv("OLLAMA_API_URL", "http://localhost:11434")
    monkeypatch.setenv("OLLAMA_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("OLLAMA_DEFAULT_MODEL", "mistral")
    cfg = load_config(dotenv=False)
    assert cfg.DB_DSN == "sqlite:///tmp/a.sqlite"
    assert cfg.OLLAMA_TIMEOUT_SECONDS == 30.0
    assert cfg.OLLAMA_DEFAULT_MODEL == "mistral"


def test_create_app_refuses_to_start_without_config():
    from ollama_chat.api.server import create_app

    with pytest.raises(ConfigError):
        create_app()


def _required(monkeypatch):
    monkeypatch.setenv("OLLAMA_CHAT_DATABASE_URL", "sqlite:///tmp/a.sqlite")
    monkeypatch.setenv("AUTH_JWT_SECRET", "abc")
    monkeypatch.setenv("OLLAMA_API_URL", "http://localhost:11434")


@pytest.mark.parametrize("name", ["AUTH_TOKEN_EXPIRE_MINUTES", "OLLAMA_TIMEOUT_SECONDS"])
def test_non_numeric_setting_is_config_error(monkeypatch, name):
    _required(monkeypatch)
    monkeypatch.setenv(name, "soon")
    with pytest.raises(ConfigError) as exc:
        load_config(dotenv=False)
    assert name in str(exc.value)


def test_expiry_minutes_override(monkeypatch):
    _required(monkeypatch)
    monkeypatch.setenv("AUTH_TOKEN_EXPIRE_MINUTES", "15")
    assert load_config(dotenv=False).AUTH_TOKEN_EXPIRE_MINUTES == 15
