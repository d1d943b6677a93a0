import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or malformed. The API refuses to start."""


def _env_str(*names: str) -> str:
    for name in names:
        v = (os.environ.get(name) or "").strip()
        if v:
            return v
    return ""


def _env_number(name: str, cast):
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return None
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from e


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Required
    # -----------------
    # SQLite file path (or sqlite:///path) or a postgres:// URL.
    DB_DSN: str

    # Token signing secret (HS256).
    AUTH_JWT_SECRET: str

    # Ollama base URL, e.g. http://localhost:11434
    OLLAMA_API_URL: str

    # -----------------
    # Auth (JWT)
    # -----------------
    AUTH_TOKEN_EXPIRE_MINUTES: int = 60

    # Create the first super admin if the users table is empty (both must be set).
    AUTH_BOOTSTRAP_ADMIN_USERNAME: str = ""
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = ""

    # -----------------
    # Ollama
    # -----------------
    OLLAMA_DEFAULT_MODEL: str = "llama2"
    # None means no timeout on the outbound call.
    OLLAMA_TIMEOUT_SECONDS: Optional[float] = None

    # -----------------
    # CORS (development)
    # -----------------
    # Vite dev server on :5173 / CRA on :3000 -> API on :5000.
    CORS_ALLOW_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in (self.CORS_ALLOW_ORIGINS or "").split(",") if o.strip()]


# env var name(s) for each required setting, first non-empty wins
_REQUIRED = {
    "DB_DSN": ("OLLAMA_CHAT_DATABASE_URL", "DATABASE_URL"),
    "AUTH_JWT_SECRET": ("AUTH_JWT_SECRET", "JWT_SECRET"),
    "OLLAMA_API_URL": ("OLLAMA_API_URL",),
}


def load_config(dotenv: bool = True) -> Config:
    """Build a Config from the environment (and a local .env file if present).

    Raises ConfigError listing every missing required variable.
    """
    if dotenv:
        load_dotenv()

    values = {field: _env_str(*names) for field, names in _REQUIRED.items()}
    missing = [" or ".join(_REQUIRED[f]) for f, v in values.items() if not v]
    if missing:
        raise ConfigError("Missing required configuration: " + ", ".join(missing))

    return Config(
        DB_DSN=values["DB_DSN"],
        AUTH_JWT_SECRET=values["AUTH_JWT_SECRET"],
        OLLAMA_API_URL=values["OLLAMA_API_URL"],
        AUTH_TOKEN_EXPIRE_MINUTES=_env_number("AUTH_TOKEN_EXPIRE_MINUTES", int) or 60,
        AUTH_BOOTSTRAP_ADMIN_USERNAME=_env_str("AUTH_BOOTSTRAP_ADMIN_USERNAME"),
        AUTH_BOOTSTRAP_ADMIN_PASSWORD=_env_str("AUTH_BOOTSTRAP_ADMIN_PASSWORD"),
        OLLAMA_DEFAULT_MODEL=_env_str("OLLAMA_DEFAULT_MODEL") or "llama2",
        OLLAMA_TIMEOUT_SECONDS=_env_number("OLLAMA_TIMEOUT_SECONDS", float),
        CORS_ALLOW_ORIGINS=os.environ.get(
            "CORS_ALLOW_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
        ),
    )
