"""StoryChain application configuration.

Loads settings from two YAML files:
  * storychain.settings.yaml: non-secret configuration
  * storychain.secrets.yaml: secrets (never committed)

Both files are optional; missing files fall back to model defaults.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("storychain.settings.yaml")
SECRETS_FILE  = Path("storychain.secrets.yaml")

IN_MEMORY_DB = ":memory:"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class JWTSecrets(BaseModel):
    secret_key: str = "change-me-in-production"
    algorithm:  str = "HS256"


class AISecrets(BaseModel):
    api_key: Optional[str] = None


class Secrets(BaseModel):
    jwt: JWTSecrets = Field(default_factory=JWTSecrets)
    ai:  AISecrets  = Field(default_factory=AISecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str       = "0.0.0.0"
    port:            int       = 5000
    allowed_origins: List[str] = Field(default_factory=lambda: ["*"])


class LoggingSettings(BaseModel):
    level: str = "info"


class DatabaseSettings(BaseModel):
    path: str = "storychain.duckdb"


class AuthSettings(BaseModel):
    token_expire_minutes: int  = 60 * 24 * 7
    bcrypt_rounds:        int  = Field(default=12, ge=4, le=31)
    require_approval:     bool = True


class RoomSettings(BaseModel):
    code_length:        int = Field(default=6, ge=4, le=12)
    max_rooms_per_user: int = 10


class StorySettings(BaseModel):
    max_content_length:  int = 500
    default_chain_limit: int = 10


class AISettings(BaseModel):
    """OpenAI-compatible chat completions endpoint used for story suggestions."""
    enabled:         bool  = False
    base_url:        str   = "https://api.openai.com/v1"
    model:           str   = "gpt-4o-mini"
    max_tokens:      int   = 120
    timeout_seconds: float = 20.0

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


class AppConfig(BaseModel):
    server:   ServerSettings   = Field(default_factory=ServerSettings)
    logging:  LoggingSettings  = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth:     AuthSettings     = Field(default_factory=AuthSettings)
    rooms:    RoomSettings     = Field(default_factory=RoomSettings)
    stories:  StorySettings    = Field(default_factory=StorySettings)
    ai:       AISettings       = Field(default_factory=AISettings)
    secrets:  Secrets          = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------


def _resolve_db_path(config: AppConfig, settings_path: Path) -> None:
    """Resolve a relative database path against the settings file directory."""
    raw = config.database.path
    if raw == IN_MEMORY_DB:
        return
    path = Path(raw)
    if not path.is_absolute():
        config.database.path = str(settings_path.resolve().parent / path)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object."""
    settings_path = Path(settings_path) if settings_path else SETTINGS_FILE
    secrets_path = Path(secrets_path) if secrets_path else settings_path.with_name(SECRETS_FILE.name)

    settings_data = _load_yaml(settings_path)
    secrets_data  = _load_yaml(secrets_path)

    # Merge: secrets live under the "secrets" key in AppConfig
    settings_data["secrets"] = secrets_data

    config = AppConfig(**settings_data)
    _resolve_db_path(config, settings_path)
    logger.info(
        "Settings loaded (server=%s:%s, db=%s, ai.enabled=%s)",
        config.server.host,
        config.server.port,
        config.database.path,
        config.ai.enabled,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: AppConfig) -> None:
    global _config
    _config = config


def reset_config() -> None:
    global _config
    _config = None
