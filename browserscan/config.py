"""
Browser Scan Configuration
Environment-driven settings. A local .env file is loaded when present.

Variables:
- PORT                       HTTP port (default 4000)
- APP_ENV / NODE_ENV         "production" selects the fixed CORS origin
- CORS_PRODUCTION_ORIGIN     origin allowed in production
- DATABASE_URL               PostgreSQL DSN; unset selects the in-memory store
- LOG_FILE                   mirror file path (default logs.json)
- RATE_LIMIT_WINDOW_SECONDS  fixed window length (default 600)
- RATE_LIMIT_MAX_REQUESTS    requests per window per client (default 100)
- RATE_LIMIT_ENABLED         "false" disables the limiter
- LOG_LEVEL                  logging level (default INFO)
"""

import os
import logging
from dataclasses import dataclass
from typing import List, Mapping, Optional

from dotenv import load_dotenv

DEFAULT_PRODUCTION_ORIGIN = "https://your-vercel-project.vercel.app"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def _int_env(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _bool_env(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    port: int = 4000
    environment: str = "development"
    production_origin: str = DEFAULT_PRODUCTION_ORIGIN
    database_url: Optional[str] = None
    log_file: str = "logs.json"
    rate_limit_window_seconds: int = 600
    rate_limit_max_requests: int = 100
    rate_limit_enabled: bool = True
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """Fixed origin in production, wildcard everywhere else."""
        if self.is_production:
            return [self.production_origin]
        return ["*"]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from a mapping (defaults to os.environ)."""
        env = os.environ if environ is None else environ
        return cls(
            port=_int_env(env, "PORT", 4000),
            environment=env.get("APP_ENV") or env.get("NODE_ENV") or "development",
            production_origin=env.get("CORS_PRODUCTION_ORIGIN") or DEFAULT_PRODUCTION_ORIGIN,
            database_url=env.get("DATABASE_URL") or None,
            log_file=env.get("LOG_FILE") or "logs.json",
            rate_limit_window_seconds=_int_env(env, "RATE_LIMIT_WINDOW_SECONDS", 600),
            rate_limit_max_requests=_int_env(env, "RATE_LIMIT_MAX_REQUESTS", 100),
            rate_limit_enabled=_bool_env(env, "RATE_LIMIT_ENABLED", True),
            log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get process-wide settings, loading .env on first use."""
    global _settings
    if _settings is None:
        load_dotenv()
        _settings = Settings.from_env()
    return _settings


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
