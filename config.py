# config.py
import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlsplit

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

REQUIRED = ("AUTH_TOKEN", "PROXY_URL", "FROM_EMAIL", "HELO_NAME")
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
PROXY_SCHEMES = ("socks5", "socks4", "http")


class ConfigError(Exception):
    """Raised when the process environment cannot produce valid settings."""


@dataclass(frozen=True)
class Settings:
    auth_token: str
    proxy_url: str
    from_email: str
    helo_name: str
    max_batch: int = 15
    smtp_timeout: float = 10.0
    verify_timeout: Optional[float] = 25.0  # None -> no per-address limit
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @property
    def has_sender_identity(self) -> bool:
        return bool(self.from_email and self.helo_name)


def _number(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def load_settings(env: Optional[Mapping[str, str]] = None, dotenv: bool = True) -> Settings:
    """
    Build Settings from the environment (plus .env when present).
    Raises ConfigError naming every missing required variable.
    """
    if env is None:
        if dotenv and not load_dotenv():
            logger.info("No .env file found. Make sure to set environment variables manually.")
        env = os.environ

    missing = [name for name in REQUIRED if not env.get(name, "").strip()]
    if missing:
        raise ConfigError(f"missing required environment variables: {', '.join(missing)}")

    max_batch = _number(env, "MAX_EMAILS", 15, int)
    if max_batch < 1:
        raise ConfigError("MAX_EMAILS must be at least 1")

    verify_timeout = _number(env, "VERIFY_TIMEOUT", 25.0, float)

    log_level = (env.get("LOG_LEVEL", "").strip() or "INFO").upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    proxy_url = env["PROXY_URL"].strip()
    proxy = urlsplit(proxy_url)
    if proxy.scheme.lower() not in PROXY_SCHEMES or not proxy.hostname:
        raise ConfigError(f"PROXY_URL must look like socks5://host:port, got {proxy_url!r}")

    return Settings(
        auth_token=env["AUTH_TOKEN"].strip(),
        proxy_url=proxy_url,
        from_email=env["FROM_EMAIL"].strip(),
        helo_name=env["HELO_NAME"].strip(),
        max_batch=max_batch,
        smtp_timeout=_number(env, "SMTP_TIMEOUT", 10.0, float),
        verify_timeout=verify_timeout if verify_timeout > 0 else None,
        host=env.get("HOST", "").strip() or "0.0.0.0",
        port=_number(env, "PORT", 8080, int),
        log_level=log_level,
    )
