# runtime configuration, built once at process start and passed down.
# nothing in the package reads the environment except MirrorConfig.from_env().

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from incident_mirror.errors import ConfigError

DEFAULT_API_BASE: str = "https://discordstatus.com/api/v2"
DEFAULT_IGNORE_DAYS: int = 30
DEFAULT_MESSAGES_FILE: str = "messages.json"

POLL_INTERVAL_SECONDS: int = 0      # 0 → one pass and exit
REQUEST_TIMEOUT_SECONDS: int = 10
MAX_RETRIES: int = 5
RETRY_BASE_DELAY_SECONDS: int = 2   # delay = base * 2^n, capped at MAX_RETRY_DELAY_SECONDS
MAX_RETRY_DELAY_SECONDS: int = 300  # 5 minutes

DISCORD_WEBHOOK_BASE = "https://discord.com/api/webhooks"


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass
class RetryConfig:
    max_retries: int = MAX_RETRIES
    base_delay_seconds: int = RETRY_BASE_DELAY_SECONDS
    max_delay_seconds: int = MAX_RETRY_DELAY_SECONDS


@dataclass
class MirrorConfig:
    """Everything a run needs. Construct with from_env() or directly in tests."""

    webhook_url: str
    api_base: str = DEFAULT_API_BASE
    ignore_days: int = DEFAULT_IGNORE_DAYS
    messages_file: Path = Path(DEFAULT_MESSAGES_FILE)
    poll_interval_seconds: int = POLL_INTERVAL_SECONDS
    request_timeout_seconds: int = REQUEST_TIMEOUT_SECONDS
    log_level: str = "INFO"
    retry: RetryConfig = field(default_factory=RetryConfig)

    @property
    def feed_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/incidents.json"

    @property
    def lock_file(self) -> Path:
        return self.messages_file.with_name(self.messages_file.name + ".lock")

    @classmethod
    def from_env(cls) -> "MirrorConfig":
        """Read configuration from the environment (and a .env file, if present)."""
        load_dotenv(find_dotenv(usecwd=True))

        webhook_url = os.getenv("DISCORD_WEBHOOK_URL", "").strip()
        if not webhook_url:
            webhook_id = os.getenv("DISCORD_WEBHOOK_ID", "").strip()
            webhook_token = os.getenv("DISCORD_WEBHOOK_TOKEN", "").strip()
            if not (webhook_id and webhook_token):
                raise ConfigError(
                    "DISCORD_WEBHOOK_URL or DISCORD_WEBHOOK_ID + DISCORD_WEBHOOK_TOKEN must be set"
                )
            webhook_url = f"{DISCORD_WEBHOOK_BASE}/{webhook_id}/{webhook_token}"

        log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
        if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigError(f"Unsupported LOG_LEVEL={log_level!r}")

        return cls(
            webhook_url=webhook_url,
            api_base=os.getenv("STATUS_API_BASE", DEFAULT_API_BASE).strip() or DEFAULT_API_BASE,
            ignore_days=_int_env("IGNORE_DAYS", DEFAULT_IGNORE_DAYS),
            messages_file=Path(os.getenv("MESSAGES_FILE", DEFAULT_MESSAGES_FILE)),
            poll_interval_seconds=_int_env("POLL_INTERVAL_SECONDS", POLL_INTERVAL_SECONDS),
            request_timeout_seconds=_int_env("REQUEST_TIMEOUT_SECONDS", REQUEST_TIMEOUT_SECONDS, minimum=1),
            log_level=log_level,
        )
