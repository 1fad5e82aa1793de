"""
Waitlist Configuration

Environment-based settings for the waitlist API. Values are read once at
startup into a WaitlistConfig and injected wherever they are needed.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"

# Sliding window: 5 requests per 5 seconds per client address
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 5
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 5

RATE_LIMIT_BACKENDS = ("redis", "memory")


@dataclass(frozen=True)
class WaitlistConfig:
    """Waitlist API configuration settings"""

    recaptcha_secret_key: Optional[str] = None
    recaptcha_verify_url: str = RECAPTCHA_VERIFY_URL

    database_url: str = "sqlite:///./waitlist.db"

    # Throttling
    rate_limit_backend: str = "redis"
    rate_limit_max_requests: int = DEFAULT_RATE_LIMIT_MAX_REQUESTS
    rate_limit_window_seconds: int = DEFAULT_RATE_LIMIT_WINDOW_SECONDS

    # Redis Settings
    redis_url: Optional[str] = None
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "WaitlistConfig":
        """Build configuration from process environment (and .env, if present)"""
        load_dotenv(find_dotenv(usecwd=True))

        backend = os.getenv("RATE_LIMIT_BACKEND", "redis").strip().lower()
        if backend not in RATE_LIMIT_BACKENDS:
            raise ValueError(
                f"RATE_LIMIT_BACKEND must be one of {', '.join(RATE_LIMIT_BACKENDS)}, got '{backend}'"
            )

        origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

        return cls(
            # Treat an empty string the same as an unset secret
            recaptcha_secret_key=os.getenv("RECAPTCHA_SECRET_KEY") or None,
            recaptcha_verify_url=os.getenv("RECAPTCHA_VERIFY_URL", RECAPTCHA_VERIFY_URL),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./waitlist.db"),
            rate_limit_backend=backend,
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", DEFAULT_RATE_LIMIT_MAX_REQUESTS)),
            rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", DEFAULT_RATE_LIMIT_WINDOW_SECONDS)),
            redis_url=os.getenv("REDIS_URL") or None,
            redis_host=os.getenv("REDIS_HOST", "localhost"),
            redis_port=int(os.getenv("REDIS_PORT", 6379)),
            redis_db=int(os.getenv("REDIS_DB", 0)),
            redis_password=os.getenv("REDIS_PASSWORD") or None,
            cors_origins=origins or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def has_recaptcha_secret(self) -> bool:
        return bool(self.recaptcha_secret_key)

    def get_redis_url(self) -> str:
        """Get Redis connection URL"""
        if self.redis_url:
            return self.redis_url
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        else:
            return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"


_config: Optional[WaitlistConfig] = None


def load_config() -> WaitlistConfig:
    """Return the process-wide configuration, reading the environment on first use"""
    global _config
    if _config is None:
        _config = WaitlistConfig.from_env()
    return _config
