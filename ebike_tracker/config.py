import os
from dataclasses import dataclass


class Config:
    """Application configuration from environment variables."""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    FLASK_ENV = os.environ.get('FLASK_ENV', 'production')
    DEBUG = FLASK_ENV == 'development'
    FLASK_HOST = os.environ.get('FLASK_HOST', '0.0.0.0')
    FLASK_PORT = int(os.environ.get('FLASK_PORT', 8080))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Record store ("memory://" keeps documents in-process)
    REDIS_URL = os.environ.get('REDIS_URL', 'memory://')
    KEY_PREFIX = os.environ.get('KEY_PREFIX', 'ebike:')
    DATA_TTL_SECONDS = int(os.environ.get('DATA_TTL_SECONDS', 15552000))  # 180 days

    # Mileage ledger
    LEDGER_TIMEZONE = os.environ.get('LEDGER_TIMEZONE', 'Asia/Shanghai')
    RETENTION_MONTHS = int(os.environ.get('RETENTION_MONTHS', 6))

    # Authentication ("static" or "oauth")
    AUTH_STRATEGY = os.environ.get('AUTH_STRATEGY', 'static')
    APP_USERNAME = os.environ.get('APP_USERNAME', 'rider')
    APP_PASSWORD = os.environ.get('APP_PASSWORD', '')
    TOKEN_MAX_AGE_SECONDS = int(os.environ.get('TOKEN_MAX_AGE_SECONDS', 2592000))  # 30 days

    # API
    CORS_ORIGIN = os.environ.get('CORS_ORIGIN', '*')
    RATE_LIMIT_STORAGE_URI = os.environ.get('RATE_LIMIT_STORAGE_URI', 'memory://')


@dataclass(frozen=True)
class LedgerSettings:
    """Settings consumed by the mileage accounting engine."""

    timezone: str = 'Asia/Shanghai'
    retention_months: int = 6
    ttl_seconds: int = 15552000

    @classmethod
    def from_config(cls, config=Config) -> "LedgerSettings":
        """Build settings from a Config class or a Flask config mapping."""
        if isinstance(config, dict):
            getter = config.get
        else:
            def getter(key, default=None):
                return getattr(config, key, default)

        return cls(
            timezone=getter('LEDGER_TIMEZONE', cls.timezone),
            retention_months=int(getter('RETENTION_MONTHS', cls.retention_months)),
            ttl_seconds=int(getter('DATA_TTL_SECONDS', cls.ttl_seconds)),
        )
