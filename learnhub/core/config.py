from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so it’s easy to extend later (type casting, required vars)
    return os.environ.get(name, default).strip()


def _getbool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    # Payment gateway (Razorpay-compatible contract)
    gateway_key_id: str = "rzp_test_local"
    gateway_key_secret: str = "dev-gateway-secret"
    gateway_webhook_secret: str | None = None
    gateway_base_url: str | None = None
    gateway_timeout_seconds: float = 10.0
    currency: str = "INR"
    auth_public_key_pem: str | None = None

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    timeout_raw = _getenv("GATEWAY_TIMEOUT_SECONDS", "10")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        gateway_timeout = float(timeout_raw)
    except ValueError:
        raise ValueError(
            f"GATEWAY_TIMEOUT_SECONDS must be a number (got {timeout_raw!r})"
        ) from None
    if gateway_timeout <= 0:
        raise ValueError("GATEWAY_TIMEOUT_SECONDS must be positive")

    gateway_key_secret = _getenv("GATEWAY_KEY_SECRET", "")
    if not gateway_key_secret:
        if app_env_raw == "prod":
            raise ValueError("GATEWAY_KEY_SECRET is required when APP_ENV=prod")
        gateway_key_secret = "dev-gateway-secret"

    currency = _getenv("CURRENCY", "INR").upper()
    if len(currency) != 3 or not currency.isalpha():
        raise ValueError(f"CURRENCY must be an ISO 4217 code (got {currency!r})")

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getbool("LOG_JSON", False),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        gateway_key_id=_getenv("GATEWAY_KEY_ID", "rzp_test_local"),
        gateway_key_secret=gateway_key_secret,
        gateway_webhook_secret=_getenv("GATEWAY_WEBHOOK_SECRET", "") or None,
        gateway_base_url=_getenv("GATEWAY_BASE_URL", "") or None,
        gateway_timeout_seconds=gateway_timeout,
        currency=currency,
        auth_public_key_pem=_getenv("AUTH_PUBLIC_KEY_PEM", "") or None,
    )


# Optional: module-level singleton so imports are cheap
SETTINGS = load_settings()
