"""
Utilities to centralize configuration handling for the bistro services.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

TRANSITION_POLICIES = ("standard", "permissive")


@dataclass
class AppConfig:
    """Simple container for application level settings."""

    app_name: str
    database_url: str
    secret_key: str
    log_level: str
    debug_mode: bool
    order_transition_policy: str
    load_seed_data: bool
    jwt_access_token_expires_hours: int
    default_report_top_n: int
    currency: str

    def get_bool(self, key: str, default: bool = False) -> bool:
        """
        Get boolean config value from AppConfig.

        Args:
            key: Configuration key (e.g., 'load_seed_data')
            default: Default value if not set (defaults to False)
        """
        value = getattr(self, key, default)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


def _read_env(name: str, default: str | None = None) -> str:
    """
    Internal helper to fetch environment variables with support for defaults.
    """
    value = os.getenv(name)
    if value is None:
        if default is None:
            raise RuntimeError(f"Missing required environment variable '{name}'")
        value = default
    return value


def read_bool(name: str, default: str = "false") -> bool:
    value = _read_env(name, default)
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_policy(name: str, default: str) -> str:
    value = _read_env(name, default).strip().lower()
    if value not in TRANSITION_POLICIES:
        raise RuntimeError(
            f"{name} must be one of {', '.join(TRANSITION_POLICIES)}, got: {value!r}"
        )
    return value


def load_config(app_name: str) -> AppConfig:
    """
    Produce an AppConfig instance populated from environment variables.

    Each entry point passes its desired `app_name` to keep logs easy to
    differentiate while still reusing the same config loader.
    """
    return AppConfig(
        app_name=app_name,
        database_url=_read_env("DATABASE_URL", "sqlite:///bistro.db"),
        secret_key=_read_env("SECRET_KEY", "bistro-dev-secret-change-me"),
        log_level=_read_env("LOG_LEVEL", "INFO"),
        debug_mode=read_bool("DEBUG_MODE", "false"),
        order_transition_policy=_read_policy("ORDER_TRANSITION_POLICY", "standard"),
        load_seed_data=read_bool("LOAD_SEED_DATA", "true"),
        jwt_access_token_expires_hours=int(_read_env("JWT_ACCESS_TOKEN_EXPIRES_HOURS", "12")),
        default_report_top_n=int(_read_env("REPORT_TOP_N", "10")),
        currency=_read_env("CURRENCY", "VND"),
    )
