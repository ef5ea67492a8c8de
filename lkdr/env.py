from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from auth.errors import InvalidConfigError

from .constants import LOGGER

REQUIRED_ENV = (
    "LKDR_PHONE",
    "LKDR_TOKENS_FILE",
    "LKDR_DEVICE_ID",
    "LKDR_USER_AGENT",
    "RUCAPTCHA_KEY",
)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidConfigError(f"{key} must be an integer value.")


def get_env_float(key: str, default: float) -> float:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise InvalidConfigError(f"{key} must be a number.")


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    load_dotenv(env_path, override=True)


def validate_env() -> None:
    missing = [key for key in REQUIRED_ENV if not os.getenv(key, "").strip()]
    if missing:
        raise InvalidConfigError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    if get_env_float("LKDR_TIMEOUT", 30.0) <= 0:
        raise InvalidConfigError("LKDR_TIMEOUT must be positive.")
    if get_env_int("LKDR_RECEIPT_LIMIT", 1) <= 0:
        raise InvalidConfigError("LKDR_RECEIPT_LIMIT must be positive.")


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("LKDR_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
