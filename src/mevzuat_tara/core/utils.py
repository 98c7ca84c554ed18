from __future__ import annotations

import os

import structlog


def configure_logging() -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ]
    )


def env(key: str, default: str | None = None) -> str:
    val = os.environ.get(key, default)
    if val is None:
        raise RuntimeError(f"Missing environment variable {key}")
    return val


def env_int(key: str, default: int) -> int:
    return int(env(key, str(default)))


def env_float(key: str, default: float) -> float:
    return float(env(key, str(default)))
