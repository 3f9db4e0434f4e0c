"""Deployment environment, read once from ``APP_ENV``.

Only logging defaults depend on it; everything else is explicit configuration.
"""

from __future__ import annotations

import os
import warnings
from enum import StrEnum
from functools import cache
from typing import TypeVar

T = TypeVar("T")


class Env(StrEnum):
    LOCAL = "local"
    DEV = "dev"
    TEST = "test"
    PROD = "prod"


_ALIASES: dict[str, Env] = {
    "development": Env.DEV,
    "testing": Env.TEST,
    "production": Env.PROD,
}


def parse_env(raw: str | None) -> Env | None:
    """Canonical :class:`Env` for ``raw`` (case-insensitive, aliases allowed), else ``None``."""
    if not raw or not raw.strip():
        return None
    value = raw.strip().lower()
    try:
        return Env(value)
    except ValueError:
        return _ALIASES.get(value)


@cache
def get_env() -> Env:
    raw = os.getenv("APP_ENV")
    env = parse_env(raw)
    if env is not None:
        return env
    if raw:
        warnings.warn(f"Unrecognized APP_ENV {raw!r}; using 'local'.", RuntimeWarning, stacklevel=2)
    return Env.LOCAL


def pick(*, prod: T, nonprod: T, env: Env | None = None) -> T:
    """``prod`` in production, ``nonprod`` everywhere else."""
    return prod if (env or get_env()) is Env.PROD else nonprod


__all__ = ["Env", "parse_env", "get_env", "pick"]
