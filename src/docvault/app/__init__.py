from .core.env import Env, get_env, pick
from .core.logging import setup_logging
from .settings import ServiceSettings, get_settings

__all__ = [
    "Env",
    "get_env",
    "pick",
    "setup_logging",
    "ServiceSettings",
    "get_settings",
]
