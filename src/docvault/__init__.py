__version__ = "0.1.0"

from .exceptions import DocVaultError

__all__ = [
    "__version__",
    "DocVaultError",
]
