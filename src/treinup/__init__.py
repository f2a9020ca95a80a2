"""TreinUp - session bootstrap and account provisioning."""

__version__ = "0.1.0"

from treinup.exceptions import TreinupError

__all__ = ["__version__", "TreinupError"]
