"""Petochania - REST backend for a cattery marketing site."""

__version__ = "1.0.0"

from petochania.core.config import PetochaniaConfig, config

__all__ = [
    "PetochaniaConfig",
    "config",
]
