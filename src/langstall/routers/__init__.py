"""Router package exports."""

from . import health, vocabulary

__all__ = [
    "health",
    "vocabulary",
]
