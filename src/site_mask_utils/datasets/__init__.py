"""Dataset-specific utilities and processing functions."""

from . import occurrences

__all__ = [
    "occurrences",
]
