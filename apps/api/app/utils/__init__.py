"""Utility modules."""

from app.utils.presentation import humanize_identifier

__all__ = [
    "humanize_identifier",
]
