"""Errors surfaced to callers of the monitoring domain."""

from __future__ import annotations


class InvalidInputError(ValueError):
    """Raised when signal or vitals input is missing or malformed."""
