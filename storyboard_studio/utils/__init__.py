"""Utility helpers for IO and logging."""

from . import io, logging_setup

__all__ = ["io", "logging_setup"]
