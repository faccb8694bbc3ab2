"""Storyboard parsing and timing helpers."""

from .parser import parse_storyboard, recompute_timing, renumber

__all__ = ["parse_storyboard", "recompute_timing", "renumber"]
