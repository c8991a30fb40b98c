"""Detect web-platform features in source files and check them against Baseline."""

from ._version import __version__

__all__ = ["__version__"]
