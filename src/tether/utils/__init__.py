"""Utility functions for tether."""

from .logging import setup_logging

__all__ = ["setup_logging"]
