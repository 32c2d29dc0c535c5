"""Core backend for tether."""

from .backend import Backend, bootstrap_command, initialize_backend, push_bootstrap

__all__ = ["Backend", "initialize_backend", "bootstrap_command", "push_bootstrap"]
