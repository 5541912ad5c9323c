"""Hosted backend access."""

from seawatch.backend.client import BackendClientManager, backend, get_backend

__all__ = ["BackendClientManager", "backend", "get_backend"]
