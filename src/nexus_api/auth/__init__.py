"""Caller identity."""

from nexus_api.auth.principal import Principal

__all__ = ["Principal"]
