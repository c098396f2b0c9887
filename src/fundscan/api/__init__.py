"""Query API -- read-only HTTP access to the opportunity and history caches."""

from fundscan.api.app import create_app

__all__ = ["create_app"]
