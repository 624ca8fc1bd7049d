"""
Database connection layer.

Provides the keyed connection pool shared by all adapters.
"""

from .pool import ConnectionPool

__all__ = ["ConnectionPool"]
