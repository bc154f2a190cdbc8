"""
Database client layer.

Adapts the surrealdb SDK to the small client protocol the pool manages.
"""

from .client import (AuthExemptPredicate, Connector, DatabaseClient,
                     SurrealClient, connect_surreal, is_embedded_address)

__all__ = [
    "DatabaseClient",
    "SurrealClient",
    "Connector",
    "AuthExemptPredicate",
    "connect_surreal",
    "is_embedded_address",
]
