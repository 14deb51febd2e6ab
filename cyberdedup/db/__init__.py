"""Database management for the duplicate detection pipeline."""

from .articles import PostgresCandidateIndex
from .connection import get_connection, get_connection_pool
from .init import init_database, validate_connection
from .runs import RunManager

__all__ = [
    "PostgresCandidateIndex",
    "RunManager",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "validate_connection",
]
