"""Repository modules - Data access layer"""
from .base import CaseStore
from .memory_store import InMemoryCaseStore
from .mongo_client import get_database, get_collection, close_connection, create_indexes
from .case_repo import MongoCaseRepository

__all__ = [
    "CaseStore",
    "InMemoryCaseStore",
    "MongoCaseRepository",
    "get_database",
    "get_collection",
    "close_connection",
    "create_indexes",
]
