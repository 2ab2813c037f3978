"""Relational persistence for profiles, games, lessons and lesson progress."""

from .base import Base, create_engine_from_config, create_session_factory
from .record_store import RecordStore, StoreResult

__all__ = [
    "Base",
    "RecordStore",
    "StoreResult",
    "create_engine_from_config",
    "create_session_factory",
]
