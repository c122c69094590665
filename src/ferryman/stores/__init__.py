"""Concrete source and destination stores."""

from ferryman.stores.memory import InMemoryStore
from ferryman.stores.sql import SqlDocumentStore

__all__ = ["InMemoryStore", "SqlDocumentStore"]
