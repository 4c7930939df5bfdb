"""Job record storage."""

from vidpost.store.base import JobStore
from vidpost.store.json_store import JsonJobStore
from vidpost.store.memory import MemoryJobStore

__all__ = ["JobStore", "JsonJobStore", "MemoryJobStore"]
