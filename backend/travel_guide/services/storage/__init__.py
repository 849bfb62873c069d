"""Persistent key-value stores (Redis and in-memory)."""

from .service import InMemoryKeyValueStore, KeyValueStore, RedisKeyValueStore

__all__ = ["InMemoryKeyValueStore", "KeyValueStore", "RedisKeyValueStore"]
