"""Bounded TTL cache over a persistent key-value store.

Each named namespace (e.g. ``attractions_cache_v1``) is stored as one JSON
blob under one store key, mapping entry keys to ``CacheEntry`` records:

    {"52.520,13.405": {"value": ..., "created_at": 1700000000.0, "ttl_seconds": 3600}}

Reading or writing a namespace is therefore atomic relative to the store's
per-key atomicity. Puts rewrite the whole blob, which is fine because every
namespace is capped at ``max_entries`` (tens of entries at most).

Guarantees:
- Expired entries (``now - created_at > ttl_seconds``) are never returned and
  are deleted when read.
- A namespace never holds more than ``max_entries`` entries; the oldest
  ``created_at`` go first.
- Storage failures never propagate: reads become misses, writes return False.

Concurrent puts to one namespace are not serialized; the last write wins.
Losing a cache write only costs a future re-fetch.
"""

import json
import logging
import time
from typing import Any, Callable

from pydantic import ValidationError

from travel_guide.models import CacheEntry, StorageError
from travel_guide.services.storage import KeyValueStore

logger = logging.getLogger(__name__)

ValidityPredicate = Callable[[Any], bool]


def serialize_namespace(entries: dict[str, CacheEntry]) -> str:
    """Encode a namespace mapping as the JSON blob written to the store."""
    return json.dumps({key: entry.model_dump() for key, entry in entries.items()})


def deserialize_namespace(blob: str | None) -> dict[str, CacheEntry]:
    """Decode a namespace blob.

    Missing or corrupt blobs decode to an empty mapping. Individual entries
    that do not look like a ``CacheEntry`` are dropped.
    """
    if not blob:
        return {}
    try:
        raw = json.loads(blob)
    except (json.JSONDecodeError, TypeError):
        logger.warning("[CACHE] Corrupt namespace blob, starting empty")
        return {}
    if not isinstance(raw, dict):
        logger.warning("[CACHE] Namespace blob is not a mapping, starting empty")
        return {}

    entries: dict[str, CacheEntry] = {}
    for key, item in raw.items():
        try:
            entries[key] = CacheEntry.model_validate(item)
        except ValidationError:
            logger.info(f"[CACHE] Dropping malformed entry {key!r}")
    return entries


class BoundedTTLCache:
    """Per-entry TTL plus a max entry count, persisted one blob per namespace.

    Attributes:
        _store: The key-value store holding the namespace blobs.
        _max_entries: Maximum number of entries kept per namespace.
        _clock: Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        store: KeyValueStore,
        max_entries: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._store = store
        self._max_entries = max_entries
        self._clock = clock

    @property
    def max_entries(self) -> int:
        return self._max_entries

    async def _load(self, namespace: str) -> dict[str, CacheEntry]:
        """Read a namespace. Raises StorageError on store failure."""
        return deserialize_namespace(await self._store.get(namespace))

    async def _save(self, namespace: str, entries: dict[str, CacheEntry]) -> None:
        """Write a namespace. Raises StorageError on store failure."""
        await self._store.set(namespace, serialize_namespace(entries))

    async def get(
        self,
        namespace: str,
        entry_key: str,
        is_valid: ValidityPredicate | None = None,
    ) -> Any | None:
        """Return the live, valid value for ``entry_key`` or None.

        Expired entries and entries rejected by ``is_valid`` are removed from
        the namespace before returning None.

        Args:
            namespace: Store key of the namespace blob.
            entry_key: Domain-specific key within the namespace.
            is_valid: Optional predicate on the stored value.

        Returns:
            The cached value, or None on a miss or any storage failure.
        """
        try:
            entries = await self._load(namespace)
        except StorageError as e:
            logger.info(f"[CACHE] {namespace}: read failed, treating as miss: {e}")
            return None

        entry = entries.get(entry_key)
        if entry is None:
            return None

        now = self._clock()
        if not entry.is_live(now):
            reason = "expired"
        elif is_valid is not None and not is_valid(entry.value):
            reason = "invalid"
        else:
            age_minutes = round((now - entry.created_at) / 60)
            logger.info(f"[CACHE] {namespace}: hit {entry_key} (age {age_minutes} min)")
            return entry.value

        logger.info(f"[CACHE] {namespace}: {reason} entry {entry_key}, removing")
        del entries[entry_key]
        try:
            await self._save(namespace, entries)
        except StorageError as e:
            logger.info(f"[CACHE] {namespace}: could not drop {entry_key}: {e}")
        return None

    async def put(
        self,
        namespace: str,
        entry_key: str,
        value: Any,
        ttl_seconds: float,
    ) -> bool:
        """Insert or replace ``entry_key`` and enforce the capacity bound.

        ``value`` must be JSON-serializable.

        A missing or corrupt namespace starts empty; an unreadable one is
        left alone so its other entries survive.

        Returns:
            True if the namespace was written, False on storage failure.
        """
        try:
            entries = await self._load(namespace)
        except StorageError as e:
            logger.warning(
                f"[CACHE] {namespace}: read before write failed, not storing {entry_key}: {e}"
            )
            return False

        entries[entry_key] = CacheEntry(
            value=value,
            created_at=self._clock(),
            ttl_seconds=ttl_seconds,
        )

        if len(entries) > self._max_entries:
            # Equal timestamps: the later-inserted key survives
            newest_first = sorted(
                reversed(list(entries.items())),
                key=lambda item: item[1].created_at,
                reverse=True,
            )
            evicted = [key for key, _ in newest_first[self._max_entries:]]
            entries = dict(newest_first[: self._max_entries])
            logger.info(f"[CACHE] {namespace}: evicted {len(evicted)} oldest entries")

        try:
            await self._save(namespace, entries)
        except (StorageError, TypeError, ValueError) as e:
            logger.warning(f"[CACHE] {namespace}: write failed for {entry_key}: {e}")
            return False

        logger.info(f"[CACHE] {namespace}: stored {entry_key} ({len(entries)}/{self._max_entries})")
        return True

    async def purge(self, namespace: str, predicate: ValidityPredicate) -> int:
        """Remove every entry whose value matches ``predicate``.

        Returns:
            Number of entries removed (0 on storage failure).
        """
        try:
            entries = await self._load(namespace)
        except StorageError as e:
            logger.info(f"[CACHE] {namespace}: purge read failed: {e}")
            return 0

        doomed = [key for key, entry in entries.items() if predicate(entry.value)]
        if not doomed:
            return 0

        for key in doomed:
            del entries[key]
        try:
            await self._save(namespace, entries)
        except StorageError as e:
            logger.info(f"[CACHE] {namespace}: purge write failed: {e}")
            return 0

        logger.info(f"[CACHE] {namespace}: purged {len(doomed)} entries")
        return len(doomed)

    async def invalidate_expired(self, namespace: str) -> int:
        """Remove every expired entry in one pass.

        Meant for occasional sweeps (e.g. process start); reads already drop
        the entries they touch.

        Returns:
            Number of entries removed (0 on storage failure).
        """
        try:
            entries = await self._load(namespace)
        except StorageError as e:
            logger.info(f"[CACHE] {namespace}: sweep read failed: {e}")
            return 0

        now = self._clock()
        live = {key: entry for key, entry in entries.items() if entry.is_live(now)}
        removed = len(entries) - len(live)
        if removed == 0:
            return 0

        try:
            await self._save(namespace, live)
        except StorageError as e:
            logger.info(f"[CACHE] {namespace}: sweep write failed: {e}")
            return 0

        logger.info(f"[CACHE] {namespace}: swept {removed} expired entries")
        return removed

    async def clear(self, namespace: str) -> bool:
        """Drop the whole namespace."""
        try:
            await self._store.remove(namespace)
        except StorageError as e:
            logger.info(f"[CACHE] {namespace}: clear failed: {e}")
            return False
        logger.info(f"[CACHE] {namespace}: cleared")
        return True

    async def entries(self, namespace: str) -> dict[str, CacheEntry]:
        """Snapshot of the stored namespace, expired entries included."""
        try:
            return await self._load(namespace)
        except StorageError:
            return {}
