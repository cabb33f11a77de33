# Persistent storage for echo links and disabled sources
import asyncio
import json
import logging
import os
import tempfile
from dataclasses import replace
from typing import Callable, Optional, Tuple

from core.errors import DuplicateLink, LinkNotFound, StorageCorrupt
from core.models import ConfigStore, EchoLink
from storage.migrations import LEGACY_GUILD_KEY, default_record, migrate_record


class LinkStore:
    def __init__(self, path: str, logger: Optional[logging.Logger] = None):
        self.path = path
        self.logger = logger or logging.getLogger("EchoRelay.Store")
        # Global write serialization; write volume is low
        self._lock = asyncio.Lock()

    def load(self) -> ConfigStore:
        if not os.path.exists(self.path):
            store = ConfigStore.from_record(default_record())
            self.save(store)
            self.logger.info(f"Created empty echo state at {self.path}")
            return store

        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                raw = json.load(handle)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise StorageCorrupt(f"Could not parse {self.path}: {exc}") from exc

        migrated = migrate_record(raw)
        try:
            store = ConfigStore.from_record(migrated)
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageCorrupt(f"Unexpected structure in {self.path}: {exc}") from exc

        dropped = len(raw.get("links", [])) - len(store.links)
        if dropped:
            self.logger.warning(f"Dropped {dropped} duplicate echo link(s) from {self.path}")
        if store.to_record() != raw:
            self.logger.info(f"Migrated echo state at {self.path} to the current format")
            self.save(store)
        return store

    def save(self, store: ConfigStore) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".echo-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(store.to_record(), handle, indent=2, ensure_ascii=False)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    async def snapshot(self) -> ConfigStore:
        # Saves are atomic replaces, so a plain load is a consistent read
        return self.load()

    async def update(self, mutator: Callable[[ConfigStore], ConfigStore]) -> ConfigStore:
        """Run ``load -> mutator -> save`` as one critical section.

        If ``mutator`` raises, nothing is written and the error propagates.
        """
        async with self._lock:
            store = self.load()
            updated = mutator(store)
            if updated is not store:
                self.save(updated)
            return updated


def add_link(store: ConfigStore, link: EchoLink) -> ConfigStore:
    if any(existing.key == link.key for existing in store.links):
        raise DuplicateLink()
    return replace(store, links=store.links + (link,))


def remove_link(store: ConfigStore, guild_id: str, source_id: str, target_id: str) -> ConfigStore:
    key = (guild_id, source_id, target_id)
    remaining = tuple(link for link in store.links if link.key != key)
    if len(remaining) == len(store.links):
        raise LinkNotFound()
    return replace(store, links=remaining)


def set_source_disabled(store: ConfigStore, guild_id: str, source_id: str, disabled: bool) -> ConfigStore:
    buckets = dict(store.disabled_sources)
    current = buckets.get(guild_id, ())
    if disabled:
        if source_id in current:
            return store
        buckets[guild_id] = current + (source_id,)
    else:
        # Also lift a legacy, guild-less disable for the same channel
        touched = False
        for key in (guild_id, LEGACY_GUILD_KEY):
            channel_ids = buckets.get(key, ())
            if source_id in channel_ids:
                touched = True
                remaining = tuple(c for c in channel_ids if c != source_id)
                if remaining:
                    buckets[key] = remaining
                else:
                    del buckets[key]
        if not touched:
            return store
    return replace(store, disabled_sources=buckets)


def list_links(store: ConfigStore, guild_id: str) -> Tuple[EchoLink, ...]:
    return tuple(link for link in store.links if link.guild_id == guild_id)


def disabled_sources_for(store: ConfigStore, guild_id: str) -> Tuple[str, ...]:
    return store.disabled_sources.get(guild_id, ())
