# Upgrades persisted echo state records to the current shape
from typing import Any, Dict, List

from core.errors import StorageCorrupt

SCHEMA_VERSION = 1

# Flat disabled-source lists predate guild scoping, so their guild is unknown
LEGACY_GUILD_KEY = "unknown-guild"

_REQUIRED_LINK_FIELDS = ("guildId", "sourceChannelId", "targetChannelId")


def default_record() -> Dict[str, Any]:
    return {"version": SCHEMA_VERSION, "links": [], "disabledSources": {}}


def _dedupe(channel_ids: List[Any]) -> List[str]:
    seen = []
    for channel_id in channel_ids:
        channel_id = str(channel_id)
        if channel_id not in seen:
            seen.append(channel_id)
    return seen


def _migrate_link(item: Any) -> Dict[str, Any]:
    if not isinstance(item, dict):
        raise StorageCorrupt(f"Link entry is not an object: {item!r}")
    missing = [name for name in _REQUIRED_LINK_FIELDS if not item.get(name)]
    if missing:
        raise StorageCorrupt(f"Link entry is missing {', '.join(missing)}")
    link = dict(item)
    for name in _REQUIRED_LINK_FIELDS:
        link[name] = str(link[name])
    color = link.get("color")
    if color is not None:
        if isinstance(color, bool) or not isinstance(color, int) or not 0 <= color <= 0xFFFFFF:
            raise StorageCorrupt(f"Link color is not a 24-bit integer: {color!r}")
    else:
        link.pop("color", None)
    feed_name = link.get("feedName")
    link["feedName"] = feed_name.strip() if isinstance(feed_name, str) else ""
    link["enabled"] = link.get("enabled") is not False
    return link


def _dedupe_links(links) -> List[Dict[str, Any]]:
    # First link wins for each (guild, source, target) key
    kept = {}
    for link in links:
        key = tuple(link[name] for name in _REQUIRED_LINK_FIELDS)
        kept.setdefault(key, link)
    return list(kept.values())


def _migrate_disabled_sources(value: Any) -> Dict[str, List[str]]:
    if value is None:
        return {}
    if isinstance(value, list):
        buckets = {LEGACY_GUILD_KEY: value}
    elif isinstance(value, dict):
        buckets = value
    else:
        raise StorageCorrupt(f"disabledSources has unexpected type {type(value).__name__}")
    migrated = {}
    for guild_id, channel_ids in buckets.items():
        if not isinstance(channel_ids, list):
            raise StorageCorrupt(f"disabledSources[{guild_id!r}] is not a list")
        channel_ids = _dedupe(channel_ids)
        if channel_ids:
            migrated[str(guild_id)] = channel_ids
    return migrated


def migrate_record(raw: Any) -> Dict[str, Any]:
    """Return ``raw`` upgraded to the current record shape.

    Pure and idempotent: feeding the output back in returns an equal
    record. The legacy format was also written as version 1, so the
    flat disabled-source list is detected by shape rather than by
    version number.
    """
    if not isinstance(raw, dict):
        raise StorageCorrupt("Echo state is not a JSON object")
    version = raw.get("version", SCHEMA_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise StorageCorrupt(f"Unsupported version field: {version!r}")
    if version > SCHEMA_VERSION:
        raise StorageCorrupt(f"State version {version} is newer than supported {SCHEMA_VERSION}")
    links = raw.get("links", [])
    if not isinstance(links, list):
        raise StorageCorrupt("links is not a list")
    return {
        "version": SCHEMA_VERSION,
        "links": _dedupe_links(_migrate_link(item) for item in links),
        "disabledSources": _migrate_disabled_sources(raw.get("disabledSources")),
    }
