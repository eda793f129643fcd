"""
Physical key names for every collection of a hostname namespace.

    {hostname}:links                         hash      key -> link record JSON
    {hostname}:links:timestamps[:{user_id}]  zset      key scored by timestamp
    {hostname}:clicks:{key}                  zset      click events
    {hostname}:root:clicks                   zset      clicks on the bare hostname
    usage:{hostname}                         string    cached usage count (TTL)
"""

from typing import Optional


def links_key(hostname: str) -> str:
    return f"{hostname}:links"


def timestamps_key(hostname: str, user_id: Optional[str] = None) -> str:
    base = f"{hostname}:links:timestamps"
    return f"{base}:{user_id}" if user_id else base


def clicks_key(hostname: str, key: str) -> str:
    return f"{hostname}:clicks:{key}"


def root_clicks_key(hostname: str) -> str:
    return f"{hostname}:root:clicks"


def usage_key(hostname: str) -> str:
    return f"usage:{hostname}"
