from typing import Iterable

from linkstore_app.config import settings


class ReservedKeys:
    """
    Keys that can never be allocated on the primary domain.

    Custom domains have no reserved keys.
    """

    def __init__(self, primary_domain: str, keys: Iterable[str]):
        self.primary_domain = primary_domain
        self.keys = frozenset(keys)

    @classmethod
    def from_settings(cls) -> "ReservedKeys":
        return cls(settings.primary_domain, settings.reserved_keys)

    def is_primary(self, hostname: str) -> bool:
        return hostname == self.primary_domain

    def blocks(self, hostname: str, key: str) -> bool:
        """True if `key` may not be used on `hostname`"""
        return self.is_primary(hostname) and key in self.keys
