"""
Random short key generation for the link store.
"""

import logging
import secrets
from typing import Iterator, List, Optional

from linkstore_app.errors import GenerationExhausted
from linkstore_app.services.reserved_keys import ReservedKeys
from linkstore_app.store.keys import links_key
from linkstore_app.store.strategies import KeyValueStore

logger = logging.getLogger(__name__)

ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"


class KeyGenerator:
    """
    Random key generation with collision checking.

    Candidates come from a bounded search: `max_attempts` keys at the
    normal length, then `max_attempts` more at the widened length.
    Reserved keys are skipped but still use up an attempt.

    At 7 characters a collision is about 1 in 3.5 trillion per existing
    key, so the widened length is effectively never reached; the bound
    only guarantees termination.
    """

    def __init__(
        self,
        store: KeyValueStore,
        reserved: ReservedKeys,
        length: int = 7,
        max_attempts: int = 10,
        widened_length: Optional[int] = 10,
    ):
        """
        Args:
            store: Store holding the links hashes
            reserved: Reserved-key rule applied to every candidate
            length: Normal key length
            max_attempts: Candidates tried per length
            widened_length: Length used once the normal length is exhausted
                            (None or not longer than `length` disables widening)
        """
        self.store = store
        self.reserved = reserved
        self.length = length
        self.max_attempts = max_attempts
        self.widened_length = widened_length

    @property
    def lengths(self) -> List[int]:
        if self.widened_length and self.widened_length > self.length:
            return [self.length, self.widened_length]
        return [self.length]

    @property
    def attempt_budget(self) -> int:
        return self.max_attempts * len(self.lengths)

    def generate(self, length: Optional[int] = None) -> str:
        """Generate a random key (no uniqueness check)"""
        return "".join(secrets.choice(ALPHABET) for _ in range(length or self.length))

    def candidates(self, hostname: str) -> Iterator[str]:
        """Yield the bounded sequence of non-reserved candidates for a hostname"""
        for length in self.lengths:
            for _ in range(self.max_attempts):
                key = self.generate(length)
                if self.reserved.blocks(hostname, key):
                    continue
                yield key

    async def allocate_unique(self, hostname: str) -> str:
        """
        Find a key that is currently free on `hostname`.

        The existence probe only filters out keys already taken; a caller
        still has to claim the key with a create-if-absent write.

        Raises:
            GenerationExhausted: If every candidate was taken
        """
        for key in self.candidates(hostname):
            if not await self.store.hexists(links_key(hostname), key):
                return key
            logger.debug("Key collision on %s: %s", hostname, key)

        raise GenerationExhausted(hostname, self.attempt_budget)
