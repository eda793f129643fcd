"""
Error taxonomy for the link store.

Absent reads are not errors: lookups return None or an empty list.
"""


class LinkStoreError(Exception):
    """Base class for every error raised by this package"""


class KeyConflict(LinkStoreError):
    """The target key already exists in the hostname's links"""

    def __init__(self, hostname: str, key: str):
        self.hostname = hostname
        self.key = key
        super().__init__(f"Key '{key}' already exists on {hostname}")


class ReservedKey(LinkStoreError):
    """The key is reserved on the primary domain"""

    def __init__(self, hostname: str, key: str):
        self.hostname = hostname
        self.key = key
        super().__init__(f"Key '{key}' is reserved on {hostname}")


class GenerationExhausted(LinkStoreError):
    """No free random key was found within the attempt budget"""

    def __init__(self, hostname: str, attempts: int):
        self.hostname = hostname
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a unique key on {hostname} after {attempts} attempts"
        )


class TransportFailure(LinkStoreError):
    """A call to the key-value store failed"""


class CommandError(TransportFailure):
    """The store rejected a command (missing rename source, wrong type)"""
