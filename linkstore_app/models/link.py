import json
from typing import Optional

from pydantic import BaseModel, Field, ValidationError


class LinkRecord(BaseModel):
    """
    A short link within one hostname namespace.

    The hash value stored under the key omits `key` itself; it is rebuilt
    from the hash field on read.
    """

    key: str = Field(..., description="Short key, unique within the hostname")
    url: str = Field(..., description="Redirect target")
    title: str = Field("", description="Best-effort page title")
    timestamp: int = Field(..., description="Creation / last edit time (epoch ms)")

    def to_hash_value(self) -> str:
        """Serialize for the links hash (without the key)"""
        return self.model_dump_json(exclude={"key"})

    @classmethod
    def from_hash_value(cls, key: str, raw: Optional[str]) -> Optional["LinkRecord"]:
        """
        Rebuild a record from a links hash value.

        The hash field always wins over a `key` found inside the value.
        Returns None for a missing or unreadable value.
        """
        if raw is None:
            return None
        try:
            fields = json.loads(raw)
            if not isinstance(fields, dict):
                return None
            fields["key"] = key
            return cls(**fields)
        except (ValueError, ValidationError):
            return None
