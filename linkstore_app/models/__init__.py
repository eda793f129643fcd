"""
Data models for the link store.

Records are persisted as JSON inside the key-value store; there is no
relational schema.
"""

from .link import LinkRecord
from .click import ClickContext, ClickEvent, GeoData

__all__ = ["LinkRecord", "ClickContext", "ClickEvent", "GeoData"]
