"""
Data models for click events.
"""

import secrets
from typing import Optional

from pydantic import BaseModel, Field


class GeoData(BaseModel):
    """Geolocation of a click, as reported by the request context"""

    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[str] = None
    longitude: Optional[str] = None


class ClickContext(BaseModel):
    """Request metadata needed to record a click"""

    geo: GeoData = Field(default_factory=GeoData)
    ua: Optional[str] = Field(None, description="User agent string")
    referer: Optional[str] = Field(None, description="HTTP referer")


class ClickEvent(BaseModel):
    """
    One click, stored as a member of an ordered click log.

    `id` keeps every append a distinct member even when two clicks carry
    identical metadata within the same millisecond.
    """

    id: str = Field(default_factory=lambda: secrets.token_hex(8))
    geo: GeoData = Field(default_factory=GeoData)
    ua: Optional[str] = None
    referer: Optional[str] = None
    timestamp: int = Field(..., description="When the click happened (epoch ms)")

    model_config = {
        "json_schema_extra": {
            "example": {
                "id": "9f86d081884c7d65",
                "geo": {
                    "city": "San Francisco",
                    "region": "CA",
                    "country": "US",
                    "latitude": "37.7695",
                    "longitude": "-122.385",
                },
                "ua": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0",
                "referer": "https://twitter.com",
                "timestamp": 1700000000000,
            }
        }
    }
