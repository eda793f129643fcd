"""
Request context providers using Strategy Pattern.

A provider turns an incoming request into the metadata stored with a
click. The deployment decides which provider is built (see factory.py);
the click recorder never checks the environment itself.
"""

from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import unquote

from fastapi import Request

from linkstore_app.models.click import ClickContext, GeoData

# Fixed location used when the edge network does not annotate requests
LOCALHOST_GEO_DATA = GeoData(
    city="San Francisco",
    region="CA",
    country="US",
    latitude="37.7695",
    longitude="-122.385",
)


class RequestContextProvider(ABC):
    """Abstract base class for request context providers"""

    @abstractmethod
    def geo(self, request: Request) -> GeoData:
        """Geolocation for the request"""
        pass

    def extract(self, request: Request) -> ClickContext:
        """
        Build the click context for a request.

        Args:
            request: Incoming HTTP request

        Returns:
            ClickContext with geo, user agent and referer
        """
        return ClickContext(
            geo=self.geo(request),
            ua=request.headers.get("user-agent"),
            referer=request.headers.get("referer"),
        )


class EdgeRequestContextProvider(RequestContextProvider):
    """
    Reads the geolocation headers added by the edge network.

    Header values may be percent-encoded (city names); missing headers
    leave the field empty.
    """

    HEADERS = {
        "city": "x-vercel-ip-city",
        "region": "x-vercel-ip-country-region",
        "country": "x-vercel-ip-country",
        "latitude": "x-vercel-ip-latitude",
        "longitude": "x-vercel-ip-longitude",
    }

    def geo(self, request: Request) -> GeoData:
        return GeoData(**{
            field: self._header(request, header)
            for field, header in self.HEADERS.items()
        })

    @staticmethod
    def _header(request: Request, name: str) -> Optional[str]:
        value = request.headers.get(name)
        return unquote(value) if value else None


class LocalRequestContextProvider(RequestContextProvider):
    """Local / non-edge execution: always the placeholder location"""

    def geo(self, request: Request) -> GeoData:
        return LOCALHOST_GEO_DATA.model_copy()
