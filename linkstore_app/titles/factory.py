"""
Factory for creating title resolvers.
"""

from enum import Enum

from .strategies import TitleResolver, HttpTitleResolver, NullTitleResolver
from linkstore_app.config import settings


class TitleResolverBackend(Enum):
    """Available title resolvers"""
    HTTP = "http"
    NULL = "null"


class TitleResolverFactory:
    """Builds a title resolver; configuration comes from settings"""

    @classmethod
    def create(cls, backend: TitleResolverBackend) -> TitleResolver:
        if backend == TitleResolverBackend.HTTP:
            return HttpTitleResolver(
                timeout=settings.title_fetch_timeout,
                max_content_length=settings.title_max_content_length,
            )
        elif backend == TitleResolverBackend.NULL:
            return NullTitleResolver()
        else:
            raise ValueError(f"Unknown title resolver: {backend}")
