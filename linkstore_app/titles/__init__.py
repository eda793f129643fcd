"""
Title resolution for links created without a title.
"""

from .strategies import TitleResolver, HttpTitleResolver, NullTitleResolver, extract_title
from .factory import TitleResolverFactory, TitleResolverBackend

__all__ = [
    "TitleResolver",
    "HttpTitleResolver",
    "NullTitleResolver",
    "extract_title",
    "TitleResolverFactory",
    "TitleResolverBackend",
]
