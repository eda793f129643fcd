"""
Request context module: geo, user agent and referer of a click.
"""

from .strategies import (
    RequestContextProvider,
    EdgeRequestContextProvider,
    LocalRequestContextProvider,
    LOCALHOST_GEO_DATA,
)
from .factory import ContextProviderFactory, DeploymentTarget

__all__ = [
    "RequestContextProvider",
    "EdgeRequestContextProvider",
    "LocalRequestContextProvider",
    "LOCALHOST_GEO_DATA",
    "ContextProviderFactory",
    "DeploymentTarget",
]
