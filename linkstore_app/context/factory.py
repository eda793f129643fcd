"""
Factory for creating request context providers.
"""

from enum import Enum

from .strategies import (
    RequestContextProvider,
    EdgeRequestContextProvider,
    LocalRequestContextProvider,
)


class DeploymentTarget(Enum):
    """Where the service runs"""
    EDGE = "edge"
    LOCAL = "local"


class ContextProviderFactory:
    """Builds the provider matching the deployment target"""

    @classmethod
    def create(cls, target: DeploymentTarget) -> RequestContextProvider:
        if target == DeploymentTarget.EDGE:
            return EdgeRequestContextProvider()
        elif target == DeploymentTarget.LOCAL:
            return LocalRequestContextProvider()
        else:
            raise ValueError(f"Unknown deployment target: {target}")
