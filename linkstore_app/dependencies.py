"""
FastAPI dependencies for dependency injection.

The store, request context provider and title resolver are built once by
the application lifespan and kept on `app.state`; every component gets
them passed in explicitly, so there is no module-level store handle.

Pattern: Dependency Injection
- Lifecycle tied to application startup/shutdown
- Easy to test (put an InMemoryStore on app.state)
- Flexible (swap implementations via config)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request

from linkstore_app.config import settings
from linkstore_app.context.factory import ContextProviderFactory, DeploymentTarget
from linkstore_app.context.strategies import RequestContextProvider
from linkstore_app.services.click_recorder import ClickRecorder
from linkstore_app.services.domain_migrator import DomainMigrator
from linkstore_app.services.link_store import LinkStore
from linkstore_app.services.usage_aggregator import UsageAggregator
from linkstore_app.store.factory import StoreBackend, StoreFactory
from linkstore_app.store.strategies import KeyValueStore
from linkstore_app.titles.factory import TitleResolverBackend, TitleResolverFactory
from linkstore_app.titles.strategies import TitleResolver

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build shared resources at startup and release them at shutdown.

    Raises at startup if the store cannot be reached.
    """
    store = StoreFactory.create(StoreBackend(settings.store_backend))
    await store.ping()

    app.state.store = store
    app.state.context_provider = ContextProviderFactory.create(DeploymentTarget(settings.deployment))
    app.state.title_resolver = TitleResolverFactory.create(TitleResolverBackend(settings.title_resolver))
    logger.info("🚀 %s started (store=%s, deployment=%s)",
                settings.app_name, settings.store_backend, settings.deployment)

    try:
        yield
    finally:
        await store.close()
        StoreFactory.clear_instance()
        logger.info("🛑 %s stopped", settings.app_name)


def get_store(request: Request) -> KeyValueStore:
    """Store created by the lifespan"""
    return request.app.state.store


def get_context_provider(request: Request) -> RequestContextProvider:
    return request.app.state.context_provider


def get_title_resolver(request: Request) -> TitleResolver:
    return request.app.state.title_resolver


def get_link_store(
    store: KeyValueStore = Depends(get_store),
    title_resolver: TitleResolver = Depends(get_title_resolver),
) -> LinkStore:
    return LinkStore(store=store, title_resolver=title_resolver)


def get_click_recorder(
    store: KeyValueStore = Depends(get_store),
    context_provider: RequestContextProvider = Depends(get_context_provider),
) -> ClickRecorder:
    return ClickRecorder(store=store, context_provider=context_provider)


def get_usage_aggregator(store: KeyValueStore = Depends(get_store)) -> UsageAggregator:
    return UsageAggregator(store=store)


def get_domain_migrator(store: KeyValueStore = Depends(get_store)) -> DomainMigrator:
    return DomainMigrator(store=store)
