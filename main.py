import logging

from fastapi import Depends, FastAPI

from linkstore_app.config import settings
from linkstore_app.dependencies import get_store, lifespan
from linkstore_app.errors import TransportFailure
from linkstore_app.store.strategies import KeyValueStore

logging.basicConfig(level=settings.log_level)


def create_app() -> FastAPI:
    """Build the application hosting the link store"""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Link key-value store of a URL shortener",
        debug=settings.debug,
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check(store: KeyValueStore = Depends(get_store)):
        """Health check endpoint"""
        try:
            store_ok = await store.ping()
        except TransportFailure:
            store_ok = False
        return {
            "status": "healthy" if store_ok else "degraded",
            "store": settings.store_backend,
            "environment": settings.environment,
        }

    return app


app = create_app()
