# storefront/main.py
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from storefront.api.deps import build_container
from storefront.api.routers import carts, health, orders, payments
from storefront.data.seed import seed
from storefront.utils.logging import get_logger
from storefront.utils.settings import Settings

logger = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    store=None,
    payments_provider=None,
    products=None,
    locks=None,
    notifier=None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    container = build_container(
        settings,
        store=store,
        payments=payments_provider,
        products=products,
        locks=locks,
        notifier=notifier,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting storefront ({settings.storage_driver} store, {settings.lock_backend} locks)")
        await container.store.connect()
        if settings.seed_demo_data:
            await seed(container.store)
        try:
            yield
        finally:
            await container.locks.close()
            await container.store.close()
            logger.info("Storefront stopped")

    app = FastAPI(
        title="Storefront Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.container = container

    # Include routers
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(payments.router)
    app.include_router(orders.router)

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
