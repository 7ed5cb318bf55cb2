import asyncio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from loguru import logger

from agrohaat.core.config import settings
from agrohaat.core.database import DatabaseManager
from agrohaat.api.routes import (
    bids_router, products_router, notifications_router,
    profile_router, admin_router, websocket_router
)
from agrohaat.services.communication.push_dispatcher import push_dispatcher


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up {settings.app_name} v{settings.version}...")

    await DatabaseManager.init()

    try:
        yield
    finally:
        logger.info("Shutting down...")
        if settings.PUSH_ENABLED:
            push_dispatcher.flush()
        await DatabaseManager.close()

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan,
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"]
)


@app.get("/health")
async def health_check():
    return {"status": "healthy"}

app.include_router(
    bids_router,
    prefix="/bids",
    tags=["Bids"]
)

app.include_router(
    products_router,
    prefix="/products",
    tags=["Products"]
)

app.include_router(
    notifications_router,
    prefix="/notifications",
    tags=["Notifications"]
)

app.include_router(
    profile_router,
    prefix="/profile",
    tags=["Profile"]
)

app.include_router(
    admin_router,
    prefix="/admin",
    tags=["Admin"]
)

app.include_router(
    websocket_router,
    tags=["Realtime"]
)


async def main():
    """ Main function to run FastAPI with multiple workers. """
    config = uvicorn.Config(
        "agrohaat.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.debug
    )
    server = uvicorn.Server(config)
    await server.serve()

if __name__ == "__main__":
    asyncio.run(main())
