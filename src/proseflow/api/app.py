"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from proseflow.api.routes import admin, health
from proseflow.core.config import AppSettings
from proseflow.core.log import configure_logging
from proseflow.runtime import Runtime, build_runtime


def create_app(runtime: Runtime | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Initialize and tear down application resources."""
        settings = runtime.settings if runtime is not None else AppSettings()
        configure_logging(settings)
        app.state.settings = settings
        app.state.runtime = runtime or build_runtime(settings)
        await app.state.runtime.start()
        yield
        await app.state.runtime.shutdown()

    app = FastAPI(
        title="ProseFlow",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(admin.router, prefix="/admin")
    return app
