"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import geocoding, health, tracking
from .config import settings
from .services.geocoding import AddressResolver


def create_app(resolver: AddressResolver | None = None) -> FastAPI:
    """Build the application; without a resolver one is created around a lifespan-owned client."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if resolver is not None:
            app.state.resolver = resolver
            yield
            return
        async with httpx.AsyncClient(headers={"User-Agent": settings.geocoder_user_agent}) as client:
            app.state.resolver = AddressResolver.from_settings(client)
            logging.info(f"Geocoding client ready for {settings.geocoder_base_url}")
            yield
        app.state.resolver = None

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    # Available before startup as well, e.g. for clients that skip the lifespan
    app.state.resolver = resolver
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(geocoding.router, prefix=settings.api_prefix)
    app.include_router(tracking.router, prefix=settings.api_prefix)
    return app


app = create_app()
