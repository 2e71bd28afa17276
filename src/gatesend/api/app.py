"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gatesend import __version__
from gatesend.config import get_settings
from gatesend.services.factory import GatewayServices, build_local_signer, build_services


def create_app(services: Optional[GatewayServices] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        services: Pre-built service graph (tests inject fakes here). When
            omitted, services are built from settings and a local signer is
            connected if a key is configured.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        graph = services or build_services(settings)
        app.state.services = graph
        if services is None:
            signer = build_local_signer(graph)
            if signer is not None:
                await graph.connect(signer)
        yield
        # Shutdown: no polling task may outlive the app
        await graph.disconnect()

    app = FastAPI(
        title="gatesend API",
        description="Fee-metered token transfers through a gateway contract",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    if services is not None:
        app.state.services = services

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from gatesend.api.routes import health
    from gatesend.web.controllers import prices_router, transfers_router, wallet_router

    app.include_router(health.router, tags=["Health"])
    app.include_router(wallet_router, prefix="/api/v1")
    app.include_router(transfers_router, prefix="/api/v1")
    app.include_router(prices_router, prefix="/api/v1")

    return app


# Default app instance
app = create_app()
