"""Starlette application serving the OAuth callback."""

import logging

import uvicorn
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from salvage_bot.linking.service import LinkService

from .auth import auth_routes
from .correlation import CorrelationIdMiddleware

logger = logging.getLogger("salvage-bot.server.main")


async def health_check(request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok"})


def create_app(svc: LinkService, *, success_url: str, base_path: str = "/auth") -> Starlette:
    """Build the ASGI app: ``/health`` plus the OAuth routes under *base_path*."""
    routes = [
        Route("/health", health_check, methods=["GET"]),
        *auth_routes(svc, success_url=success_url, base_path=base_path),
    ]
    app = Starlette(routes=routes, middleware=[Middleware(CorrelationIdMiddleware)])
    app.state.link_service = svc
    return app


def build_server(app: Starlette, *, host: str, port: int, log_level: str = "info") -> uvicorn.Server:
    """Return a uvicorn server for *app*; ``await server.serve()`` runs it on the current loop."""
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level.lower(),
        lifespan="off",
    )
    server = uvicorn.Server(config)
    logger.info("Callback server configured on %s:%s", host, port)
    return server
