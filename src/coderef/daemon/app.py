"""Starlette application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from starlette.applications import Starlette

from coderef.daemon.middleware import RequestIdMiddleware
from coderef.daemon.routes import create_routes

if TYPE_CHECKING:
    from coderef.daemon.lifecycle import ServerController


def create_app(controller: ServerController) -> Starlette:
    """Create the Starlette application bound to controller.

    The lifespan starts the background consumer and stops it on shutdown.
    """

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        await controller.start()
        try:
            yield
        finally:
            await controller.stop()

    app = Starlette(routes=create_routes(controller), lifespan=lifespan)
    app.add_middleware(RequestIdMiddleware)
    app.state.controller = controller
    return app
