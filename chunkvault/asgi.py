"""ASGI application factory.

Run with ``chunkvault serve`` or any ASGI server pointed at
``chunkvault.asgi:app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from litestar import Litestar

from chunkvault.config import Settings, get_settings
from chunkvault.controllers.videos import VideoController
from chunkvault.lib import observability
from chunkvault.lib.exceptions import EXCEPTION_HANDLERS
from chunkvault.lib.hooks import LOGFIRE_CONFIGURED, hooks
from chunkvault.lib.storage import StorageManager

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> Litestar:
    """Build the Litestar app with a storage manager on ``app.state``."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def storage_lifespan(app: Litestar) -> AsyncIterator[None]:
        storage = StorageManager(settings.storage)
        app.state.storage_manager = storage
        try:
            yield
        finally:
            try:
                await storage.close()
            except Exception:
                logger.warning("Error closing document stores", exc_info=True)

    async def announce_logfire() -> None:
        if observability.is_available():
            await hooks.do_action(LOGFIRE_CONFIGURED, settings)

    app = Litestar(
        route_handlers=[VideoController],
        exception_handlers=EXCEPTION_HANDLERS,
        lifespan=[storage_lifespan],
        on_startup=[announce_logfire],
        debug=settings.debug,
    )
    app.state.settings = settings
    return app


def create_asgi_app():
    """Entry point for ASGI servers; wraps the app with logfire when enabled."""
    settings = get_settings()
    observability.configure(settings)
    return observability.instrument_app(create_app(settings))


app = create_asgi_app()
