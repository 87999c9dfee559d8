"""
API Server - aiohttp-based HTTP/WebSocket server for tcp-repeat.

Serves the REST endpoints and the observer WebSocket from one
application, bound to the configured host and port.
"""

from typing import Optional

from aiohttp import web

from tcp_repeat.core.logging_utils import get_module_logger

from .controller import APIController
from .middleware import (
    error_handling_middleware,
    request_logging_middleware,
    set_debug_mode,
)
from .routes import setup_all_routes


logger = get_module_logger("APIServer")

# Upload batches can be large capture files
DEFAULT_CLIENT_MAX_SIZE = 1024 ** 3


class APIServer:
    """
    HTTP server for the capture catalog.

    Wraps an aiohttp AppRunner/TCPSite pair so the server can be started and
    stopped from the application's own event loop.
    """

    def __init__(
        self,
        controller: APIController,
        host: str = "0.0.0.0",
        port: int = 3003,
        debug: bool = False,
        client_max_size: int = DEFAULT_CLIENT_MAX_SIZE,
    ):
        """
        Initialize the API server.

        Args:
            controller: APIController wrapping the engine
            host: Host to bind to
            port: Port to bind to (default: 3003)
            debug: If True, enable verbose error responses
            client_max_size: Largest accepted request body in bytes
        """
        self.controller = controller
        self.host = host
        self.port = port
        self.debug = debug
        self.client_max_size = client_max_size

        self._app: Optional[web.Application] = None
        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._running = False

        set_debug_mode(debug)

    def create_app(self) -> web.Application:
        """Create and configure the aiohttp application."""
        app = web.Application(
            middlewares=[request_logging_middleware, error_handling_middleware],
            client_max_size=self.client_max_size,
        )

        # Store controller reference for routes
        app["controller"] = self.controller
        app.on_shutdown.append(self._close_observers)

        setup_all_routes(app, self.controller)
        return app

    async def _close_observers(self, app: web.Application) -> None:
        await self.controller.engine.channel.close_all()

    async def start(self) -> None:
        """Start the API server (non-blocking)."""
        if self._running:
            logger.warning("API server already running")
            return

        self._app = self.create_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()

        self._running = True
        mode_info = " (debug mode)" if self.debug else ""
        logger.info("API server started on http://%s:%d%s", self.host, self.port, mode_info)

    async def stop(self) -> None:
        """Stop the API server gracefully."""
        if not self._running:
            return

        logger.info("Stopping API server...")

        if self._site:
            await self._site.stop()
            self._site = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        self._app = None
        self._running = False

        logger.info("API server stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"
