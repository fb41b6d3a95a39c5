"""Dev server: static files over HTTP plus the live reload socket.

Both share a single ``websockets`` listener. Requests for the reload path are
upgraded to WebSocket connections; anything else is answered from
``process_request`` with a plain HTTP response built by the static handler.
"""

from __future__ import annotations

import asyncio

from loguru import logger
from websockets.asyncio.server import ServerConnection, serve
from websockets.exceptions import ConnectionClosedError
from websockets.http11 import Request, Response

from hotreload.clients import ClientRegistry
from hotreload.config import ServerConfig
from hotreload.inject import RELOAD_MESSAGE, ReloadInjector, reload_script
from hotreload.response import ResponseWriter
from hotreload.static import StaticFiles
from hotreload.watcher import ChangeWatcher


class DevServer:
    def __init__(self, config: ServerConfig | None = None):
        self.config = config or ServerConfig()
        self.root = self.config.root
        self.clients = ClientRegistry()
        self.static = StaticFiles(self.root)
        self.script = reload_script(self.config.reload_path)
        self.watcher: ChangeWatcher | None = None
        self._server = None

    @property
    def port(self) -> int | None:
        if self._server is None:
            return None
        return self._server.sockets[0].getsockname()[1]

    def serve_http(self, target: str) -> Response:
        writer = ResponseWriter()
        if self.config.watch:
            self.static.serve(target, ReloadInjector(writer, self.script))
        else:
            self.static.serve(target, writer)
        return writer.to_response()

    async def process_request(self, connection: ServerConnection, request: Request) -> Response | None:
        if request.path.split("?", 1)[0] == self.config.reload_path:
            return None
        return await asyncio.to_thread(self.serve_http, request.path)

    async def handle_socket(self, connection: ServerConnection) -> None:
        total = await self.clients.register(connection)
        logger.info("Browser connected (total: {})", total)
        try:
            # Nothing is expected from the browser; reading only detects disconnects.
            async for _ in connection:
                pass
        except ConnectionClosedError as e:
            logger.debug("reload socket closed abnormally: {}", e)
        finally:
            total = await self.clients.unregister(connection)
            logger.info("Browser disconnected (total: {})", total)

    async def notify_clients(self) -> int:
        return await self.clients.broadcast(RELOAD_MESSAGE)

    async def start(self) -> None:
        """Start watching (when enabled) and bind the listener.

        Failures here are startup failures and propagate to the caller.
        """
        if self.config.watch:
            self.watcher = ChangeWatcher(
                self.root,
                self.notify_clients,
                asyncio.get_running_loop(),
                delay=self.config.debounce_delay,
                markers=self.config.excluded_markers,
            )
            self.watcher.start()
            logger.info("Live reload enabled")

        try:
            self._server = await serve(
                self.handle_socket,
                self.config.host or None,
                self.config.port,
                process_request=self.process_request,
            )
        except OSError:
            self._stop_watcher()
            raise
        logger.info("File server started at port {}", self.port)
        logger.info("Serving from: {}", self.root)

    def _stop_watcher(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None

    async def close(self) -> None:
        self._stop_watcher()
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        try:
            await self._server.serve_forever()
        finally:
            await self.close()
