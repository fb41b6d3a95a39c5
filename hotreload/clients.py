"""Registry of browser tabs connected to the reload socket."""

from __future__ import annotations

import asyncio

from loguru import logger
from websockets.exceptions import ConnectionClosed

from hotreload.inject import RELOAD_MESSAGE


class ClientRegistry:
    """Set of connected reload clients guarded by a single lock.

    Clients only need ``send(message)`` and ``close()`` coroutines, which
    every ``websockets`` connection provides.
    """

    def __init__(self) -> None:
        self._clients = set()
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client) -> bool:
        return client in self._clients

    async def register(self, client) -> int:
        async with self._lock:
            self._clients.add(client)
            return len(self._clients)

    async def unregister(self, client) -> int:
        async with self._lock:
            self._clients.discard(client)
            return len(self._clients)

    async def broadcast(self, message: str = RELOAD_MESSAGE) -> int:
        """Send ``message`` to every client and return how many received it.

        A client whose send fails is closed and dropped from the registry.
        """
        async with self._lock:
            for client in list(self._clients):
                try:
                    await client.send(message)
                except (ConnectionClosed, OSError) as e:
                    logger.debug("Error notifying client: {}", e)
                    self._clients.discard(client)
                    await client.close()
            count = len(self._clients)
        logger.info("Notified {} browser(s) to reload", count)
        return count
