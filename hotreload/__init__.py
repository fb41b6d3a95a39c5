"""Local dev file server with live reload."""

from hotreload.clients import ClientRegistry
from hotreload.config import ServerConfig
from hotreload.inject import RELOAD_MESSAGE, RELOAD_SCRIPT, ReloadInjector
from hotreload.server import DevServer
from hotreload.watcher import ChangeWatcher, Debouncer

__all__ = [
    "RELOAD_MESSAGE",
    "RELOAD_SCRIPT",
    "ChangeWatcher",
    "ClientRegistry",
    "Debouncer",
    "DevServer",
    "ReloadInjector",
    "ServerConfig",
]
