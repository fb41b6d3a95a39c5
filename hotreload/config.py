"""Dev server configuration.

Holds everything the server needs to start: where to serve from, where to
listen, and how the live reload machinery behaves.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

DEFAULT_EXCLUDED_MARKERS = (".git", "node_modules", "vendor")


class ServerConfig(BaseModel):
    """Configuration for the dev server.

    Attributes:
        directory: Directory tree to serve and watch
        host: Interface to bind to ("" binds every interface)
        port: Port to listen on (0 picks a free port)
        watch: Enable file watching and reload script injection
        reload_path: Path that upgrades to the reload WebSocket
        debounce_ms: Quiet period before a burst of changes triggers a reload
        excluded_markers: Directories whose path contains one of these are not watched
    """

    directory: Path = Field(
        default=Path("."),
        description="Directory to serve files from",
    )
    host: str = Field(
        default="",
        description="Server host to bind to",
    )
    port: int = Field(
        default=8080,
        ge=0,
        le=65535,
        description="Server port",
    )
    watch: bool = Field(
        default=True,
        description="Enable file watching and auto-reload",
    )
    reload_path: str = Field(
        default="/ws",
        description="WebSocket endpoint for live reload",
    )
    debounce_ms: int = Field(
        default=200,
        gt=0,
        description="Debounce delay in milliseconds",
    )
    excluded_markers: tuple[str, ...] = Field(
        default=DEFAULT_EXCLUDED_MARKERS,
        description="Path fragments that exclude a directory from watching",
    )

    @field_validator("reload_path")
    @classmethod
    def _absolute_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("reload_path must start with '/'")
        return value

    @property
    def root(self) -> Path:
        return self.directory.resolve()

    @property
    def debounce_delay(self) -> float:
        return self.debounce_ms / 1000.0


__all__ = ["DEFAULT_EXCLUDED_MARKERS", "ServerConfig"]
