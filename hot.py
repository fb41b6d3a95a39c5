#!/usr/bin/env python3
import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from hotreload.config import ServerConfig
from hotreload.server import DevServer


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Static file server with live reload")
    parser.add_argument("--port", type=int, default=8080, help="port to run the file server on")
    parser.add_argument("--host", default="", help="interface to bind to (default: all)")
    parser.add_argument(
        "--watch",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="enable file watching and auto-reload",
    )
    parser.add_argument("--dir", default=".", help="directory to serve files from")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    return parser.parse_args(argv)


async def main(config: ServerConfig):
    server = DevServer(config)
    await server.start()
    print(f"🔌 File server running at http://localhost:{server.port}")
    print(f"📁 Serving from: {server.root}")
    if config.watch:
        print(f"🔄 Watching {server.root} for changes...")
    await server.serve_forever()


def run(argv=None):
    args = parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "INFO")

    try:
        config = ServerConfig(
            directory=Path(args.dir).resolve(),
            host=args.host,
            port=args.port,
            watch=args.watch,
        )
    except ValidationError as e:
        logger.error("Invalid configuration: {}", e)
        return 1

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        print("\nServer stopped.")
    except OSError as e:
        logger.error("Server failed: {}", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())
