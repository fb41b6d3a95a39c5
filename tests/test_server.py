"""End-to-end tests for DevServer: HTTP serving, injection and the reload socket."""
import asyncio

import pytest
import pytest_asyncio
from websockets.asyncio.client import connect

from hotreload.config import ServerConfig
from hotreload.inject import RELOAD_SCRIPT
from hotreload.server import DevServer

PAGE = "<html><head></head><body><h1>hello</h1></body></html>"


async def _http_get(port, path):
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    writer.write(f"GET {path} HTTP/1.1\r\nHost: 127.0.0.1:{port}\r\n\r\n".encode())
    await writer.drain()
    raw = await asyncio.wait_for(reader.read(), timeout=5)
    writer.close()

    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split()[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


async def _wait_for(predicate, timeout=3.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        assert asyncio.get_running_loop().time() < deadline, "timed out"
        await asyncio.sleep(0.02)


@pytest.fixture
def site(tmp_path):
    (tmp_path / "index.html").write_text(PAGE)
    (tmp_path / "app.js").write_text("console.log('hi')")
    return tmp_path


@pytest_asyncio.fixture
async def server(site):
    config = ServerConfig(directory=site, host="127.0.0.1", port=0, debounce_ms=100)
    dev = DevServer(config)
    await dev.start()
    yield dev
    await dev.close()


@pytest.mark.asyncio
async def test_html_gets_reload_script(server):
    status, headers, body = await _http_get(server.port, "/")
    assert status == 200
    idx = PAGE.index("</body>")
    expected = PAGE[:idx].encode() + RELOAD_SCRIPT + PAGE[idx:].encode()
    assert body == expected
    assert headers["content-length"] == str(len(expected))


@pytest.mark.asyncio
async def test_assets_are_untouched(server):
    status, headers, body = await _http_get(server.port, "/app.js")
    assert status == 200
    assert body == b"console.log('hi')"
    assert headers["content-length"] == str(len(body))


@pytest.mark.asyncio
async def test_missing_is_404(server):
    status, _, _ = await _http_get(server.port, "/missing.html")
    assert status == 404


@pytest.mark.asyncio
async def test_plain_get_on_reload_path_is_rejected(server):
    status, _, _ = await _http_get(server.port, "/ws")
    assert status == 426


@pytest.mark.asyncio
async def test_socket_registers_and_receives_reload(server):
    async with connect(f"ws://127.0.0.1:{server.port}/ws") as ws:
        await _wait_for(lambda: len(server.clients) == 1)
        assert await server.notify_clients() == 1
        assert await asyncio.wait_for(ws.recv(), timeout=2) == "reload"
    await _wait_for(lambda: len(server.clients) == 0)


@pytest.mark.asyncio
async def test_file_change_pushes_reload(server, site):
    async with connect(f"ws://127.0.0.1:{server.port}/ws") as ws:
        await _wait_for(lambda: len(server.clients) == 1)
        (site / "index.html").write_text(PAGE.replace("hello", "bye"))
        assert await asyncio.wait_for(ws.recv(), timeout=3) == "reload"


@pytest.mark.asyncio
async def test_no_injection_without_watch(site):
    config = ServerConfig(directory=site, host="127.0.0.1", port=0, watch=False)
    dev = DevServer(config)
    await dev.start()
    try:
        assert dev.watcher is None
        status, headers, body = await _http_get(dev.port, "/index.html")
        assert status == 200
        assert body == PAGE.encode()
        assert headers["content-length"] == str(len(PAGE))
    finally:
        await dev.close()
