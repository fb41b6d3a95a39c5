"""Live reload script injection for HTML responses."""

from __future__ import annotations

RELOAD_MESSAGE = "reload"

BODY_CLOSE = b"</body>"

_SCRIPT_TEMPLATE = """
<script>
(function() {
	const url = 'ws://' + window.location.host + '%(path)s';
	function reconnect() {
		const probe = new WebSocket(url);
		probe.onopen = function() {
			window.location.reload();
		};
		probe.onclose = function() {
			setTimeout(reconnect, 1000);
		};
	}
	const ws = new WebSocket(url);
	ws.onmessage = function(event) {
		if (event.data === '%(message)s') {
			console.log('Files changed, reloading...');
			window.location.reload();
		}
	};
	ws.onclose = function() {
		console.log('Dev server disconnected, retrying...');
		setTimeout(reconnect, 1000);
	};
})();
</script>"""


def reload_script(path: str = "/ws") -> bytes:
    """Return the ``<script>`` snippet that connects a page to ``path``."""
    return (_SCRIPT_TEMPLATE % {"path": path, "message": RELOAD_MESSAGE}).encode("utf-8")


RELOAD_SCRIPT = reload_script()


class ReloadInjector:
    """Wrap a response writer and splice the reload script into HTML pages.

    The script goes right before the last ``</body>`` found in a single
    ``write`` call. A marker split across two writes is not detected and the
    page is sent untouched. Since the body grows, any declared
    ``Content-Length`` is dropped from HTML responses.
    """

    def __init__(self, writer, script: bytes = RELOAD_SCRIPT):
        self._writer = writer
        self._script = script
        self.injected = False

    def __getattr__(self, name):
        return getattr(self._writer, name)

    @property
    def headers(self):
        return self._writer.headers

    def _is_html(self) -> bool:
        return "text/html" in self._writer.headers.get("Content-Type", "")

    def _drop_content_length(self) -> None:
        if "Content-Length" in self._writer.headers:
            del self._writer.headers["Content-Length"]

    def write_header(self, status: int) -> None:
        if self._is_html():
            self._drop_content_length()
        self._writer.write_header(status)

    def write(self, data: bytes) -> int:
        if self.injected or not self._is_html():
            return self._writer.write(data)

        # write() sends the header implicitly when nobody called write_header
        self._drop_content_length()
        idx = data.rfind(BODY_CLOSE)
        if idx == -1:
            return self._writer.write(data)

        self._writer.write(data[:idx] + self._script + data[idx:])
        self.injected = True
        return len(data)
