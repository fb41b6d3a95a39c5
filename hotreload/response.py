"""Buffered HTTP response writer.

Handlers fill a :class:`ResponseWriter` the way they would write to a socket
(headers, then status, then body chunks) and the server turns it into a
``websockets`` response once the handler returns.
"""

from __future__ import annotations

import email.utils
import http

from loguru import logger
from websockets.datastructures import Headers
from websockets.http11 import Response


class ResponseWriter:
    def __init__(self) -> None:
        self.headers = Headers()
        self.status: int | None = None
        self._sent_headers: Headers | None = None
        self._chunks: list[bytes] = []

    @property
    def header_sent(self) -> bool:
        return self._sent_headers is not None

    def write_header(self, status: int) -> None:
        """Send the status line and freeze the headers.

        Header changes made afterwards are not part of the response.
        """
        if self.header_sent:
            logger.debug("superfluous write_header({}) ignored", status)
            return
        self.status = int(status)
        self._sent_headers = self.headers.copy()

    def write(self, data: bytes) -> int:
        if not self.header_sent:
            self.write_header(http.HTTPStatus.OK)
        self._chunks.append(bytes(data))
        return len(data)

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def to_response(self) -> Response:
        if not self.header_sent:
            self.write_header(http.HTTPStatus.OK)
        headers = self._sent_headers.copy()
        body = self.body
        if "Content-Length" not in headers:
            headers["Content-Length"] = str(len(body))
        if "Date" not in headers:
            headers["Date"] = email.utils.formatdate(usegmt=True)
        if "Connection" not in headers:
            headers["Connection"] = "close"
        status = http.HTTPStatus(self.status)
        return Response(status.value, status.phrase, headers, body)
