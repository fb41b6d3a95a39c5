"""Static file serving.

Follows the behaviour of ``http.server.SimpleHTTPRequestHandler``: index
files, directory listings, redirects for directories missing their trailing
slash, and content types guessed from the file extension.
"""

from __future__ import annotations

import email.utils
import html
import http
import mimetypes
import os
import posixpath
import urllib.parse

from loguru import logger

CHUNK_SIZE = 64 * 1024

INDEX_FILES = ("index.html", "index.htm")


def guess_type(path: str) -> str:
    ctype, encoding = mimetypes.guess_type(path)
    if ctype is None or encoding is not None:
        return "application/octet-stream"
    if ctype.startswith("text/"):
        return ctype + "; charset=utf-8"
    return ctype


class StaticFiles:
    """Serve the files under ``root`` into a response writer."""

    def __init__(self, root):
        self.root = os.path.abspath(root)

    def translate_path(self, target: str) -> str | None:
        """Map a request target to a filesystem path under the root.

        Returns None when the target would leave the root.
        """
        path = urllib.parse.urlsplit(target).path
        path = urllib.parse.unquote(path, errors="surrogatepass")
        path = posixpath.normpath(path)
        parts = [p for p in path.split("/") if p and p not in (os.curdir, os.pardir)]
        for part in parts:
            if os.path.dirname(part) or os.sep in part:
                return None
        full = os.path.join(self.root, *parts)
        if os.path.commonpath([self.root, os.path.abspath(full)]) != self.root:
            return None
        return full

    def serve(self, target: str, writer) -> None:
        path = self.translate_path(target)
        if path is None:
            self.send_error(writer, http.HTTPStatus.NOT_FOUND)
            return

        if os.path.isdir(path):
            url_path = urllib.parse.urlsplit(target)
            if not url_path.path.endswith("/"):
                location = urllib.parse.urlunsplit(("", "", url_path.path + "/", url_path.query, ""))
                writer.headers["Location"] = location
                writer.headers["Content-Type"] = "text/plain; charset=utf-8"
                writer.write_header(http.HTTPStatus.MOVED_PERMANENTLY)
                return
            for index in INDEX_FILES:
                index_path = os.path.join(path, index)
                if os.path.isfile(index_path):
                    path = index_path
                    break
            else:
                self.list_directory(path, url_path.path, writer)
                return

        self.send_file(path, writer)

    def send_file(self, path: str, writer) -> None:
        try:
            f = open(path, "rb")
        except FileNotFoundError:
            self.send_error(writer, http.HTTPStatus.NOT_FOUND)
            return
        except OSError as e:
            logger.warning("couldn't open {}: {}", path, e)
            self.send_error(writer, http.HTTPStatus.FORBIDDEN)
            return

        with f:
            fs = os.fstat(f.fileno())
            writer.headers["Content-Type"] = guess_type(path)
            writer.headers["Content-Length"] = str(fs.st_size)
            writer.headers["Last-Modified"] = email.utils.formatdate(fs.st_mtime, usegmt=True)
            writer.write_header(http.HTTPStatus.OK)
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                writer.write(chunk)

    def list_directory(self, path: str, url_path: str, writer) -> None:
        try:
            names = os.listdir(path)
        except OSError:
            self.send_error(writer, http.HTTPStatus.FORBIDDEN)
            return
        names.sort(key=lambda a: a.lower())

        title = html.escape(urllib.parse.unquote(url_path), quote=False)
        lines = [
            "<!DOCTYPE HTML>",
            '<html lang="en">',
            "<head>",
            '<meta charset="utf-8">',
            f"<title>Directory listing for {title}</title>",
            "</head>",
            "<body>",
            f"<h1>Directory listing for {title}</h1>",
            "<hr>",
            "<ul>",
        ]
        for name in names:
            display = link = name
            if os.path.isdir(os.path.join(path, name)):
                display = link = name + "/"
            elif os.path.islink(os.path.join(path, name)):
                display = name + "@"
            lines.append(
                '<li><a href="%s">%s</a></li>'
                % (urllib.parse.quote(link, errors="surrogatepass"), html.escape(display, quote=False))
            )
        lines += ["</ul>", "<hr>", "</body>", "</html>", ""]
        body = "\n".join(lines).encode("utf-8", "surrogateescape")

        writer.headers["Content-Type"] = "text/html; charset=utf-8"
        writer.headers["Content-Length"] = str(len(body))
        writer.write_header(http.HTTPStatus.OK)
        writer.write(body)

    def send_error(self, writer, status: http.HTTPStatus) -> None:
        body = f"{status.value} {status.phrase.lower()}\n".encode("utf-8")
        writer.headers["Content-Type"] = "text/plain; charset=utf-8"
        writer.headers["Content-Length"] = str(len(body))
        writer.write_header(status)
        writer.write(body)
