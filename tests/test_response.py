"""Tests for ResponseWriter framing."""
from hotreload.response import ResponseWriter


def test_implicit_ok_and_computed_length():
    writer = ResponseWriter()
    writer.write(b"abc")
    writer.write(b"def")
    response = writer.to_response()
    assert response.status_code == 200
    assert response.reason_phrase == "OK"
    assert response.body == b"abcdef"
    assert response.headers["Content-Length"] == "6"
    assert response.headers["Connection"] == "close"
    assert "Date" in response.headers


def test_headers_frozen_after_write_header():
    writer = ResponseWriter()
    writer.headers["X-Before"] = "1"
    writer.write_header(201)
    writer.headers["X-After"] = "1"
    response = writer.to_response()
    assert response.status_code == 201
    assert "X-Before" in response.headers
    assert "X-After" not in response.headers


def test_second_write_header_is_ignored():
    writer = ResponseWriter()
    writer.write_header(404)
    writer.write_header(500)
    assert writer.to_response().status_code == 404


def test_empty_response():
    response = ResponseWriter().to_response()
    assert response.status_code == 200
    assert response.body == b""
    assert response.headers["Content-Length"] == "0"
