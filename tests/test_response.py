"""Unit tests for HTTP response serialization."""

from response import HTTPResponse, as_head_response, error_response


def test_response_serialization_sets_length_and_default_content_type() -> None:
    response = HTTPResponse(status_code=200, body="hello")

    raw = response.to_bytes()

    assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"Content-Type: text/plain; charset=utf-8\r\n" in raw
    assert b"Content-Length: 5\r\n" in raw
    assert raw.endswith(b"\r\n\r\nhello")


def test_response_serialization_preserves_custom_content_type() -> None:
    response = HTTPResponse(
        status_code=200,
        headers={"Content-Type": "text/css"},
        body=b"p{}",
    )

    raw = response.to_bytes()

    assert raw.count(b"Content-Type:") == 1
    assert b"Content-Type: text/css\r\n" in raw
    assert b"Content-Length: 3\r\n" in raw


def test_error_response_has_generic_body() -> None:
    response = error_response(500)

    raw = response.to_bytes()

    assert raw.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")
    assert raw.endswith(b"\r\n\r\nInternal Server Error")


def test_error_response_custom_message() -> None:
    response = error_response(404, "404 : File Not Found")

    assert response.body == b"404 : File Not Found"
    assert response.reason == "Not Found"


def test_head_response_keeps_length_without_body() -> None:
    get_response = HTTPResponse(status_code=200, headers={"Content-Type": "text/html"}, body=b"<p>hi</p>")

    raw = as_head_response(get_response).to_bytes()

    assert b"Content-Length: 9\r\n" in raw
    assert raw.endswith(b"\r\n\r\n")
