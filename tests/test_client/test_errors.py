"""Tests for error response decoding."""

from __future__ import annotations

import httpx
import pytest

from jukebox.client.errors import decode_error, reason_phrase
from jukebox.exceptions import APIError, DecodeError, RateLimited


def _response(status: int, content: bytes = b"", headers: dict | None = None) -> httpx.Response:
    return httpx.Response(
        status,
        headers=headers or {},
        content=content,
        request=httpx.Request("GET", "https://api.spotify.com/v1/me"),
    )


class TestReasonPhrase:
    def test_known(self) -> None:
        assert reason_phrase(404) == "Not Found"

    def test_unknown(self) -> None:
        assert reason_phrase(599) == "Unknown"


class TestDecodeError:
    def test_empty_body(self) -> None:
        err = decode_error(_response(404))
        assert type(err) is APIError
        assert err.status == 404
        assert "404" in err.message
        assert "Not Found" in err.message
        assert "body empty" in err.message

    def test_envelope_message_verbatim(self) -> None:
        err = decode_error(
            _response(400, b'{"error": {"status": 400, "message": "invalid id"}}')
        )
        assert type(err) is APIError
        assert err.message == "invalid id"
        assert err.status == 400
        assert str(err) == "invalid id"

    def test_envelope_empty_message(self) -> None:
        err = decode_error(_response(414, b'{"error": {"status": 414, "message": ""}}'))
        assert isinstance(err, APIError)
        assert err.status == 414
        assert "414" in err.message
        assert "empty error" in err.message

    def test_envelope_missing_status_uses_response_status(self) -> None:
        err = decode_error(_response(403, b'{"error": {"message": "forbidden"}}'))
        assert err.status == 403
        assert err.message == "forbidden"

    def test_not_json(self) -> None:
        err = decode_error(_response(502, b"<html>Bad Gateway</html>"))
        assert isinstance(err, DecodeError)
        assert err.status == 502
        assert err.body == b"<html>Bad Gateway</html>"
        assert "(24)" in err.message
        assert "<html>Bad Gateway</html>" in err.message

    def test_json_of_the_wrong_shape(self) -> None:
        err = decode_error(_response(500, b"[1, 2, 3]"))
        assert isinstance(err, DecodeError)
        assert "[1, 2, 3]" in err.message

    def test_message_never_empty(self) -> None:
        for status in (400, 401, 404, 414, 500, 503):
            assert decode_error(_response(status)).message
            assert decode_error(_response(status, b"{}")).message

    def test_rate_limited(self) -> None:
        err = decode_error(
            _response(
                429,
                b'{"error": {"status": 429, "message": "API rate limit exceeded"}}',
                {"Retry-After": "7"},
            )
        )
        assert isinstance(err, RateLimited)
        assert isinstance(err, APIError)
        assert err.status == 429
        assert err.retry_after == 7.0
        assert err.message == "API rate limit exceeded"

    def test_rate_limited_empty_body_uses_default_wait(self) -> None:
        err = decode_error(_response(429), default_retry_after=5.0)
        assert isinstance(err, RateLimited)
        assert err.retry_after == 5.0

    @pytest.mark.parametrize("status", [400, 404, 500])
    def test_exit_codes(self, status: int) -> None:
        assert decode_error(_response(status)).exit_code == 5
