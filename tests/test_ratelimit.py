"""Tests for client address resolution and the newsletter rate-limit string."""

from __future__ import annotations

from starlette.requests import Request

from promptdir_cloud.config import settings
from promptdir_cloud.ratelimit import client_ip, newsletter_rate_limit


def _request(headers: dict[str, str], client: tuple[str, int] | None = ("192.0.2.9", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


class TestClientIp:
    def test_forwarded_for_first_hop(self) -> None:
        assert client_ip(_request({"x-forwarded-for": "203.0.113.1, 10.0.0.2"})) == "203.0.113.1"

    def test_real_ip(self) -> None:
        assert client_ip(_request({"x-real-ip": "203.0.113.5"})) == "203.0.113.5"

    def test_socket_peer(self) -> None:
        assert client_ip(_request({})) == "192.0.2.9"

    def test_unknown(self) -> None:
        assert client_ip(_request({}, client=None)) == "unknown"


def test_newsletter_limit_follows_settings() -> None:
    expected = f"{settings.newsletter_rate_limit}/{settings.newsletter_rate_window_seconds} seconds"
    assert newsletter_rate_limit() == expected
