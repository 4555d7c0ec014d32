"""
Tests for resolving the client address the lockout is keyed on.
"""

from fastapi import Request

from dashauth.core.config import Settings
from dashauth.core.deps import MAX_IP_LENGTH, get_client_ip

PEER = "192.0.2.10"


def _request(forwarded_for=None, peer=PEER):
    headers = []
    if forwarded_for is not None:
        headers.append((b"x-forwarded-for", forwarded_for.encode("latin-1")))
    return Request({
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": headers,
        "client": (peer, 51000) if peer else None,
    })


class TestDefaultPolicy:

    settings = Settings(TRUST_FORWARDED_FOR=False)

    def test_socket_peer(self):
        assert get_client_ip(_request(), self.settings) == PEER

    def test_forwarded_header_ignored(self):
        assert get_client_ip(_request("198.51.100.23"), self.settings) == PEER

    def test_no_peer(self):
        assert get_client_ip(_request(peer=None), self.settings) == "unknown"


class TestTrustedProxy:

    settings = Settings(TRUST_FORWARDED_FOR=True)

    def test_first_forwarded_entry(self):
        assert get_client_ip(_request("198.51.100.23, 10.0.0.1"), self.settings) == "198.51.100.23"

    def test_ipv6_entry(self):
        assert get_client_ip(_request(" 2001:db8::1 "), self.settings) == "2001:db8::1"

    def test_garbage_falls_back_to_peer(self):
        assert get_client_ip(_request("not-an-address"), self.settings) == PEER
        assert get_client_ip(_request(""), self.settings) == PEER

    def test_oversized_value_falls_back_to_peer(self):
        client_ip = get_client_ip(_request("1" * 200), self.settings)

        assert client_ip == PEER
        assert len(client_ip) <= MAX_IP_LENGTH
