from __future__ import annotations

import socket
import socketserver
import struct
import threading

import pytest

from gopherdl.transport import ConnectFailedError
from gopherdl.urls import Locator

HOST = "example.org"


def loc(selector: str, host: str = HOST, port: str = "70") -> Locator:
    return Locator(host=host, selector=selector, port=port)


def menu(*lines: str) -> bytes:
    return ("\r\n".join(lines) + "\r\n.\r\n").encode("utf-8")


class FakeClient:
    """In-memory stand-in for GopherClient keyed by locator."""

    def __init__(self, responses: dict[Locator, bytes | Exception]) -> None:
        self.responses = responses
        self.calls: list[Locator] = []

    def fetch(self, locator: Locator) -> bytes:
        self.calls.append(locator)
        resp = self.responses.get(locator)
        if resp is None:
            raise ConnectFailedError(locator, "connection refused")
        if isinstance(resp, Exception):
            raise resp
        return resp


class _GopherHandler(socketserver.BaseRequestHandler):
    def handle(self) -> None:
        chunks = []
        while True:
            data = self.request.recv(1024)
            if not data:
                break
            chunks.append(data)
            if b"\n" in data:
                break
        raw = b"".join(chunks)
        selector = raw.split(b"\r\n", 1)[0]
        server: GopherTestServer = self.server  # type: ignore[assignment]
        server.requests.append(raw)
        if selector in server.resets:
            # Partial body, then RST instead of a clean close.
            self.request.sendall(server.resets[selector])
            self.request.setsockopt(
                socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0)
            )
            self.request.close()
            return
        self.request.sendall(server.responses.get(selector, b"3Not found\t\terror.host\t1\r\n"))


class GopherTestServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, responses: dict[bytes, bytes]) -> None:
        self.responses = responses
        self.resets: dict[bytes, bytes] = {}
        self.requests: list[bytes] = []
        super().__init__(("127.0.0.1", 0), _GopherHandler)


@pytest.fixture
def gopher_server():
    server = GopherTestServer({})
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
