from __future__ import annotations

import logging
import socket

from .urls import Locator

logger = logging.getLogger(__name__)

RECV_CHUNK_BYTES = 4096


class FetchError(Exception):
    def __init__(self, locator: Locator, message: str) -> None:
        super().__init__(f"{locator}: {message}")
        self.locator = locator


class AddressResolutionError(FetchError):
    pass


class ConnectFailedError(FetchError):
    pass


class TransportError(FetchError):
    """The connection broke before the server closed it cleanly."""


def encode_selector(selector: str) -> bytes:
    return selector.encode("utf-8", errors="surrogateescape") + b"\r\n"


class GopherClient:
    def __init__(self, *, timeout_s: float | None = None) -> None:
        self._timeout_s = timeout_s

    def _resolve(self, locator: Locator) -> list[tuple]:
        try:
            infos = socket.getaddrinfo(
                locator.host,
                locator.port,
                type=socket.SOCK_STREAM,
            )
        except (socket.gaierror, UnicodeError, ValueError) as e:
            raise AddressResolutionError(locator, f"cannot resolve: {e}") from e
        if not infos:
            raise AddressResolutionError(locator, "no addresses")
        return infos

    def _connect(self, locator: Locator) -> socket.socket:
        last_error: OSError | None = None
        for family, socktype, proto, _canon, addr in self._resolve(locator):
            sock: socket.socket | None = None
            try:
                sock = socket.socket(family, socktype, proto)
                sock.settimeout(self._timeout_s)
                sock.connect(addr)
            except OSError as e:
                if sock is not None:
                    sock.close()
                last_error = e
                logger.debug("connect %s via %s failed: %s", locator, addr, e)
                continue
            return sock
        raise ConnectFailedError(locator, f"cannot connect: {last_error}")

    def fetch(self, locator: Locator) -> bytes:
        """Send the selector and return everything the server sends back.

        Gopher has no length framing: the response ends when the server
        closes the connection.
        """

        sock = self._connect(locator)
        chunks: list[bytes] = []
        with sock:
            try:
                sock.sendall(encode_selector(locator.selector))
                while True:
                    data = sock.recv(RECV_CHUNK_BYTES)
                    if not data:
                        break
                    chunks.append(data)
            except OSError as e:
                raise TransportError(locator, f"connection lost: {e}") from e

        body = b"".join(chunks)
        logger.debug("fetched %s (%d bytes)", locator, len(body))
        return body
