"""A client that sends framed method calls to an IpcServer."""

from __future__ import annotations

import errno
import logging
import socket
import threading
import time
import uuid as uuidlib
from collections import deque
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

from livehub.connection import IpcConnection, encode_message
from livehub.runtime import Signal

log = logging.getLogger(__name__)

_RECV_SIZE = 65536


class SocketState(IntEnum):
    """The state of the client's connection."""

    UNCONNECTED = 0
    HOST_LOOKUP = 1
    CONNECTING = 2
    CONNECTED = 3
    BOUND = 4
    LISTENING = 5
    CLOSING = 6


class SocketError(IntEnum):
    """Why a connection or a send failed."""

    UNKNOWN = -1
    CONNECTION_REFUSED = 0
    REMOTE_HOST_CLOSED = 1
    HOST_NOT_FOUND = 2
    SOCKET_ACCESS = 3
    SOCKET_RESOURCE = 4
    SOCKET_TIMEOUT = 5
    DATAGRAM_TOO_LARGE = 6
    NETWORK = 7
    ADDRESS_IN_USE = 8
    SOCKET_ADDRESS_NOT_AVAILABLE = 9
    UNSUPPORTED_SOCKET_OPERATION = 10
    UNFINISHED_SOCKET_OPERATION = 11
    PROXY_AUTHENTICATION_REQUIRED = 12
    SSL_HANDSHAKE_FAILED = 13
    PROXY_CONNECTION_REFUSED = 14
    PROXY_CONNECTION_CLOSED = 15
    PROXY_CONNECTION_TIMEOUT = 16
    PROXY_NOT_FOUND = 17
    PROXY_PROTOCOL = 18
    OPERATION = 19
    SSL_INTERNAL = 20
    SSL_INVALID_USER_DATA = 21
    TEMPORARY = 22


_DESCRIPTIONS = {
    SocketError.CONNECTION_REFUSED: "The connection was refused by the peer (or timed out).",
    SocketError.REMOTE_HOST_CLOSED: "The remote host closed the connection.",
    SocketError.HOST_NOT_FOUND: "The host address was not found.",
    SocketError.SOCKET_ACCESS: "You don't have the required privileges.",
    SocketError.SOCKET_RESOURCE: (
        "The local system ran out of resources (e.g., too many sockets)."
    ),
    SocketError.SOCKET_TIMEOUT: "The socket operation timed out.",
    SocketError.DATAGRAM_TOO_LARGE: (
        "The datagram was larger than the operating system's limit "
        "(which can be as low as 8192 bytes)."
    ),
    SocketError.NETWORK: (
        "An error occurred with the network "
        "(e.g., the network cable was accidentally plugged out)."
    ),
    SocketError.ADDRESS_IN_USE: "Address already in use.",
    SocketError.SOCKET_ADDRESS_NOT_AVAILABLE: "Address not available.",
    SocketError.UNSUPPORTED_SOCKET_OPERATION: "Unsupported Socket.",
    SocketError.PROXY_AUTHENTICATION_REQUIRED: (
        "The socket is using a proxy, and the proxy requires authentication."
    ),
    SocketError.SSL_HANDSHAKE_FAILED: (
        "The SSL/TLS handshake failed, so the connection was closed"
    ),
    SocketError.UNFINISHED_SOCKET_OPERATION: (
        "The last operation attempted has not finished yet "
        "(still in progress in the background)."
    ),
    SocketError.PROXY_CONNECTION_REFUSED: (
        "Could not contact the proxy server because the connection "
        "to that server was denied."
    ),
    SocketError.PROXY_CONNECTION_CLOSED: (
        "The connection to the proxy server was closed unexpectedly "
        "(before the connection to the final peer was established)."
    ),
    SocketError.PROXY_CONNECTION_TIMEOUT: (
        "The connection to the proxy server timed out or the proxy server "
        "stopped responding in the authentication phase."
    ),
    SocketError.PROXY_NOT_FOUND: "The proxy address was not found.",
    SocketError.PROXY_PROTOCOL: (
        "The connection negotiation with the proxy server because the response "
        "from the proxy server could not be understood."
    ),
    SocketError.UNKNOWN: "Unknown Error",
    SocketError.OPERATION: (
        "An operation was attempted while the socket was in a state "
        "that did not permit it."
    ),
    SocketError.SSL_INTERNAL: (
        "The SSL library being used reported a internal error, this is probably "
        "the result of a bad installation or misconfiguration of the library."
    ),
    SocketError.SSL_INVALID_USER_DATA: (
        "Invalid data(certificate, key, cypher, etc.) was provided and its use "
        "resulted in an error in the SSL library."
    ),
    SocketError.TEMPORARY: (
        "A temporary error occurred(e.g., operation would block and socket is "
        "non-blocking)."
    ),
}

_NO_DESCRIPTION = "No Error Description for this Error"


def error_to_string(error: int) -> str:
    """A printable description of a socket ``error``."""
    try:
        return _DESCRIPTIONS[SocketError(error)]
    except (ValueError, KeyError):
        return _NO_DESCRIPTION


def _classify(exc: OSError) -> SocketError:
    if isinstance(exc, socket.gaierror):
        return SocketError.HOST_NOT_FOUND
    if isinstance(exc, ConnectionRefusedError):
        return SocketError.CONNECTION_REFUSED
    if isinstance(exc, (ConnectionResetError, ConnectionAbortedError, BrokenPipeError)):
        return SocketError.REMOTE_HOST_CLOSED
    if isinstance(exc, TimeoutError):
        return SocketError.SOCKET_TIMEOUT
    if isinstance(exc, PermissionError):
        return SocketError.SOCKET_ACCESS
    if exc.errno == errno.EADDRINUSE:
        return SocketError.ADDRESS_IN_USE
    if exc.errno == errno.EADDRNOTAVAIL:
        return SocketError.SOCKET_ADDRESS_NOT_AVAILABLE
    if exc.errno in (errno.ENOBUFS, errno.EMFILE, errno.ENFILE):
        return SocketError.SOCKET_RESOURCE
    return SocketError.NETWORK


def _close_quietly(sock: socket.socket) -> None:
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError:
        pass
    sock.close()


@dataclass(eq=False)
class _Package:
    uuid: uuidlib.UUID
    method: str
    data: bytes
    tries: int = 0
    ok: bool = False
    done: threading.Event = field(default_factory=threading.Event)


class IpcClient:
    """Sends method calls to an IpcServer, queuing them until connected.

    A package is retried every ``retry_interval`` seconds while there is no
    connection and given up after ``max_tries`` attempts.

    Signals:
        connected(): the connection to the server is established.
        disconnected(): the connection to the server is terminated.
        connection_error(error): connecting failed or the connection broke.
        sent_successfully(uuid): the package ``uuid`` was written.
        sending_error(uuid, error): the package ``uuid`` could not be sent.
        received(method, content): a call arrived from the server.
    """

    def __init__(
        self,
        sock: Optional[socket.socket] = None,
        *,
        retry_interval: float = 1.0,
        max_tries: int = 5,
    ) -> None:
        self._cond = threading.Condition()
        self._queue: deque[_Package] = deque()
        self._current: Optional[_Package] = None
        self._sock = sock
        self._state = SocketState.CONNECTED if sock is not None else SocketState.UNCONNECTED
        self._retry_interval = retry_interval
        self._max_tries = max_tries
        self._stopped = False
        self.connection: Optional[IpcConnection] = None if sock is not None else IpcConnection()

        self.connected = Signal()
        self.disconnected = Signal()
        self.connection_error = Signal()
        self.sent_successfully = Signal()
        self.sending_error = Signal()
        self.received = Signal()

        if self.connection is not None:
            self.connection.received.connect(self.received.emit)

        self._sender = threading.Thread(
            target=self._run_sender, name="ipc-client-sender", daemon=True
        )
        self._sender.start()

    @property
    def state(self) -> SocketState:
        """The current connection state."""
        with self._cond:
            return self._state

    def connect_to_server(self, host: str, port: int) -> None:
        """Start connecting to ``host``:``port`` in the background."""
        with self._cond:
            if self._state is not SocketState.UNCONNECTED:
                log.warning("connect_to_server called while %s", self._state.name)
                return
            self._state = SocketState.HOST_LOOKUP
            self._cond.notify_all()
        threading.Thread(
            target=self._connect, args=(host, port), name="ipc-client-connect", daemon=True
        ).start()

    def send(self, method: str, data: bytes) -> uuidlib.UUID:
        """Queue a call of ``method`` (e.g. "echo(QString)") with ``data``; return its id."""
        package = _Package(uuidlib.uuid4(), method, bytes(data))
        with self._cond:
            self._queue.append(package)
            self._cond.notify_all()
        return package.uuid

    def wait_for_connected(self, timeout: Optional[float] = 30.0) -> bool:
        """Block until connected or the attempt failed; True when connected."""
        pending = (SocketState.HOST_LOOKUP, SocketState.CONNECTING)
        with self._cond:
            self._cond.wait_for(lambda: self._state not in pending, timeout)
            return self._state is SocketState.CONNECTED

    def wait_for_disconnected(self, timeout: Optional[float] = 30.0) -> bool:
        """Block until disconnected; False if not connected in the first place."""
        with self._cond:
            if self._state is SocketState.UNCONNECTED:
                return False
            return self._cond.wait_for(
                lambda: self._state is SocketState.UNCONNECTED, timeout
            )

    def wait_for_sent(self, uuid: uuidlib.UUID, timeout: Optional[float] = 30.0) -> bool:
        """Block until the pending package ``uuid`` is sent; True on success."""
        with self._cond:
            package = None
            if self._current is not None and self._current.uuid == uuid:
                package = self._current
            else:
                package = next((p for p in self._queue if p.uuid == uuid), None)
        if package is None:
            return False
        if not package.done.wait(timeout):
            return False
        return package.ok

    def disconnect_from_server(self) -> None:
        """Close the connection to the server."""
        with self._cond:
            sock = self._sock
            was = self._state
            self._sock = None
            if was is SocketState.UNCONNECTED:
                return
            self._state = SocketState.UNCONNECTED
            self._cond.notify_all()
        if sock is not None:
            _close_quietly(sock)
            self.disconnected.emit()

    def __enter__(self) -> "IpcClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.disconnect_from_server()
        with self._cond:
            self._stopped = True
            self._cond.notify_all()
        self._sender.join()

    def _connect(self, host: str, port: int) -> None:
        with self._cond:
            if self._state is not SocketState.HOST_LOOKUP:
                return
            self._state = SocketState.CONNECTING
            self._cond.notify_all()
        try:
            sock = socket.create_connection((host, port))
        except OSError as exc:
            with self._cond:
                if self._state is SocketState.CONNECTING:
                    self._state = SocketState.UNCONNECTED
                self._cond.notify_all()
            self._on_error(_classify(exc))
            return

        with self._cond:
            abandoned = self._stopped or self._state is not SocketState.CONNECTING
            if not abandoned:
                self._sock = sock
                self._state = SocketState.CONNECTED
            self._cond.notify_all()
        if abandoned:
            _close_quietly(sock)
            return

        self.connected.emit()
        if self.connection is not None:
            threading.Thread(
                target=self._read_loop, args=(sock,), name="ipc-client-reader", daemon=True
            ).start()

    def _read_loop(self, sock: socket.socket) -> None:
        assert self.connection is not None
        while True:
            try:
                data = sock.recv(_RECV_SIZE)
            except OSError as exc:
                error = _classify(exc)
                break
            if not data:
                error = SocketError.REMOTE_HOST_CLOSED
                break
            self.connection.feed(data)
        self._lost(sock, error)

    def _lost(self, sock: socket.socket, error: SocketError) -> None:
        with self._cond:
            if self._sock is not sock:
                return
            self._sock = None
            self._state = SocketState.UNCONNECTED
            self._cond.notify_all()
        _close_quietly(sock)
        self._on_error(error)
        self.disconnected.emit()

    def _on_error(self, error: SocketError) -> None:
        with self._cond:
            state = self._state
        if state not in (SocketState.CONNECTED, SocketState.BOUND) or (
            error is SocketError.REMOTE_HOST_CLOSED
        ):
            self.connection_error.emit(error)

    def _finish(self, package: _Package, error: Optional[SocketError] = None) -> None:
        with self._cond:
            if self._current is package:
                self._current = None
            package.ok = error is None
            self._cond.notify_all()
        if error is None:
            self.sent_successfully.emit(package.uuid)
        else:
            self.sending_error.emit(package.uuid, error)
        package.done.set()

    def _run_sender(self) -> None:
        while True:
            with self._cond:
                while not self._stopped and not self._queue:
                    self._cond.wait()
                if self._stopped:
                    return
                package = self._queue[0]
                package.tries += 1
                if package.tries >= self._max_tries:
                    self._queue.popleft()
                    sock = None
                    give_up = True
                else:
                    give_up = False
                    sock = self._sock if self._state is SocketState.CONNECTED else None
                    if sock is None:
                        deadline = time.monotonic() + self._retry_interval
                        while not self._stopped and self._state is not SocketState.CONNECTED:
                            remaining = deadline - time.monotonic()
                            if remaining <= 0:
                                break
                            self._cond.wait(remaining)
                        continue
                    self._queue.popleft()
                    self._current = package

            if give_up:
                log.debug("gave up sending %s after %d tries", package.method, package.tries)
                self._finish(package, SocketError.CONNECTION_REFUSED)
                self._on_error(SocketError.CONNECTION_REFUSED)
                continue

            assert sock is not None
            try:
                sock.sendall(encode_message(package.method, package.data))
            except OSError as exc:
                error = _classify(exc)
                self._finish(package, error)
                self._lost(sock, error)
                continue
            self._finish(package)