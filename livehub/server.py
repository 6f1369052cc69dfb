"""A TCP server that receives framed method calls from IpcClients."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Any, Optional

from livehub.connection import IpcConnection
from livehub.runtime import Signal

log = logging.getLogger(__name__)

_RECV_SIZE = 65536
_POLL_INTERVAL = 0.1
_DEFAULT_MAX_PENDING = 30


class IpcServer:
    """Listens on a port and parses the calls of every connected client.

    Signals:
        received(method, content): a call arrived from any client.
        client_connected(address): a client connected from ``address``.
        socket_connected(sock): a client connected on ``sock``.
        client_disconnected(address): the client at ``address`` went away.
        socket_disconnected(sock): the client on ``sock`` went away.
    """

    def __init__(self, host: str = "") -> None:
        self._host = host
        self._listener: Optional[socket.socket] = None
        self._accept_thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._connections: dict[IpcConnection, tuple[Any, threading.Thread]] = {}
        self._max_pending = _DEFAULT_MAX_PENDING

        self.received = Signal()
        self.client_connected = Signal()
        self.socket_connected = Signal()
        self.client_disconnected = Signal()
        self.socket_disconnected = Signal()

    @property
    def server_port(self) -> Optional[int]:
        """The port being listened on, or None when not listening."""
        listener = self._listener
        return None if listener is None else listener.getsockname()[1]

    @property
    def max_pending_connections(self) -> int:
        return self._max_pending

    def listen(self, port: int) -> None:
        """Listen for connections on ``port`` of every interface; 0 picks a free port."""
        if self._listener is not None:
            raise RuntimeError("IpcServer is already listening")
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self._host, port))
            sock.listen(self._max_pending)
            sock.settimeout(_POLL_INTERVAL)
        except OSError:
            sock.close()
            raise
        self._listener = sock
        self._stop.clear()
        self._accept_thread = threading.Thread(
            target=self._accept_loop, args=(sock,), name="ipc-server-accept", daemon=True
        )
        self._accept_thread.start()

    def set_max_connections(self, num: int) -> None:
        """Set the maximal number of pending connections to ``num``."""
        self._max_pending = num
        if self._listener is not None:
            self._listener.listen(num)

    def close(self) -> None:
        """Stop listening and drop every client connection."""
        self._stop.set()
        listener, thread = self._listener, self._accept_thread
        self._listener = None
        self._accept_thread = None
        if thread is not None:
            thread.join()
        if listener is not None:
            listener.close()
        with self._lock:
            entries = list(self._connections.items())
        for connection, _entry in entries:
            try:
                connection.peer.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        for _connection, (_address, reader) in entries:
            reader.join(timeout=5)

    def __enter__(self) -> "IpcServer":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _accept_loop(self, listener: socket.socket) -> None:
        while not self._stop.is_set():
            try:
                conn, address = listener.accept()
            except TimeoutError:
                continue
            except OSError:
                break
            conn.setblocking(True)
            self._new_connection(conn, address)

    def _new_connection(self, conn: socket.socket, address: Any) -> None:
        self.client_connected.emit(address)
        self.socket_connected.emit(conn)
        connection = IpcConnection(peer=conn)
        connection.connection_closed.connect(lambda: self._on_connection_closed(connection))
        connection.received.connect(self.received.emit)
        reader = threading.Thread(
            target=self._read_loop, args=(connection,), name="ipc-server-reader", daemon=True
        )
        with self._lock:
            self._connections[connection] = (address, reader)
        reader.start()

    @staticmethod
    def _read_loop(connection: IpcConnection) -> None:
        sock = connection.peer
        while True:
            try:
                data = sock.recv(_RECV_SIZE)
            except OSError as exc:
                connection.close_with_error(str(exc))
                return
            if not data:
                connection.close()
                return
            connection.feed(data)

    def _on_connection_closed(self, connection: IpcConnection) -> None:
        with self._lock:
            entry = self._connections.pop(connection, None)
        if entry is None:
            return
        address, _reader = entry
        self.client_disconnected.emit(address)
        self.socket_disconnected.emit(connection.peer)
        try:
            connection.peer.close()
        except OSError:
            pass