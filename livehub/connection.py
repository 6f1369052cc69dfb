"""The message framing of the IPC channel and a parser for incoming bytes."""

from __future__ import annotations

import logging
from typing import Any, Optional

from livehub.runtime import Signal

log = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_SIZE = 1024 * 1024 * 10


def encode_message(method: str, data: bytes) -> bytes:
    """Frame ``data`` as a call of ``method``: headers, a blank line, the content."""
    header = f"Method:{method}\nContent-Length:{len(data)}\n\n"
    return header.encode("latin-1") + bytes(data)


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        return 0


class IpcConnection:
    """Parses a byte stream of framed messages from one peer.

    Signals:
        received(method, content): a complete message arrived.
        connection_closed(): the connection was closed.
        error(message): the connection failed.
    """

    def __init__(
        self,
        peer: Any = None,
        max_content_size: int = DEFAULT_MAX_CONTENT_SIZE,
    ) -> None:
        self.peer = peer
        self.max_content_size = max_content_size
        self._buffer = bytearray()
        self._headers: dict[str, str] = {}
        self._header_complete = False
        self.received = Signal()
        self.connection_closed = Signal()
        self.error = Signal()

    def reset(self) -> None:
        """Forget any partially read header."""
        self._header_complete = False
        self._headers.clear()

    def close(self) -> None:
        self.connection_closed.emit()

    def close_with_error(self, message: str) -> None:
        self.error.emit(message)
        self.close()

    def _read_line(self) -> Optional[str]:
        end = self._buffer.find(b"\n")
        if end < 0:
            return None
        line = bytes(self._buffer[: end + 1])
        del self._buffer[: end + 1]
        return line.decode("latin-1").strip()

    def _read_headers(self) -> None:
        while (line := self._read_line()) is not None:
            if not line:
                if "Method" in self._headers or "Content-Length" in self._headers:
                    self._header_complete = True
                else:
                    log.warning("incomplete header")
                    self.reset()
                return
            parts = line.split(":")
            if len(parts) != 2:
                log.warning("invalid header line: %s", line)
                return
            self._headers[parts[0].strip()] = parts[1].strip()

    def feed(self, data: bytes) -> None:
        """Append ``data`` and emit ``received`` for every complete message."""
        self._buffer.extend(data)
        while self._buffer:
            if not self._header_complete:
                if b"\n" not in self._buffer:
                    return
                self._read_headers()
            if self._header_complete:
                size = max(0, _to_int(self._headers.get("Content-Length", "")))
                if size > self.max_content_size:
                    log.warning(
                        "content too large to be received. max size: %d",
                        self.max_content_size,
                    )
                    self.reset()
                    return
                if len(self._buffer) < size:
                    return
                content = bytes(self._buffer[:size])
                del self._buffer[:size]
                method = self._headers.get("Method", "")
                self.reset()
                self.received.emit(method, content)