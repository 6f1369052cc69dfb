"""A single process-wide sink for log messages."""

from __future__ import annotations

import sys
import threading
from enum import IntEnum
from typing import Optional, TextIO

from livehub.runtime import Signal

_lock = threading.Lock()
_ignore_messages = False


class MessageType(IntEnum):
    """Severity of a log message."""

    DEBUG = 0
    WARNING = 1
    CRITICAL = 2
    FATAL = 3
    INFO = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


def set_ignore_messages(ignore: bool) -> None:
    """When ``ignore`` is true, every Logger drops incoming messages."""
    global _ignore_messages
    with _lock:
        _ignore_messages = bool(ignore)


def _ignoring() -> bool:
    with _lock:
        return _ignore_messages


class Logger:
    """Receives log messages, re-emits them through ``message`` and echoes them.

    Only one Logger may exist at a time; close it to allow another.
    """

    _instance: Optional["Logger"] = None

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        with _lock:
            if Logger._instance is not None:
                raise RuntimeError("Cannot create more than one Logger")
            Logger._instance = self
        self._stream = stream
        self.message = Signal()

    @classmethod
    def instance(cls) -> Optional["Logger"]:
        return cls._instance

    def handle(
        self,
        kind: MessageType,
        message: str,
        file: str = "",
        line: int = 0,
        function: str = "",
    ) -> None:
        """Process one message unless messages are being ignored."""
        if _ignoring():
            return
        kind = MessageType(kind)
        self.message.emit(kind, message)
        stream = self._stream if self._stream is not None else sys.stderr
        stream.write(f"{kind.label}: {message} ({file}:{line}, {function})\n")

    def close(self) -> None:
        """Release the single-instance slot."""
        with _lock:
            if Logger._instance is self:
                Logger._instance = None

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()