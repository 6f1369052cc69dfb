"""A writable overlay stacked over a possibly read-only workspace."""

from __future__ import annotations

import os
import threading
from typing import Any, Optional

from livehub.document import LiveDocument, PathLike


def _key(path: str) -> str:
    return os.path.normpath(os.path.abspath(path))


class OverlayUrlInterceptor:
    """Redirects workspace paths to their updated copies in an overlay directory.

    Files already present in the overlay are mapped on construction. Another
    interceptor (anything with an ``intercept(path)`` method) may be chained in
    front of this one.
    """

    def __init__(
        self,
        base_path: PathLike,
        overlay_path: PathLike,
        other: Optional[Any] = None,
    ) -> None:
        base = os.fspath(base_path)
        overlay = os.fspath(overlay_path)
        if not base:
            raise ValueError("the base path must not be empty")
        if not overlay:
            raise ValueError("the overlay path must not be empty")
        self._base = os.path.abspath(base)
        self._overlay = os.path.abspath(overlay)
        self._other = other
        self._lock = threading.Lock()
        self._mappings: dict[str, str] = {}

        for root, dirs, files in os.walk(self._overlay):
            dirs.sort()
            for name in [*dirs, *sorted(files)]:
                overlaying = os.path.join(root, name)
                relative = os.path.relpath(overlaying, self._overlay)
                self._mappings[_key(os.path.join(self._base, relative))] = overlaying

    @property
    def base(self) -> str:
        """The absolute path of the workspace being overlaid."""
        return self._base

    @property
    def overlay(self) -> str:
        """The absolute path of the overlay directory."""
        return self._overlay

    def reserve(self, document: LiveDocument) -> str:
        """Map ``document`` into the overlay and return the path to write it to."""
        overlaying = document.absolute_file_path_in(self._overlay)
        with self._lock:
            self._mappings[_key(document.absolute_file_path_in(self._base))] = overlaying
        return overlaying

    def intercept(self, path: str) -> str:
        """The overlay copy of ``path`` if there is one, else ``path`` itself."""
        if self._other is not None:
            path = self._other.intercept(path)
        with self._lock:
            return self._mappings.get(_key(path), path)