"""Preview images of workspace files, cached by path and size."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from PIL import Image

from livehub.adapters import ContentAdapter, Size

DEFAULT_ICON_SIZE: Size = (512, 512)


@dataclass
class _CacheEntry:
    image: Optional[Image.Image]
    mtime: Optional[float]


def _mtime(path: str) -> Optional[float]:
    try:
        return os.stat(path).st_mtime
    except OSError:
        return None


def _image_size(image: Optional[Image.Image]) -> Optional[Size]:
    return None if image is None else image.size


def _suffix(path: str) -> str:
    name = os.path.basename(path)
    return name.rsplit(".", 1)[1] if "." in name else ""


class PreviewImageProvider:
    """Produces preview images with the content adapters, falling back to icons.

    ``engine``, when given, is asked for a file-type icon through
    ``engine.convert_icon_to_image(path, size)``; icons are cached by suffix.
    """

    def __init__(self, engine: Any = None) -> None:
        self._engine = engine
        self._lock = threading.Lock()
        self._plugins: list[ContentAdapter] = []
        self._ignore_cache = False
        self._image_cache: dict[str, _CacheEntry] = {}
        self._icon_cache: dict[str, Optional[Image.Image]] = {}

    @property
    def ignore_cache(self) -> bool:
        with self._lock:
            return self._ignore_cache

    @ignore_cache.setter
    def ignore_cache(self, enabled: bool) -> None:
        with self._lock:
            self._ignore_cache = bool(enabled)

    def set_plugins(self, plugins: Iterable[ContentAdapter]) -> None:
        """Use ``plugins`` to produce previews, in that order."""
        with self._lock:
            self._plugins = list(plugins)

    def request_image(
        self, path: str, requested_size: Optional[Size] = None
    ) -> tuple[Optional[Image.Image], Optional[Size]]:
        """Return the preview of ``path`` and its size."""
        mtime = _mtime(path)
        width, height = requested_size if requested_size is not None else (-1, -1)
        key = f"{path}{width}x{height}"

        with self._lock:
            cached = None if self._ignore_cache else self._image_cache.get(key)
            if cached is not None and (
                mtime is None or cached.mtime is None or mtime <= cached.mtime
            ):
                return cached.image, _image_size(cached.image)
            plugins = list(self._plugins)

        for plugin in plugins:
            if plugin.can_preview(path):
                image = plugin.preview(path, requested_size)
                with self._lock:
                    self._image_cache[key] = _CacheEntry(image, mtime)
                return image, _image_size(image)

        icon_size: Size = (width, height)
        if width < 0 or height < 0 or (width == 0 and height == 0):
            icon_size = DEFAULT_ICON_SIZE

        suffix = _suffix(path)
        with self._lock:
            if suffix in self._icon_cache:
                icon = self._icon_cache[suffix]
                return icon, _image_size(icon)
        if self._engine is None:
            return None, None
        icon = self._engine.convert_icon_to_image(path, icon_size)
        with self._lock:
            self._icon_cache[suffix] = icon
        return icon, icon_size