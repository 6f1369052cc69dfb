"""Content adapters: show and preview files that are not live documents."""

from __future__ import annotations

import os
from enum import Flag
from typing import Any, MutableMapping, Optional

from PIL import Image

IMAGE_VIEWER_URL = "qrc:/livert/imageviewer_qt5.qml"

Size = tuple[int, int]


class Feature(Flag):
    """Optional features of the display environment an adapter may rely on."""

    NONE = 0
    QT_QUICK_CONTROLS = 1


class ContentAdapter:
    """Base of adapters that turn a file into something a node can display.

    The defaults preview nothing and adapt nothing; subclasses override what
    they support.
    """

    def __init__(self) -> None:
        self.available_features = Feature.NONE
        self.active_path: Optional[str] = None

    def clean_up(self) -> None:
        """Release whatever the previous ``adapt`` call set up."""
        self.active_path = None

    def can_preview(self, path: str) -> bool:
        """Whether ``preview`` can produce an image for ``path``."""
        return False

    def preview(self, path: str, requested_size: Optional[Size]) -> Optional[Image.Image]:
        """A preview image of ``path``, or None when there is none."""
        return None

    def can_adapt(self, path: str) -> bool:
        """Whether ``adapt`` can display ``path``."""
        return False

    def adapt(self, path: str, context: MutableMapping[str, Any]) -> str:
        """Prepare ``context`` for showing ``path``; return the document to load."""
        self.active_path = path
        return path

    def is_full_screen(self) -> bool:
        """Whether the adapted document should fill the whole view."""
        return False


def _image_format(path: str) -> str:
    """The lower-case image format detected from the content of ``path``, or ''."""
    try:
        with Image.open(path) as image:
            return (image.format or "").lower()
    except (OSError, ValueError):
        return ""


def _scaled_size(width: int, height: int, bound: Size) -> Size:
    """The largest size of the given aspect ratio that fits inside ``bound``."""
    bound_width, bound_height = bound
    candidate = bound_height * width // height
    if candidate <= bound_width:
        return candidate, bound_height
    return bound_width, bound_width * height // width


class ImageAdapter(ContentAdapter):
    """Shows image files in an image viewer and previews them."""

    def can_preview(self, path: str) -> bool:
        image_format = _image_format(path)
        if not image_format:
            return False
        if image_format == "pcx":
            return os.path.splitext(path)[1] == ".pcx"
        return True

    def preview(self, path: str, requested_size: Optional[Size]) -> Image.Image:
        """The image at ``path``, scaled to fit ``requested_size`` keeping its aspect.

        A missing or negative size returns the image unscaled; an empty size
        raises ValueError. Unreadable files raise OSError.
        """
        with Image.open(path) as source:
            image = source.copy()
        if requested_size is None or min(requested_size) < 0:
            return image
        if 0 in requested_size or 0 in image.size:
            raise ValueError(f"cannot scale an image to the empty size {requested_size}")
        new_size = _scaled_size(image.width, image.height, requested_size)
        if 0 in new_size:
            raise ValueError(f"cannot scale an image to the empty size {new_size}")
        return image.resize(new_size)

    def can_adapt(self, path: str) -> bool:
        return bool(_image_format(path))

    def adapt(self, path: str, context: MutableMapping[str, Any]) -> str:
        self.active_path = path
        context["imageViewerBackgroundColor"] = "black"
        context["imageViewerSource"] = path
        return IMAGE_VIEWER_URL

    def is_full_screen(self) -> bool:
        return True