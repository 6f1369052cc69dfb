"""The node side: loads the documents a hub announces and applies updates."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from enum import IntFlag
from typing import Any, Callable, Iterable, MutableMapping, Optional

from livehub.adapters import ContentAdapter, Feature, ImageAdapter
from livehub.document import LiveDocument, PathLike
from livehub.overlay import OverlayUrlInterceptor
from livehub.runtime import LiveRuntime, Signal

log = logging.getLogger(__name__)

OVERLAY_PATH_PREFIX = "qml-live-overlay--"
OVERLAY_PATH_SEPARATOR = "-"
DEFAULT_RELOAD_DELAY = 0.25

CANNOT_DISPLAY = "LiveNodeEngine: Cannot display this file type"
CANNOT_DISPLAY_INTERNAL = "LiveNodeEngine: Internal error: Cannot display this file type"
NO_LOADER = "LiveNodeEngine: Cannot display this component: no document loader set."

Loader = Callable[[str, MutableMapping[str, Any]], Any]

_CONTROLS_MODULES = ("QtQuick/Controls", "QtQuick/Layouts", "QtQuick/Dialogs")


class WorkspaceOption(IntFlag):
    """Optional workspace related features."""

    NONE = 0
    LOAD_DUMMY_DATA = 1
    ALLOW_UPDATES = 2
    UPDATES_AS_OVERLAY = 4


class LiveNodeEngine:
    """Loads live documents and reloads them on request from a hub.

    ``loader(path, context)`` instantiates a ``.qml`` document and returns the
    displayed object (a window-like object; its ``width`` and ``height``, when
    present, are published through ``runtime``). It raises to report errors.

    Files that are not documents are handed to content adapters first, which
    may turn them into a document to load.

    Signals:
        active_document_changed(document): the active document changed.
        clear_log(): the log should be cleared.
        log_ignore_messages(on): messages should be ignored or not.
        document_loaded(): a (re)load finished.
        active_window_changed(window): the displayed object, or None.
        log_errors(errors): a list of dicts with url, line, column, description.
        workspace_changed(path): the new absolute workspace path.
    """

    def __init__(
        self,
        loader: Optional[Loader] = None,
        *,
        plugins: Iterable[ContentAdapter] = (),
        import_paths: Iterable[str] = (),
        reload_delay: float = DEFAULT_RELOAD_DELAY,
        organization_name: str = "",
        application_name: str = "livehub",
    ) -> None:
        self.loader = loader
        self.runtime = LiveRuntime()
        self.context: dict[str, Any] = {"livert": self.runtime}
        self.import_paths = list(import_paths)
        self.url_interceptor: Optional[Any] = None
        self.x_offset = 0
        self.y_offset = 0
        self.rotation = 0
        self.organization_name = organization_name
        self.application_name = application_name

        self._extra_plugins = list(plugins)
        self._plugins: list[ContentAdapter] = []
        self._active_plugin: Optional[ContentAdapter] = None
        self._quick_features = Feature.NONE
        self._active_file: Optional[LiveDocument] = None
        self._active_window: Any = None
        self._workspace = ""
        self._options = WorkspaceOption.NONE
        self._overlay: Optional[OverlayUrlInterceptor] = None
        self._overlays: list[OverlayUrlInterceptor] = []
        self._reload_delay = reload_delay
        self._timer: Optional[threading.Timer] = None
        self._timer_lock = threading.Lock()

        self.active_document_changed = Signal()
        self.clear_log = Signal()
        self.log_ignore_messages = Signal()
        self.document_loaded = Signal()
        self.active_window_changed = Signal()
        self.log_errors = Signal()
        self.workspace_changed = Signal()

    @property
    def workspace(self) -> str:
        """The absolute path of the current workspace."""
        return os.path.abspath(self._workspace)

    @property
    def workspace_options(self) -> WorkspaceOption:
        return self._options

    @property
    def active_document(self) -> Optional[LiveDocument]:
        return self._active_file

    @property
    def active_plugin(self) -> Optional[ContentAdapter]:
        """The adapter used for the active document, if any."""
        return self._active_plugin

    @property
    def active_window(self) -> Any:
        return self._active_window

    @property
    def quick_features(self) -> Feature:
        """Features found among the import paths at the last reload."""
        return self._quick_features

    @property
    def plugins(self) -> list[ContentAdapter]:
        return list(self._plugins)

    def set_workspace(
        self, path: PathLike, options: WorkspaceOption = WorkspaceOption.NONE
    ) -> None:
        """Use ``path`` as workspace, with the features chosen by ``options``."""
        self._workspace = os.fspath(path)
        self._options = WorkspaceOption(options)

        if (self._options & WorkspaceOption.UPDATES_AS_OVERLAY) and not (
            self._options & WorkspaceOption.ALLOW_UPDATES
        ):
            log.warning("Got UpdatesAsOverlay without AllowUpdates. Enabling AllowUpdates.")
            self._options |= WorkspaceOption.ALLOW_UPDATES

        if self._options & WorkspaceOption.UPDATES_AS_OVERLAY:
            self._init_overlay()

        self.workspace_changed.emit(self.workspace)

    def load_document(self, document: Optional[LiveDocument]) -> None:
        """Make ``document`` active and (re)load it."""
        old = self._active_file
        self._active_file = document
        if document != old:
            self.active_document_changed.emit(document)
        if document is not None:
            self.reload_document()

    def delay_reload(self) -> None:
        """Reload after a short delay, restarting the delay if one is pending."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self._reload_delay, self.reload_document)
            self._timer.daemon = True
            self._timer.start()

    def reload_document(self) -> None:
        """Reload the active document; emits ``document_loaded`` when done."""
        self._active_window = None
        self._check_features()

        log.info("----------------------------------------")
        log.info("QmlLive: (Re)loading %s", self._active_file)
        self.clear_log.emit()

        if self._active_file is None:
            self.document_loaded.emit()
            self.active_window_changed.emit(None)
            return

        original = self._active_file.absolute_file_path_in(self.workspace)
        url = self.query_document_viewer(original)

        if url.lower().endswith(".qml"):
            if self.loader is None:
                self._log_error(url, NO_LOADER)
            else:
                try:
                    self._active_window = self.loader(url, self.context)
                except Exception as exc:  # loader failures are reported to the log
                    self._log_error(url, str(exc))
        elif url == original:
            self._log_error(url, CANNOT_DISPLAY)
        else:
            self._log_error(url, CANNOT_DISPLAY_INTERNAL)

        if self._active_window is not None:
            self._on_size_changed()

        self.document_loaded.emit()
        self.active_window_changed.emit(self._active_window)

    def update_document(self, document: LiveDocument, content: bytes) -> None:
        """Write ``content`` to ``document`` when the workspace options allow it."""
        if not self._options & WorkspaceOption.ALLOW_UPDATES:
            return

        if self._options & WorkspaceOption.UPDATES_AS_OVERLAY and self._overlay is not None:
            file_path = self._overlay.reserve(document)
        else:
            file_path = document.absolute_file_path_in(self.workspace)

        try:
            os.makedirs(os.path.dirname(os.path.abspath(file_path)), exist_ok=True)
            with open(file_path, "wb") as handle:
                handle.write(bytes(content))
        except OSError as exc:
            log.warning("Unable to save file: %s", exc)
            return

        if self._active_file is not None:
            self.delay_reload()

    def query_document_viewer(self, path: str) -> str:
        """Let a content adapter turn ``path`` into a displayable document."""
        self._init_plugins()
        for adapter in self._plugins:
            if adapter.can_adapt(path):
                adapter.clean_up()
                adapter.available_features = self._quick_features
                self._active_plugin = adapter
                return adapter.adapt(path, self.context)
        self._active_plugin = None
        return path

    def close(self) -> None:
        """Cancel a pending reload and remove the overlay directories."""
        with self._timer_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        for overlay in self._overlays:
            self._destroy_overlay(overlay)
        self._overlays.clear()
        self._overlay = None

    def __enter__(self) -> "LiveNodeEngine":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _init_plugins(self) -> None:
        if not self._plugins:
            self._plugins.extend(self._extra_plugins)
            self._plugins.append(ImageAdapter())

    def _check_features(self) -> None:
        for import_path in self.import_paths:
            if all(os.path.exists(os.path.join(import_path, m)) for m in _CONTROLS_MODULES):
                self._quick_features |= Feature.QT_QUICK_CONTROLS

    def _log_error(self, url: str, description: str) -> None:
        self.log_errors.emit(
            [{"url": url, "line": 0, "column": 0, "description": description}]
        )

    def _on_size_changed(self) -> None:
        width = getattr(self._active_window, "width", -1)
        height = getattr(self._active_window, "height", -1)
        if width != -1 and height != -1:
            self.runtime.screen_width = width
            self.runtime.screen_height = height

    def _init_overlay(self) -> None:
        prefix = OVERLAY_PATH_PREFIX
        if self.organization_name:
            prefix += self.organization_name + OVERLAY_PATH_SEPARATOR
        prefix += self.application_name
        overlay_dir = tempfile.mkdtemp(prefix=prefix, dir=tempfile.gettempdir())
        self._overlay = OverlayUrlInterceptor(self._workspace or ".", overlay_dir, self.url_interceptor)
        self._overlays.append(self._overlay)
        self.url_interceptor = self._overlay

    @staticmethod
    def _destroy_overlay(overlay: OverlayUrlInterceptor) -> None:
        temp_root = os.path.join(os.path.abspath(tempfile.gettempdir()), "")
        if not overlay.overlay.startswith(temp_root):
            log.warning("Failed to remove overlay directory")
            return
        try:
            shutil.rmtree(overlay.overlay)
        except OSError:
            log.warning("Failed to remove overlay directory")