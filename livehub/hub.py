"""The hub side: watches over a workspace and announces document changes."""

from __future__ import annotations

import os
from typing import Iterable, Iterator, Optional

from livehub.document import LiveDocument, PathLike
from livehub.runtime import Signal


def _visible(name: str) -> bool:
    return not name.startswith(".")


class LiveHubEngine:
    """Tracks a workspace and an active document and publishes workspace files.

    Signals:
        begin_publish_workspace(): before any ``publish_file`` of a workspace publish.
        end_publish_workspace(): after every ``publish_file`` of a workspace publish.
        publish_file(document): a file to transfer to a connected node.
        file_changed(document): a file that changed on the hub.
        activate_document(document): the active document, or None.
        workspace_changed(path): the new workspace path.
    """

    def __init__(self) -> None:
        self._workspace = ""
        self._active_path: Optional[LiveDocument] = None
        self.file_publishing_active = False

        self.begin_publish_workspace = Signal()
        self.end_publish_workspace = Signal()
        self.publish_file = Signal()
        self.file_changed = Signal()
        self.activate_document = Signal()
        self.workspace_changed = Signal()

    @property
    def workspace(self) -> str:
        """The workspace directory being watched."""
        return self._workspace

    @workspace.setter
    def workspace(self, path: PathLike) -> None:
        self._workspace = os.fspath(path)
        self.workspace_changed.emit(self._workspace)

    @property
    def active_path(self) -> Optional[LiveDocument]:
        """The active document, or None."""
        return self._active_path

    @active_path.setter
    def active_path(self, document: Optional[LiveDocument]) -> None:
        self._active_path = document
        self.activate_document.emit(document)

    def directories_changed(self, changes: Iterable[PathLike]) -> None:
        """Handle changed directories: publish their files and re-activate the document."""
        if self.file_publishing_active:
            for change in changes:
                self._publish_directory(os.fspath(change), file_change=True)
        self.activate_document.emit(self._active_path)

    def publish_workspace(self) -> None:
        """Publish every file of the workspace to a connected node."""
        if not self.file_publishing_active:
            return
        self.begin_publish_workspace.emit()
        self._publish_directory(self._workspace, file_change=False)
        for directory in self._subdirectories(self._workspace):
            self._publish_directory(directory, file_change=False)
        self.end_publish_workspace.emit()

    @staticmethod
    def _subdirectories(top: str) -> Iterator[str]:
        for root, dirs, _files in os.walk(top):
            dirs[:] = sorted(d for d in dirs if _visible(d))
            for name in dirs:
                yield os.path.join(root, name)

    def _publish_directory(self, dir_path: str, file_change: bool) -> None:
        if not self.file_publishing_active:
            return
        try:
            entries = sorted(os.scandir(dir_path), key=lambda e: e.name)
        except OSError:
            return
        signal = self.file_changed if file_change else self.publish_file
        for entry in entries:
            if not _visible(entry.name) or not entry.is_file():
                continue
            signal.emit(LiveDocument.resolve(self._workspace, os.path.abspath(entry.path)))