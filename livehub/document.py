"""Workspace-relative document paths."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass
from typing import Union

PathLike = Union[str, "os.PathLike[str]"]


class DocumentError(ValueError):
    """Raised when a document path is invalid or cannot be found."""


def _clean(path: str) -> str:
    path = path.replace(os.sep, "/") if os.sep != "/" else path
    return "" if not path else posixpath.normpath(path)


def _is_outside(clean_path: str) -> bool:
    return clean_path == ".." or clean_path.startswith("../")


@dataclass(frozen=True)
class LiveDocument:
    """A path to a document, relative to a workspace directory."""

    relative_file_path: str

    def __post_init__(self) -> None:
        path = self.relative_file_path
        if not path:
            raise DocumentError("Not a valid file path: ''")
        if os.path.isabs(path):
            raise DocumentError(f"Document path '{path}' must be relative")
        if _is_outside(_clean(path)):
            raise DocumentError(f"Document path '{path}' leads outside the workspace")

    @classmethod
    def resolve(cls, workspace: PathLike, file_path: PathLike) -> "LiveDocument":
        """Build a document for ``file_path`` unless it lies outside ``workspace``.

        ``file_path`` may be absolute or relative and need not exist.
        """
        workspace_str = os.fspath(workspace)
        path = os.fspath(file_path)
        if not path:
            raise DocumentError("Not a valid file path: ''")

        if os.path.isabs(path):
            relative = os.path.relpath(path, os.path.abspath(workspace_str))
        else:
            relative = _clean(path)
        clean = _clean(relative)

        if not clean or clean == ".":
            return cls(".")
        if _is_outside(clean):
            raise DocumentError(
                f"Document path '{path}' is outside the workspace directory '{workspace_str}'"
            )
        return cls(relative)

    def exists_in(self, workspace: PathLike) -> bool:
        """Whether the document exists in ``workspace``."""
        return os.path.exists(os.path.join(os.fspath(workspace), self.relative_file_path))

    def is_file_in(self, workspace: PathLike) -> bool:
        """Whether the document is a regular file (links followed) in ``workspace``."""
        return os.path.isfile(os.path.join(os.fspath(workspace), self.relative_file_path))

    def require_file_in(self, workspace: PathLike) -> str:
        """Return the absolute path, raising DocumentError unless it is a regular file."""
        workspace_str = os.fspath(workspace)
        if not self.exists_in(workspace_str):
            raise DocumentError(
                f"Document '{self.relative_file_path}' does not exist in workspace '{workspace_str}'"
            )
        if not self.is_file_in(workspace_str):
            raise DocumentError(
                f"Document '{self.relative_file_path}' is a non-regular file in workspace "
                f"'{workspace_str}'"
            )
        return self.absolute_file_path_in(workspace_str)

    def absolute_file_path_in(self, workspace: PathLike) -> str:
        """The cleaned absolute path of the document within ``workspace``."""
        base = os.path.abspath(os.fspath(workspace))
        return os.path.normpath(os.path.join(base, self.relative_file_path))

    def __str__(self) -> str:
        return self.relative_file_path