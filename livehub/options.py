"""Command-line options of the bench."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from livehub.document import LiveDocument

DEFAULT_PORT = 10234


@dataclass
class HostOptions:
    """A host to add: its name, address and port."""

    name: str = ""
    address: str = ""
    port: int = DEFAULT_PORT


@dataclass
class Options:
    """Settings collected from the command line."""

    no_remote: bool = False
    remote_only: bool = False
    ping: bool = False
    active_document: Optional[LiveDocument] = None
    workspace: str = ""
    plugin_path: str = ""
    import_paths: list[str] = field(default_factory=list)
    stay_on_top: bool = False
    hosts_to_add: list[HostOptions] = field(default_factory=list)
    hosts_to_remove: list[str] = field(default_factory=list)
    hosts_to_probe: list[str] = field(default_factory=list)

    def has_noninteractive_options(self) -> bool:
        """Whether any host should be added, removed or probed."""
        return bool(self.hosts_to_add or self.hosts_to_remove or self.hosts_to_probe)

    def add_import_path(self, path: str) -> None:
        self.import_paths.append(path)

    def clear_import_paths(self) -> None:
        self.import_paths.clear()

    def add_host_to_add(self, host: HostOptions) -> None:
        self.hosts_to_add.append(host)