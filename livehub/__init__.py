"""Workspace publishing, document reloading, content adapters and TCP messaging for live reloading of UI documents."""

__version__ = "0.1.0"

__all__ = [
    "adapters",
    "client",
    "connection",
    "document",
    "hub",
    "logger",
    "node",
    "options",
    "overlay",
    "preview",
    "runtime",
    "server",
]