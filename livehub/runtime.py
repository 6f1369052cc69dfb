"""Signals and the runtime properties exposed to live documents."""

from __future__ import annotations

from typing import Any, Callable

Slot = Callable[..., Any]


class Signal:
    """A list of callables invoked in connection order on emit."""

    def __init__(self) -> None:
        self._slots: list[Slot] = []

    def connect(self, slot: Slot) -> None:
        """Register ``slot`` to be called on every emit."""
        self._slots.append(slot)

    def disconnect(self, slot: Slot) -> None:
        """Remove a previously connected ``slot``; raises ValueError if unknown."""
        try:
            self._slots.remove(slot)
        except ValueError:
            raise ValueError(f"slot {slot!r} is not connected") from None

    def emit(self, *args: Any) -> None:
        """Call every connected slot with ``args``."""
        for slot in list(self._slots):
            slot(*args)

    def __len__(self) -> int:
        return len(self._slots)


class LiveRuntime:
    """Properties made available to documents running under the live node."""

    def __init__(self) -> None:
        self._screen_width = 0.0
        self._screen_height = 0.0
        self.screen_width_changed = Signal()
        self.screen_height_changed = Signal()

    @property
    def screen_width(self) -> float:
        return self._screen_width

    @screen_width.setter
    def screen_width(self, value: float) -> None:
        if self._screen_width != value:
            self._screen_width = value
            self.screen_width_changed.emit(value)

    @property
    def screen_height(self) -> float:
        return self._screen_height

    @screen_height.setter
    def screen_height(self, value: float) -> None:
        if self._screen_height != value:
            self._screen_height = value
            self.screen_height_changed.emit(value)