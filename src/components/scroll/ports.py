"""
Scroll component port definitions.

The page and container strategies read the same three numbers from
different places; these protocols describe the minimal surface each one
needs.
"""

from __future__ import annotations

from typing import Protocol

from .models import ScrollReading


class ClockPort(Protocol):
    def now_ms(self) -> int:
        ...


class VisibilityStatePort(Protocol):
    """Anything exposing whether the tab is visible (e.g. ActiveTimeTracker)."""

    @property
    def is_visible(self) -> bool:
        ...


class ScrollSourcePort(Protocol):
    """Reads the current scroll position and extents."""

    def read(self) -> ScrollReading:
        ...


class PageWindowPort(Protocol):
    """Whole-page scrolling surface (window scroll)."""

    @property
    def scroll_y(self) -> float:
        ...

    @property
    def inner_height(self) -> float:
        ...

    @property
    def document_height(self) -> float:
        ...


class ScrollContainerPort(Protocol):
    """A bounded scrollable element hosting rendered content."""

    @property
    def scroll_top(self) -> float:
        ...

    @property
    def client_height(self) -> float:
        ...

    @property
    def scroll_height(self) -> float:
        ...
