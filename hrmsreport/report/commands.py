from __future__ import annotations

from dataclasses import dataclass, field


# Coordinates are PDF points with the origin at the top-left corner of the page.


@dataclass(frozen=True)
class FillRect:
    x: float
    y: float
    width: float
    height: float
    color: str
    tag: str = ''


@dataclass(frozen=True)
class RoundRect:
    x: float
    y: float
    width: float
    height: float
    radius: float
    fill: str | None = None
    stroke: str | None = None
    line_width: float = 1.0
    tag: str = ''


@dataclass(frozen=True)
class Line:
    x1: float
    y1: float
    x2: float
    y2: float
    color: str
    width: float = 1.0
    tag: str = ''


@dataclass(frozen=True)
class TextRun:
    """Single line of text; ``y`` is the top of the line box."""

    x: float
    y: float
    text: str
    font: str
    size: float
    color: str
    tag: str = ''


@dataclass(frozen=True)
class Star:
    cx: float
    cy: float
    radius: float
    color: str
    tag: str = ''


@dataclass(frozen=True)
class Circle:
    cx: float
    cy: float
    radius: float
    fill: str
    tag: str = ''


DrawCommand = FillRect | RoundRect | Line | TextRun | Star | Circle


@dataclass(frozen=True)
class LinkArea:
    x: float
    y: float
    width: float
    height: float
    target_tab: int


@dataclass
class PageLayout:
    index: int
    tab_index: int
    commands: list[DrawCommand] = field(default_factory=list)
    links: list[LinkArea] = field(default_factory=list)
    nav_labels: tuple[str, ...] = ()

    @property
    def number(self) -> int:
        return self.index + 1

    def tagged(self, tag: str) -> list[DrawCommand]:
        return [command for command in self.commands if command.tag == tag]

    def texts(self, tag: str | None = None) -> list[str]:
        return [
            command.text
            for command in self.commands
            if isinstance(command, TextRun) and (tag is None or command.tag == tag)
        ]


@dataclass
class RenderedLayout:
    page_width: float
    page_height: float
    pages: list[PageLayout]
    tab_labels: list[str]
    tab_first_pages: dict[int, int]
    destinations: dict[int, str]
    scaffold_draws: int = 0
    content_top: float = 0.0

    def pages_for_tab(self, tab_index: int) -> list[PageLayout]:
        return [page for page in self.pages if page.tab_index == tab_index]

    def tabs_starting_on(self, page_index: int) -> list[int]:
        return [tab for tab, first in sorted(self.tab_first_pages.items()) if first == page_index]
