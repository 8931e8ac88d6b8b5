from __future__ import annotations

from dataclasses import dataclass, field

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm

PAGE_WIDTH, PAGE_HEIGHT = A4

DEFAULT_MAX_DEPTH = 32
NO_CONTENT_TEXT = 'No content available for this tab.'


@dataclass(frozen=True)
class ChipColors:
    background: str
    foreground: str


@dataclass(frozen=True)
class Palette:
    background: str = '#FFFFFF'
    tab_bar: str = '#F5F7FB'
    tab_active: str = '#E9EEFF'
    tab_inactive: str = '#F3F4F6'
    primary: str = '#4C6FFF'
    text: str = '#111827'
    muted: str = '#6B7280'
    border: str = '#E5E7EB'
    star: str = '#F59E0B'
    comment_fill: str = '#F9FAFB'
    node_fill: str = '#FCFCFD'
    avatar_fill: str = '#E0E7FF'
    avatar_text: str = '#3730A3'
    info_chip: ChipColors = field(default_factory=lambda: ChipColors('#EFF6FF', '#1D4ED8'))
    ok_chip: ChipColors = field(default_factory=lambda: ChipColors('#ECFDF5', '#065F46'))
    rating_chip: ChipColors = field(default_factory=lambda: ChipColors('#FEF3C7', '#92400E'))
    label_chip: ChipColors = field(default_factory=lambda: ChipColors('#EEF2FF', '#3730A3'))
    status_chip: ChipColors = field(default_factory=lambda: ChipColors('#F3F4F6', '#374151'))
    priority_chip: ChipColors = field(default_factory=lambda: ChipColors('#FEF2F2', '#B91C1C'))


@dataclass(frozen=True)
class ReportFonts:
    body: str = 'Helvetica'
    bold: str = 'Helvetica-Bold'


@dataclass(frozen=True)
class LayoutStyle:
    """Geometry of the vector renderer, in PDF points, origin top-left."""

    palette: Palette = field(default_factory=Palette)
    fonts: ReportFonts = field(default_factory=ReportFonts)

    page_width: float = PAGE_WIDTH
    page_height: float = PAGE_HEIGHT
    margin_x: float = 18 * mm
    top_margin: float = 10 * mm
    bottom_margin: float = 18 * mm

    header_height: float = 16 * mm
    tab_bar_gap: float = 3 * mm
    tab_row_height: float = 14 * mm
    tab_rows: int = 1
    tab_gap: float = 3 * mm
    min_tab_width: float = 28 * mm
    max_tab_bar_height: float = 120 * mm
    content_gap: float = 6 * mm
    footer_offset: float = 10 * mm

    title_size: float = 16.0
    body_size: float = 10.0
    section_title_size: float = 13.0
    chip_size: float = 9.0
    chip_height: float = 16.0
    chip_padding: float = 6.0
    chip_gap: float = 6.0
    line_gap: float = 2.0

    card_padding: float = 14.0
    card_radius: float = 12.0
    section_gap: float = 14.0
    section_min_height: float = 40 * mm

    comment_padding: float = 10.0
    comment_header_height: float = 16.0
    comment_gap: float = 8.0
    avatar_radius: float = 7.0

    hierarchy_indent: float = 6 * mm
    min_node_width: float = 60 * mm
    node_padding: float = 8.0
    node_gap: float = 6.0
    badge_size: float = 14.0

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin_x

    @property
    def tab_row_pitch(self) -> float:
        return min(self.tab_row_height, self.max_tab_bar_height / max(1, self.tab_rows))

    @property
    def tab_bar_height(self) -> float:
        return self.tab_rows * self.tab_row_pitch

    @property
    def tab_inset(self) -> float:
        return 2 * self.tab_gap / 3

    def tabs_per_row(self, count: int) -> int:
        usable = self.content_width - 2 * self.tab_inset
        fits = int((usable + self.tab_gap) // (self.min_tab_width + self.tab_gap))
        return max(1, min(count, fits))

    @property
    def tab_bar_top(self) -> float:
        return self.top_margin + self.header_height + self.tab_bar_gap

    @property
    def content_top(self) -> float:
        return self.tab_bar_top + self.tab_bar_height + self.content_gap

    @property
    def content_bottom(self) -> float:
        return self.page_height - self.bottom_margin

    @property
    def usable_height(self) -> float:
        return self.content_bottom - self.content_top

    def leading(self, size: float) -> float:
        return size + self.line_gap + 2.0
