from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable

from reportlab.lib.utils import simpleSplit
from reportlab.pdfbase import pdfmetrics

from ..types import (
    AppraisalDocument,
    Comment,
    HierarchyNode,
    RatingDetailsPanel,
    Review,
    Section,
    count_nodes,
    format_percent,
    format_rating,
    format_value,
)
from .commands import (
    Circle,
    DrawCommand,
    FillRect,
    Line,
    LinkArea,
    PageLayout,
    RenderedLayout,
    RoundRect,
    Star,
    TextRun,
)
from .styles import DEFAULT_MAX_DEPTH, NO_CONTENT_TEXT, ChipColors, LayoutStyle


logger = logging.getLogger(__name__)

NO_TABS_TEXT = 'No tabs available.'
ELLIPSIS = '...'
STAR_WIDTH = 10.0


def text_width(text: str, font: str, size: float) -> float:
    return pdfmetrics.stringWidth(text, font, size)


def wrap_text(text: str, font: str, size: float, width: float) -> list[str]:
    if not text:
        return []
    return simpleSplit(str(text), font, size, max(1.0, width))


def fit_text(text: str, font: str, size: float, max_width: float) -> str:
    max_width += 0.01
    if text_width(text, font, size) <= max_width:
        return text
    trimmed = text
    while trimmed and text_width(trimmed + ELLIPSIS, font, size) > max_width:
        trimmed = trimmed[:-1]
    return (trimmed.rstrip() + ELLIPSIS) if trimmed else ''


@dataclass(frozen=True)
class Chip:
    text: str
    colors: ChipColors
    star: bool = False
    tag: str = 'chip'


@dataclass
class _CardFrame:
    x: float
    width: float
    padding: float
    radius: float
    fill: str | None
    stroke: str | None
    tag: str
    top: float = 0.0
    start_index: int = 0


class _PageFlow:
    """Vertical cursor over a growing list of pages."""

    def __init__(self, style: LayoutStyle, scaffold: Callable[[_PageFlow, PageLayout], None]):
        self.style = style
        self._scaffold = scaffold
        self.pages: list[PageLayout] = []
        self.cursor = style.content_top
        self.scaffold_draws = 0
        self._frames: list[_CardFrame] = []

    @property
    def page(self) -> PageLayout:
        return self.pages[-1]

    def draw(self, command: DrawCommand) -> None:
        self.page.commands.append(command)

    def link(self, area: LinkArea) -> None:
        self.page.links.append(area)

    def new_page(self, tab_index: int) -> PageLayout:
        if self.pages:
            bottom = self.cursor
            for frame in reversed(self._frames):
                bottom += frame.padding
                self._emit_frame(frame, min(bottom, self.style.content_bottom))

        page = PageLayout(index=len(self.pages), tab_index=tab_index)
        self.pages.append(page)
        self._scaffold(self, page)
        self.scaffold_draws += 1
        self.cursor = self.style.content_top

        for frame in self._frames:
            frame.top = self.cursor
            frame.start_index = len(page.commands)
            self.cursor += frame.padding
        return page

    def ensure_space(self, need: float) -> bool:
        # Open cards still need room for their bottom padding.
        reserve = sum(frame.padding for frame in self._frames)
        if self.cursor + need + reserve <= self.style.content_bottom:
            return False
        if self.cursor <= self.style.content_top + reserve:
            # Nothing drawn on this page yet; a fresh page would not help.
            return False
        self.new_page(self.page.tab_index)
        return True

    def open_card(
        self,
        x: float,
        width: float,
        *,
        padding: float,
        radius: float,
        fill: str | None = None,
        stroke: str | None = None,
        tag: str = 'card',
    ) -> None:
        frame = _CardFrame(
            x=x,
            width=width,
            padding=padding,
            radius=radius,
            fill=fill,
            stroke=stroke,
            tag=tag,
            top=self.cursor,
            start_index=len(self.page.commands),
        )
        self._frames.append(frame)
        self.cursor += padding

    def close_card(self) -> None:
        frame = self._frames.pop()
        self.cursor += frame.padding
        self._emit_frame(frame, self.cursor)

    def _emit_frame(self, frame: _CardFrame, bottom: float) -> None:
        height = bottom - frame.top
        if height <= frame.padding:
            return
        self.page.commands.insert(
            frame.start_index,
            RoundRect(
                x=frame.x,
                y=frame.top,
                width=frame.width,
                height=height,
                radius=min(frame.radius, height / 2),
                fill=frame.fill,
                stroke=frame.stroke,
                tag=frame.tag,
            ),
        )


class _MeasureFlow(_PageFlow):
    """Runs the layout code on an endless page and keeps only the cursor."""

    def __init__(self, style: LayoutStyle):
        self.style = style
        self.pages = []
        self.cursor = 0.0
        self.scaffold_draws = 0
        self._frames = []

    def draw(self, command: DrawCommand) -> None:
        return None

    def link(self, area: LinkArea) -> None:
        return None

    def ensure_space(self, need: float) -> bool:
        return False

    def open_card(self, x: float, width: float, *, padding: float, radius: float, **_: object) -> None:
        self.cursor += padding
        self._frames.append(
            _CardFrame(x=x, width=width, padding=padding, radius=radius, fill=None, stroke=None, tag='')
        )

    def close_card(self) -> None:
        frame = self._frames.pop()
        self.cursor += frame.padding


@dataclass
class _StackItem:
    node: HierarchyNode | None
    depth: int
    index: int
    omitted: int = 0


class LayoutEngine:
    def __init__(
        self,
        style: LayoutStyle | None = None,
        *,
        keep_sections_together: bool = True,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        self.style = style or LayoutStyle()
        self.keep_sections_together = keep_sections_together
        self.max_depth = max(1, int(max_depth))

    # ------------------------------------------------------------------ api

    def render(self, document: AppraisalDocument) -> RenderedLayout:
        count = len(document.tabs)
        rows = math.ceil(count / self.style.tabs_per_row(count)) if count else 1
        if rows != self.style.tab_rows:
            # Many tabs wrap onto extra bar rows, which pushes the content down.
            engine = LayoutEngine(
                replace(self.style, tab_rows=rows),
                keep_sections_together=self.keep_sections_together,
                max_depth=self.max_depth,
            )
            return engine.render(document)

        labels = [document.tab_label(index) for index in range(len(document.tabs))]
        destinations = {index: document.tab_anchor(index) for index in range(len(document.tabs))}

        def scaffold(flow: _PageFlow, page: PageLayout) -> None:
            self._draw_scaffold(flow, page, document, labels)

        flow = _PageFlow(self.style, scaffold)
        first_pages: dict[int, int] = {}

        if not document.tabs:
            flow.new_page(-1)
            self._muted_line(flow, NO_TABS_TEXT, tag='placeholder')

        for index in range(len(document.tabs)):
            page = flow.new_page(index)
            first_pages[index] = page.index
            self._draw_tab(flow, document, index)

        logger.debug('Laid out %s tabs on %s pages', len(document.tabs), len(flow.pages))
        return RenderedLayout(
            page_width=self.style.page_width,
            page_height=self.style.page_height,
            pages=flow.pages,
            tab_labels=labels,
            tab_first_pages=first_pages,
            destinations=destinations,
            scaffold_draws=flow.scaffold_draws,
            content_top=self.style.content_top,
        )

    def measure(self, draw: Callable[[_PageFlow], None]) -> float:
        probe = _MeasureFlow(self.style)
        draw(probe)
        return probe.cursor

    # ------------------------------------------------------------- scaffold

    def _draw_scaffold(
        self,
        flow: _PageFlow,
        page: PageLayout,
        document: AppraisalDocument,
        labels: list[str],
    ) -> None:
        s = self.style
        p = s.palette
        employee = document.meta.employee
        top = s.top_margin
        right = s.page_width - s.margin_x

        avatar_space = 0.0
        if employee.name:
            radius = 11.0
            cx = right - radius
            cy = top + radius + 2.0
            flow.draw(Circle(cx, cy, radius, p.avatar_fill, tag='scaffold'))
            self._centered_text(flow, employee.initials, cx, cy, s.fonts.bold, 8.5, p.avatar_text, 'scaffold')
            avatar_space = 2 * radius + 6.0

        title_width = s.content_width - avatar_space
        flow.draw(
            TextRun(
                s.margin_x,
                top,
                fit_text(document.meta.report_title, s.fonts.bold, s.title_size, title_width),
                s.fonts.bold,
                s.title_size,
                p.text,
                tag='scaffold',
            )
        )
        info = employee.info_line
        if info:
            flow.draw(
                TextRun(
                    s.margin_x,
                    top + s.title_size + 6.0,
                    fit_text(info, s.fonts.body, s.body_size, title_width),
                    s.fonts.body,
                    s.body_size,
                    p.muted,
                    tag='scaffold',
                )
            )
        divider_y = top + s.header_height
        flow.draw(Line(s.margin_x, divider_y, right, divider_y, p.border, tag='scaffold'))

        self._draw_tab_bar(flow, page, labels)

        footer_text = f'Page {page.number}'
        footer_width = text_width(footer_text, s.fonts.body, 9)
        flow.draw(
            TextRun(
                right - footer_width,
                s.page_height - s.footer_offset,
                footer_text,
                s.fonts.body,
                9,
                p.muted,
                tag='footer',
            )
        )

    def _draw_tab_bar(self, flow: _PageFlow, page: PageLayout, labels: list[str]) -> None:
        s = self.style
        p = s.palette
        bar_top = s.tab_bar_top
        flow.draw(FillRect(s.margin_x, bar_top, s.content_width, s.tab_bar_height, p.tab_bar, tag='scaffold'))

        count = len(labels)
        if count:
            inset = s.tab_inset
            per_row = s.tabs_per_row(count)
            usable = s.content_width - 2 * inset
            each_width = (usable - s.tab_gap * (per_row - 1)) / per_row
            pitch = s.tab_row_pitch
            row_inset = min(inset, pitch / 6)
            pill_height = pitch - 2 * row_inset
            label_size = min(10.0, pill_height * 0.7)
            for index, label in enumerate(labels):
                row, column = divmod(index, per_row)
                x = s.margin_x + inset + column * (each_width + s.tab_gap)
                pill_y = bar_top + row_inset + row * pitch
                active = index == page.tab_index
                flow.draw(
                    RoundRect(
                        x,
                        pill_y,
                        each_width,
                        pill_height,
                        6,
                        fill=p.tab_active if active else p.tab_inactive,
                        tag='nav-pill-active' if active else 'nav-pill',
                    )
                )
                text = fit_text(label, s.fonts.bold, label_size, each_width - 8.0)
                width = text_width(text, s.fonts.bold, label_size)
                flow.draw(
                    TextRun(
                        x + (each_width - width) / 2,
                        pill_y + (pill_height - label_size) / 2,
                        text,
                        s.fonts.bold,
                        label_size,
                        p.primary if active else p.muted,
                        tag='nav-label',
                    )
                )
                flow.link(LinkArea(x, pill_y, each_width, pill_height, target_tab=index))

        divider_y = bar_top + s.tab_bar_height
        flow.draw(Line(s.margin_x, divider_y, s.margin_x + s.content_width, divider_y, p.border, tag='scaffold'))
        page.nav_labels = tuple(labels)

    # ------------------------------------------------------------------ tab

    def _draw_tab(self, flow: _PageFlow, document: AppraisalDocument, index: int) -> None:
        tab = document.tabs[index]

        if index == 0 and document.rating_details is not None:
            self._draw_rating_details(flow, document.rating_details)

        if tab.has_content:
            for section in tab.sections:
                self._draw_section(flow, section)
        else:
            self._muted_line(flow, NO_CONTENT_TEXT, tag='placeholder')

        if tab.review is not None:
            self._draw_review(flow, tab.review)

        if tab.hierarchy:
            self._draw_hierarchy(flow, tab.hierarchy)

        if tab.end_marker:
            self._draw_end_marker(flow, tab.end_marker)

    # ------------------------------------------------------------ primitives

    def _centered_text(
        self,
        flow: _PageFlow,
        text: str,
        cx: float,
        cy: float,
        font: str,
        size: float,
        color: str,
        tag: str,
    ) -> None:
        width = text_width(text, font, size)
        flow.draw(TextRun(cx - width / 2, cy - size / 2, text, font, size, color, tag=tag))

    def _text_block(
        self,
        flow: _PageFlow,
        text: str,
        x: float,
        width: float,
        *,
        font: str,
        size: float,
        color: str,
        tag: str = 'text',
    ) -> None:
        leading = self.style.leading(size)
        for line in wrap_text(text, font, size, width):
            flow.ensure_space(leading)
            flow.draw(TextRun(x, flow.cursor, line, font, size, color, tag=tag))
            flow.cursor += leading

    def _muted_line(self, flow: _PageFlow, text: str, *, tag: str) -> None:
        s = self.style
        self._text_block(
            flow,
            text,
            s.margin_x,
            s.content_width,
            font=s.fonts.body,
            size=s.body_size,
            color=s.palette.muted,
            tag=tag,
        )
        flow.cursor += s.section_gap

    def _chip_width(self, chip: Chip) -> float:
        s = self.style
        icon = STAR_WIDTH + 4.0 if chip.star else 0.0
        return s.chip_padding * 2 + icon + text_width(chip.text, s.fonts.body, s.chip_size)

    def _chip_rows(self, chips: list[Chip], width: float) -> list[list[Chip]]:
        rows: list[list[Chip]] = []
        used = 0.0
        for chip in chips:
            chip_width = min(self._chip_width(chip), width)
            if rows and used + chip_width <= width:
                rows[-1].append(chip)
                used += chip_width + self.style.chip_gap
                continue
            rows.append([chip])
            used = chip_width + self.style.chip_gap
        return rows

    def _chip_rows_height(self, rows: list[list[Chip]]) -> float:
        return len(rows) * (self.style.chip_height + 4.0)

    def _draw_chip(self, flow: _PageFlow, chip: Chip, x: float, y: float, max_width: float) -> float:
        s = self.style
        width = min(self._chip_width(chip), max_width)
        flow.draw(
            RoundRect(
                x,
                y,
                width,
                s.chip_height,
                s.chip_height / 2,
                fill=chip.colors.background,
                tag=chip.tag,
            )
        )
        cursor_x = x + s.chip_padding
        if chip.star:
            flow.draw(
                Star(
                    cursor_x + STAR_WIDTH / 2,
                    y + s.chip_height / 2,
                    STAR_WIDTH / 2,
                    s.palette.star,
                    tag=chip.tag,
                )
            )
            cursor_x += STAR_WIDTH + 4.0
        text = fit_text(chip.text, s.fonts.body, s.chip_size, x + width - s.chip_padding - cursor_x)
        flow.draw(
            TextRun(
                cursor_x,
                y + (s.chip_height - s.chip_size) / 2,
                text,
                s.fonts.body,
                s.chip_size,
                chip.colors.foreground,
                tag=chip.tag,
            )
        )
        return width

    def _draw_chips(self, flow: _PageFlow, chips: list[Chip], x: float, width: float) -> None:
        s = self.style
        for row in self._chip_rows(chips, width):
            flow.ensure_space(s.chip_height + 4.0)
            cursor_x = x
            for chip in row:
                cursor_x += self._draw_chip(flow, chip, cursor_x, flow.cursor, width) + s.chip_gap
            flow.cursor += s.chip_height + 4.0

    def _rating_chip(self, rating: object) -> Chip:
        return Chip(format_rating(rating), self.style.palette.rating_chip, star=True, tag='chip:rating')

    # ---------------------------------------------------------------- blocks

    def _draw_section(self, flow: _PageFlow, section: Section) -> None:
        s = self.style
        if self.keep_sections_together:
            need = self.measure(lambda probe: self._section_card(probe, section))
        else:
            need = s.section_min_height
        flow.ensure_space(min(need, s.usable_height))
        self._section_card(flow, section)
        flow.cursor += s.section_gap

    def _section_card(self, flow: _PageFlow, section: Section) -> None:
        s = self.style
        p = s.palette
        pad = s.card_padding
        x = s.margin_x + pad
        width = s.content_width - 2 * pad

        flow.open_card(
            s.margin_x,
            s.content_width,
            padding=pad,
            radius=s.card_radius,
            stroke=p.border,
            tag='section-card',
        )

        chips: list[Chip] = []
        if section.weightage is not None:
            chips.append(Chip(f'Weightage: {format_value(section.weightage)}', p.info_chip))
        if section.expected_rating is not None:
            chips.append(Chip(f'Expected: {format_value(section.expected_rating)}', p.ok_chip))
        if section.rating is not None:
            chips.append(self._rating_chip(section.rating))
        chips.extend(Chip(label, p.label_chip, tag='chip:label') for label in section.labels)

        title_lines = wrap_text(section.title, s.fonts.bold, s.section_title_size, width)
        heading_height = len(title_lines) * s.leading(s.section_title_size)
        flow.ensure_space(heading_height + self._chip_rows_height(self._chip_rows(chips, width)))
        self._text_block(
            flow,
            section.title,
            x,
            width,
            font=s.fonts.bold,
            size=s.section_title_size,
            color=p.text,
            tag='section-title',
        )
        flow.cursor += 4.0
        self._draw_chips(flow, chips, x, width)
        flow.cursor += 4.0

        if section.description:
            self._text_block(
                flow,
                section.description,
                x,
                width,
                font=s.fonts.body,
                size=s.body_size,
                color=p.muted,
            )
            flow.cursor += 8.0

        if section.behaviors:
            flow.ensure_space(16.0 + s.leading(s.body_size))
            flow.draw(TextRun(x, flow.cursor, 'Behaviors', s.fonts.bold, 11, p.text, tag='behaviors'))
            flow.cursor += 16.0
            for behavior in section.behaviors:
                self._text_block(
                    flow,
                    f'• {behavior}',
                    x,
                    width,
                    font=s.fonts.body,
                    size=s.body_size,
                    color=p.text,
                    tag='behavior',
                )
                flow.cursor += 4.0
            flow.cursor += 6.0

        for comment in section.comments:
            self._draw_comment(flow, comment, x, width)

        flow.close_card()

    def _comment_chips(self, comment: Comment) -> list[Chip]:
        p = self.style.palette
        chips: list[Chip] = []
        if comment.rating is not None:
            chips.append(self._rating_chip(comment.rating))
        if comment.progress is not None:
            chips.append(Chip(f'Progress: {format_percent(comment.progress)}', p.info_chip))
        if comment.updated_value is not None:
            chips.append(Chip(f'Updated: {format_value(comment.updated_value)}', p.ok_chip))
        if comment.status:
            chips.append(Chip(comment.status, p.status_chip, tag='chip:status'))
        return chips

    def comment_height(self, comment: Comment, width: float) -> float:
        s = self.style
        pad = s.comment_padding
        inner = width - 2 * pad
        body_lines = wrap_text(comment.text or '', s.fonts.body, s.body_size, inner)
        chips_height = self._chip_rows_height(self._chip_rows(self._comment_chips(comment), inner))
        return (
            pad
            + s.comment_header_height
            + 6.0
            + chips_height
            + len(body_lines) * s.leading(s.body_size)
            + pad
        )

    def _draw_comment(self, flow: _PageFlow, comment: Comment, x: float, width: float) -> None:
        s = self.style
        p = s.palette
        pad = s.comment_padding
        inner_x = x + pad
        inner_width = width - 2 * pad

        flow.ensure_space(min(self.comment_height(comment, width), s.usable_height))
        flow.open_card(x, width, padding=pad, radius=8, fill=p.comment_fill, tag='comment-card')

        radius = s.avatar_radius
        cy = flow.cursor + radius
        flow.draw(Circle(inner_x + radius, cy, radius, p.avatar_fill, tag='avatar'))
        self._centered_text(flow, comment.initials, inner_x + radius, cy, s.fonts.bold, 6.5, p.avatar_text, 'avatar')
        header_x = inner_x + 2 * radius + 6.0
        flow.draw(
            TextRun(
                header_x,
                flow.cursor + 2.0,
                fit_text(comment.header, s.fonts.bold, s.body_size, x + width - pad - header_x),
                s.fonts.bold,
                s.body_size,
                p.text,
                tag='comment-header',
            )
        )
        flow.cursor += s.comment_header_height + 6.0

        self._draw_chips(flow, self._comment_chips(comment), inner_x, inner_width)
        self._text_block(
            flow,
            comment.text or '',
            inner_x,
            inner_width,
            font=s.fonts.body,
            size=s.body_size,
            color=p.muted,
            tag='comment-text',
        )
        flow.close_card()
        flow.cursor += s.comment_gap

    def _draw_rating_details(self, flow: _PageFlow, panel: RatingDetailsPanel) -> None:
        s = self.style
        p = s.palette
        pad = s.card_padding
        x = s.margin_x + pad
        width = s.content_width - 2 * pad

        def draw(target: _PageFlow) -> None:
            target.open_card(
                s.margin_x,
                s.content_width,
                padding=pad,
                radius=s.card_radius,
                stroke=p.border,
                tag='rating-panel',
            )
            self._text_block(
                target,
                'Rating Details',
                x,
                width,
                font=s.fonts.bold,
                size=s.section_title_size,
                color=p.text,
                tag='section-title',
            )
            target.cursor += 4.0
            if panel.description:
                self._text_block(
                    target,
                    panel.description,
                    x,
                    width,
                    font=s.fonts.body,
                    size=s.body_size,
                    color=p.muted,
                )
                target.cursor += 4.0
            leading = s.leading(s.body_size)
            for label, value in panel.rows():
                target.ensure_space(leading)
                target.draw(TextRun(x, target.cursor, label, s.fonts.body, s.body_size, p.muted, tag='rating-label'))
                target.draw(
                    TextRun(
                        x + 110.0,
                        target.cursor,
                        fit_text(value, s.fonts.bold, s.body_size, width - 110.0),
                        s.fonts.bold,
                        s.body_size,
                        p.text,
                        tag='rating-value',
                    )
                )
                target.cursor += leading
            target.close_card()

        flow.ensure_space(min(self.measure(draw), s.usable_height))
        draw(flow)
        flow.cursor += s.section_gap

    def _draw_review(self, flow: _PageFlow, review: Review) -> None:
        s = self.style
        p = s.palette
        pad = s.card_padding
        x = s.margin_x + pad
        width = s.content_width - 2 * pad

        def draw(target: _PageFlow) -> None:
            target.open_card(
                s.margin_x,
                s.content_width,
                padding=pad,
                radius=s.card_radius,
                stroke=p.border,
                tag='review-card',
            )
            self._text_block(
                target,
                review.title,
                x,
                width,
                font=s.fonts.bold,
                size=s.section_title_size,
                color=p.text,
                tag='review-title',
            )
            target.cursor += 4.0
            if review.rating is not None:
                self._draw_chips(target, [self._rating_chip(review.rating)], x, width)
                target.cursor += 4.0
            if review.summary:
                self._text_block(
                    target,
                    review.summary,
                    x,
                    width,
                    font=s.fonts.body,
                    size=s.body_size,
                    color=p.muted,
                )
                target.cursor += 8.0
            for comment in review.comments:
                self._draw_comment(target, comment, x, width)
            target.close_card()

        if self.keep_sections_together:
            flow.ensure_space(min(self.measure(draw), s.usable_height))
        else:
            flow.ensure_space(s.section_min_height)
        draw(flow)
        flow.cursor += s.section_gap

    def _node_chips(self, node: HierarchyNode) -> list[Chip]:
        p = self.style.palette
        chips: list[Chip] = []
        if node.kpi_id:
            chips.append(Chip(f'KPI: {node.kpi_id}', p.label_chip, tag='chip:label'))
        category = ' / '.join(part for part in (node.category_name, node.category_type) if part)
        if category:
            chips.append(Chip(category, p.label_chip, tag='chip:label'))
        if node.weightage is not None:
            chips.append(Chip(f'Weightage: {format_value(node.weightage)}', p.info_chip))
        if node.progress is not None:
            chips.append(Chip(f'Progress: {format_percent(node.progress)}', p.ok_chip))
        if node.rating is not None:
            chips.append(self._rating_chip(node.rating))
        if node.priority:
            chips.append(Chip(node.priority, p.priority_chip, tag='chip:priority'))
        if node.status:
            chips.append(Chip(node.status, p.status_chip, tag='chip:status'))
        return chips

    def _node_box(self, flow: _PageFlow, node: HierarchyNode, index: int, x: float, width: float) -> None:
        s = self.style
        p = s.palette
        pad = s.node_padding
        inner_x = x + pad
        inner_width = width - 2 * pad

        flow.open_card(
            x,
            width,
            padding=pad,
            radius=8,
            fill=p.node_fill,
            stroke=p.border,
            tag='hierarchy-node',
        )

        badge = s.badge_size
        title_x = inner_x + badge + 6.0
        title_width = x + width - pad - title_x
        title_lines = wrap_text(node.title, s.fonts.bold, 11, title_width) or ['']
        flow.ensure_space(max(badge, len(title_lines) * s.leading(11)))
        cy = flow.cursor + badge / 2
        flow.draw(Circle(inner_x + badge / 2, cy, badge / 2, p.tab_active, tag='node-badge'))
        self._centered_text(flow, str(index), inner_x + badge / 2, cy, s.fonts.bold, 8, p.primary, 'node-index')
        heading_top = flow.cursor
        self._text_block(flow, node.title, title_x, title_width, font=s.fonts.bold, size=11, color=p.text, tag='node-title')
        flow.cursor = max(flow.cursor, heading_top + badge) + 2.0

        if node.date:
            self._text_block(flow, node.date, title_x, title_width, font=s.fonts.body, size=9, color=p.muted, tag='node-date')
        flow.cursor += 2.0

        self._draw_chips(flow, self._node_chips(node), inner_x, inner_width)

        if node.description:
            self._text_block(
                flow,
                node.description,
                inner_x,
                inner_width,
                font=s.fonts.body,
                size=s.body_size,
                color=p.muted,
            )
            flow.cursor += 4.0

        for comment in node.comments:
            self._draw_comment(flow, comment, inner_x, inner_width)

        flow.close_card()

    def _draw_hierarchy(self, flow: _PageFlow, nodes: list[HierarchyNode]) -> None:
        s = self.style
        stack = [_StackItem(node, 0, index) for index, node in reversed(list(enumerate(nodes, start=1)))]
        while stack:
            item = stack.pop()
            indent = min(item.depth * s.hierarchy_indent, s.content_width - s.min_node_width)
            x = s.margin_x + indent
            width = s.content_width - indent

            if item.node is None:
                note = f'{item.omitted} nested {"item" if item.omitted == 1 else "items"} omitted'
                self._text_block(flow, note, x, width, font=s.fonts.body, size=9, color=s.palette.muted, tag='omitted')
                flow.cursor += s.node_gap
                continue

            node = item.node
            need = self.measure(lambda probe: self._node_box(probe, node, item.index, x, width))
            flow.ensure_space(min(need, s.usable_height))
            self._node_box(flow, node, item.index, x, width)
            flow.cursor += s.node_gap

            if not node.children:
                continue
            if item.depth + 1 >= self.max_depth:
                omitted = count_nodes(node.children)
                logger.warning('Hierarchy deeper than %s levels; omitting %s nested nodes', self.max_depth, omitted)
                stack.append(_StackItem(None, item.depth + 1, 0, omitted=omitted))
                continue
            stack.extend(
                _StackItem(child, item.depth + 1, index)
                for index, child in reversed(list(enumerate(node.children, start=1)))
            )

    def _draw_end_marker(self, flow: _PageFlow, text: str) -> None:
        s = self.style
        p = s.palette
        flow.ensure_space(12.0 + s.leading(9) + 6.0)
        flow.cursor += 6.0
        flow.draw(Line(s.margin_x, flow.cursor, s.margin_x + s.content_width, flow.cursor, p.border, tag='end-marker'))
        flow.cursor += 6.0
        label = fit_text(text, s.fonts.body, 9, s.content_width)
        width = text_width(label, s.fonts.body, 9)
        flow.draw(TextRun(s.margin_x + (s.content_width - width) / 2, flow.cursor, label, s.fonts.body, 9, p.muted, tag='end-marker'))
        flow.cursor += s.leading(9) + 6.0
