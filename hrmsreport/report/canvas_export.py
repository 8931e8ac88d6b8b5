from __future__ import annotations

import io
import logging
import math

from reportlab.lib import colors
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfgen.canvas import Canvas

from .commands import (
    Circle,
    DrawCommand,
    FillRect,
    Line,
    LinkArea,
    RenderedLayout,
    RoundRect,
    Star,
    TextRun,
)


logger = logging.getLogger(__name__)

PRODUCER = 'hrms-report'


def _safe_canvas_font(canvas: Canvas, font_name: str, size: float) -> str:
    for candidate in (str(font_name or '').strip(), 'Helvetica'):
        if not candidate:
            continue
        try:
            canvas.setFont(candidate, size)
            return candidate
        except Exception:
            continue
    return 'Helvetica'


def _star_points(cx: float, cy: float, radius: float) -> list[tuple[float, float]]:
    inner = radius * 0.45
    points: list[tuple[float, float]] = []
    for step in range(10):
        angle = math.pi / 2 + step * math.pi / 5
        r = radius if step % 2 == 0 else inner
        points.append((cx + r * math.cos(angle), cy + r * math.sin(angle)))
    return points


def _draw_command(canvas: Canvas, command: DrawCommand, page_height: float) -> None:
    if isinstance(command, FillRect):
        canvas.setFillColor(colors.HexColor(command.color))
        canvas.rect(
            command.x,
            page_height - command.y - command.height,
            command.width,
            command.height,
            stroke=0,
            fill=1,
        )
    elif isinstance(command, RoundRect):
        if command.fill:
            canvas.setFillColor(colors.HexColor(command.fill))
        if command.stroke:
            canvas.setStrokeColor(colors.HexColor(command.stroke))
            canvas.setLineWidth(command.line_width)
        radius = max(0.0, min(command.radius, command.width / 2, command.height / 2))
        canvas.roundRect(
            command.x,
            page_height - command.y - command.height,
            command.width,
            command.height,
            radius,
            stroke=1 if command.stroke else 0,
            fill=1 if command.fill else 0,
        )
    elif isinstance(command, Line):
        canvas.setStrokeColor(colors.HexColor(command.color))
        canvas.setLineWidth(command.width)
        canvas.line(command.x1, page_height - command.y1, command.x2, page_height - command.y2)
    elif isinstance(command, TextRun):
        font = _safe_canvas_font(canvas, command.font, command.size)
        canvas.setFillColor(colors.HexColor(command.color))
        baseline = page_height - command.y - pdfmetrics.getAscent(font, command.size)
        canvas.drawString(command.x, baseline, command.text)
    elif isinstance(command, Star):
        canvas.setFillColor(colors.HexColor(command.color))
        path = canvas.beginPath()
        points = _star_points(command.cx, page_height - command.cy, command.radius)
        path.moveTo(*points[0])
        for point in points[1:]:
            path.lineTo(*point)
        path.close()
        canvas.drawPath(path, stroke=0, fill=1)
    elif isinstance(command, Circle):
        canvas.setFillColor(colors.HexColor(command.fill))
        canvas.circle(command.cx, page_height - command.cy, command.radius, stroke=0, fill=1)
    else:
        raise TypeError(f'unsupported draw command: {type(command).__name__}')


def _supports_named_destinations(canvas: Canvas) -> bool:
    return all(hasattr(canvas, name) for name in ('bookmarkPage', 'linkAbsolute', 'addOutlineEntry'))


def _register_destination(canvas: Canvas, destination: str, label: str) -> bool:
    try:
        canvas.bookmarkPage(destination)
    except Exception as exc:
        logger.debug('Failed to register named destination %s: %s', destination, exc)
        return False
    try:
        canvas.addOutlineEntry(label, destination, level=0)
    except Exception as exc:
        logger.debug('Failed to add outline entry for %s: %s', destination, exc)
    return True


def _insert_named_link(canvas: Canvas, link: LinkArea, destination: str, page_height: float) -> None:
    rect = (
        link.x,
        page_height - link.y - link.height,
        link.x + link.width,
        page_height - link.y,
    )
    try:
        canvas.linkAbsolute('', destination, Rect=rect, thickness=0)
    except Exception as exc:
        logger.debug('Failed to insert link to %s: %s', destination, exc)


def _paint(
    layout: RenderedLayout,
    *,
    title: str,
    author: str,
    page_jump_tabs: set[int],
) -> tuple[bytes | None, set[int]]:
    buffer = io.BytesIO()
    canvas = Canvas(buffer, pagesize=(layout.page_width, layout.page_height))
    canvas.setTitle(title)
    canvas.setAuthor(author)
    canvas.setSubject('Performance appraisal')
    canvas.setProducer(PRODUCER)

    supported = _supports_named_destinations(canvas)
    failed: set[int] = set() if supported else set(layout.tab_first_pages)

    for page in layout.pages:
        for command in page.commands:
            _draw_command(canvas, command, layout.page_height)

        if supported:
            for tab_index in layout.tabs_starting_on(page.index):
                destination = layout.destinations[tab_index]
                if not _register_destination(canvas, destination, layout.tab_labels[tab_index]):
                    failed.add(tab_index)

            for link in page.links:
                if link.target_tab in page_jump_tabs:
                    continue
                _insert_named_link(canvas, link, layout.destinations[link.target_tab], layout.page_height)

        canvas.showPage()

    if failed - page_jump_tabs:
        # Links were already bound to destinations that never got defined.
        return None, failed

    if supported:
        canvas.showOutline()
    canvas.save()
    return buffer.getvalue(), failed


def _insert_internal_link(page, *, from_rect, target_page_index: int | None) -> None:
    if target_page_index is None:
        return

    try:
        import pymupdf as fitz

        page.insert_link(
            {
                'kind': fitz.LINK_GOTO,
                'from': from_rect,
                'page': int(target_page_index),
                'to': fitz.Point(0.0, 0.0),
                'zoom': 0.0,
            }
        )
    except Exception as exc:
        logger.debug('Failed to insert internal PDF link: %s', exc)


def _apply_page_jump_fallback(pdf_bytes: bytes, layout: RenderedLayout, tabs: set[int]) -> bytes:
    try:
        import pymupdf as fitz
    except Exception as exc:
        logger.debug('PyMuPDF unavailable for page-jump links: %s', exc)
        return pdf_bytes

    doc = None
    try:
        doc = fitz.open(stream=pdf_bytes, filetype='pdf')
        for page_layout in layout.pages:
            page = doc.load_page(page_layout.index)
            for link in page_layout.links:
                if link.target_tab not in tabs:
                    continue
                _insert_internal_link(
                    page,
                    from_rect=fitz.Rect(link.x, link.y, link.x + link.width, link.y + link.height),
                    target_page_index=layout.tab_first_pages.get(link.target_tab),
                )

        toc = [
            [1, layout.tab_labels[tab_index], first_page + 1]
            for tab_index, first_page in sorted(layout.tab_first_pages.items())
        ]
        try:
            doc.set_toc(toc)
        except Exception as exc:
            logger.debug('Failed to rebuild PDF outline: %s', exc)

        return doc.tobytes(garbage=3, deflate=True)
    except Exception as exc:
        logger.debug('Failed to apply page-jump navigation: %s', exc)
        return pdf_bytes
    finally:
        if doc is not None:
            doc.close()


def paint_layout(layout: RenderedLayout, *, title: str, author: str = '') -> bytes:
    page_jump_tabs: set[int] = set()
    while True:
        pdf_bytes, failed = _paint(layout, title=title, author=author, page_jump_tabs=page_jump_tabs)
        if pdf_bytes is not None:
            break
        logger.debug('Named destinations unavailable for tabs %s; using page jumps', sorted(failed))
        page_jump_tabs |= failed

    if failed:
        pdf_bytes = _apply_page_jump_fallback(pdf_bytes, layout, failed)
    return pdf_bytes
