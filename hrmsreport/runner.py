from __future__ import annotations

import logging
from pathlib import Path

from .config import Settings, get_settings
from .report.canvas_export import paint_layout
from .report.layout import LayoutEngine
from .report.markup import build_markup
from .storage import load_document, write_bytes_atomic
from .types import AppraisalDocument


logger = logging.getLogger(__name__)

RENDERERS = ('vector', 'html')


def render_vector_pdf(document: AppraisalDocument, *, settings: Settings) -> bytes:
    engine = LayoutEngine(
        keep_sections_together=settings.keep_sections_together,
        max_depth=settings.max_hierarchy_depth,
    )
    layout = engine.render(document)
    logger.info('Vector layout produced %s pages', len(layout.pages))
    return paint_layout(
        layout,
        title=document.meta.report_title,
        author=settings.pdf_author,
    )


def render_html_pdf(document: AppraisalDocument, output_path: Path, *, settings: Settings) -> Path:
    # Playwright is only needed for this renderer.
    from .report.browser_export import render_markup_pdf

    markup = build_markup(document, max_depth=settings.max_hierarchy_depth)
    return render_markup_pdf(markup, output_path, settings=settings)


def generate_pdf(
    input_path: Path | str,
    output_path: Path | str,
    *,
    renderer: str | None = None,
    settings: Settings | None = None,
) -> Path:
    settings = settings or get_settings()
    renderer = (renderer or settings.renderer).strip().lower()
    if renderer not in RENDERERS:
        raise ValueError(f'Unknown renderer: {renderer} (expected one of {", ".join(RENDERERS)})')

    source = Path(input_path).expanduser().resolve()
    target = Path(output_path).expanduser().resolve()

    document = load_document(source)
    logger.info('Loaded %s tabs from %s', len(document.tabs), source)

    if renderer == 'vector':
        write_bytes_atomic(target, render_vector_pdf(document, settings=settings))
    else:
        render_html_pdf(document, target, settings=settings)

    return target
