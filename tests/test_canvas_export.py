from __future__ import annotations

import io
from dataclasses import replace

import pytest
from pypdf import PdfReader
from reportlab.pdfgen.canvas import Canvas

from hrmsreport.report.canvas_export import _draw_command, paint_layout
from hrmsreport.report.layout import LayoutEngine


def _reader(pdf_bytes: bytes) -> PdfReader:
    return PdfReader(io.BytesIO(pdf_bytes))


def _outline(reader: PdfReader) -> list[tuple[str, int]]:
    return [(item.title, reader.get_destination_page_number(item)) for item in reader.outline]


def _link_count(reader: PdfReader, page_index: int) -> int:
    annots = reader.pages[page_index].get('/Annots') or []
    return sum(1 for annot in annots if annot.get_object().get('/Subtype') == '/Link')


def test_scenario_pdf(scenario_document):
    layout = LayoutEngine().render(scenario_document)
    reader = _reader(paint_layout(layout, title='Assessment Stage', author='HRMS'))

    assert len(reader.pages) == 1
    assert reader.metadata.title == 'Assessment Stage'
    assert reader.metadata.author == 'HRMS'
    text = reader.pages[0].extract_text()
    assert 'Manage Relationships' in text
    assert '5.0' in text
    assert text.index('User Comment') < text.index('RM Comment')
    assert _outline(reader) == [('Job Competencies', 0)]


def test_outline_points_at_first_page_of_each_tab(multi_tab_document):
    layout = LayoutEngine().render(multi_tab_document)
    reader = _reader(paint_layout(layout, title='Annual Review'))

    assert len(reader.pages) == len(layout.pages)
    assert _outline(reader) == [
        ('Job Competencies', 0),
        ('Goals', layout.tab_first_pages[1]),
        ('Empty', layout.tab_first_pages[2]),
    ]
    for index in range(len(reader.pages)):
        assert _link_count(reader, index) == 3
        assert f'Page {index + 1}' in reader.pages[index].extract_text()


def test_page_jump_fallback_when_destinations_fail(multi_tab_document, monkeypatch):
    def broken_bookmark(self, key, **kwargs):
        raise RuntimeError('no named destinations')

    monkeypatch.setattr(Canvas, 'bookmarkPage', broken_bookmark)
    layout = LayoutEngine().render(multi_tab_document)
    reader = _reader(paint_layout(layout, title='Annual Review'))

    assert len(reader.pages) == len(layout.pages)
    for index in range(len(reader.pages)):
        assert _link_count(reader, index) == 3
    assert [title for title, _ in _outline(reader)] == ['Job Competencies', 'Goals', 'Empty']
    assert _outline(reader)[1][1] == layout.tab_first_pages[1]


def test_link_failures_do_not_abort_rendering(scenario_document, monkeypatch):
    def broken_link(self, *args, **kwargs):
        raise RuntimeError('annotations disabled')

    monkeypatch.setattr(Canvas, 'linkAbsolute', broken_link)
    layout = LayoutEngine().render(scenario_document)
    reader = _reader(paint_layout(layout, title='Assessment Stage'))

    assert len(reader.pages) == 1
    assert _link_count(reader, 0) == 0


def test_unknown_command_is_rejected():
    canvas = Canvas(io.BytesIO())
    with pytest.raises(TypeError):
        _draw_command(canvas, object(), 842.0)


def test_unknown_font_falls_back_to_helvetica(scenario_document):
    layout = LayoutEngine().render(scenario_document)
    page = layout.pages[0]
    footer = page.tagged('footer')[0]
    page.commands[page.commands.index(footer)] = replace(footer, font='NoSuchFont')

    reader = _reader(paint_layout(layout, title='Assessment Stage'))
    assert 'Page 1' in reader.pages[0].extract_text()
