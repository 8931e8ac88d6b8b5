from __future__ import annotations

import html
import logging
import re

from hrmsreport.report.markup import build_css, build_markup
from hrmsreport.report.styles import NO_CONTENT_TEXT, Palette
from hrmsreport.types import AppraisalDocument

from conftest import chain


def _markup(*tabs, **kwargs) -> str:
    extra = kwargs.pop('extra', {})
    return build_markup(AppraisalDocument.model_validate({'tabs': list(tabs), **extra}), **kwargs)


def _pages(markup: str) -> list[str]:
    return markup.split('<div class="page"')[1:]


def test_scenario_markup(scenario_document):
    markup = build_markup(scenario_document)
    (page,) = _pages(markup)

    assert markup.startswith('<!doctype html>')
    assert '<title>Assessment Stage</title>' in markup
    assert page.count('<a class="tab') == 1
    assert '<a class="tab active" href="#tab-0-job">Job Competencies</a>' in page
    assert '<span class="star">★</span> 5.0' in page
    assert 'Weightage: 80' in page
    assert page.count('class="comment"') == 2
    assert page.index('James Major • Developer • User Comment') < page.index(
        'Millard Atkins • Reporting Manager • RM Comment'
    )
    assert 'James Major • EMP-1042 • Developer' in page
    assert '<div class="footer">Tab 1 / 1</div>' in page


def test_user_text_is_escaped():
    payload = '<script>alert("x") & more</script>'
    markup = _markup(
        {
            'label': 'Tab <b>',
            'sections': [{'title': payload, 'comments': [{'author': payload, 'text': payload}]}],
        }
    )
    escaped = html.escape(payload, quote=False)

    assert '<script>' not in markup
    assert markup.count(escaped) == 3
    assert html.unescape(escaped) == payload
    assert 'Tab &lt;b&gt;' in markup


def test_every_page_has_full_nav_with_one_active_pill(multi_tab_document):
    markup = build_markup(multi_tab_document)
    pages = _pages(markup)

    assert len(pages) == 3
    anchors = ['#tab-0-job', '#tab-1-goals', '#tab-2-empty']
    for index, page in enumerate(pages):
        assert re.findall(r'<a class="tab(?: active)?" href="([^"]+)"', page) == anchors
        assert page.count('class="tab active"') == 1
        assert f'<a class="tab active" href="{anchors[index]}">' in page
        assert page.startswith(f' id="{anchors[index][1:]}"')


def test_empty_tab_shows_placeholder_only(multi_tab_document):
    page = _pages(build_markup(multi_tab_document))[2]

    assert page.count(NO_CONTENT_TEXT) == 1
    assert 'class="card"' not in page
    assert 'class="node"' not in page


def test_hierarchy_depth_and_indices():
    tree = [
        {'title': 'R1', 'children': [{'title': 'A', 'children': [{'title': 'C'}]}, {'title': 'B'}]},
        {'title': 'R2'},
    ]
    markup = _markup({'label': 'Goals', 'hierarchy': tree})

    assert re.findall(r'data-depth="(\d+)"', markup) == ['0', '1', '2', '1', '0']
    assert re.findall(r'<span class="index">(\d+)</span>', markup) == ['1', '1', '1', '2', '2']
    assert re.findall(r'margin-left: (\d+)px', markup) == ['0', '18', '36', '18', '0']


def test_hierarchy_depth_cap(caplog):
    caplog.set_level(logging.WARNING, logger='hrmsreport.report.markup')
    markup = _markup({'label': 'Goals', 'hierarchy': [chain(5)]}, max_depth=3)

    assert markup.count('class="node"') == 3
    assert '2 nested items omitted' in markup
    assert 'omitting 2 nested nodes' in caplog.text


def test_deep_hierarchy_uses_default_cap():
    markup = _markup({'label': 'Goals', 'hierarchy': [chain(40)]})

    assert markup.count('class="node"') == 32
    assert '8 nested items omitted' in markup


def test_rating_details_on_first_tab_only():
    markup = _markup(
        {'label': 'Job', 'sections': [{'title': 'A'}]},
        {'label': 'Goals', 'hierarchy': [{'title': 'G'}]},
        extra={'ratingDetails': {'score': 4.5, 'mappedLabel': 'Exceeds', 'description': 'Weighted'}},
    )
    first, second = _pages(markup)

    assert '<dt>Score</dt><dd>4.5</dd>' in first
    assert '<dt>Mapped Label</dt><dd>Exceeds</dd>' in first
    assert 'rating-panel' not in second


def test_section_review_and_end_marker():
    markup = _markup(
        {
            'label': 'Job',
            'sections': [
                {
                    'title': 'Drive Results',
                    'expectedRating': 4,
                    'labels': ['Core'],
                    'description': 'Delivers on commitments.',
                    'behaviors': ['Tracks progress'],
                    'comments': [{'author': None, 'text': 'Anonymous note', 'progress': 60, 'status': 'Done'}],
                }
            ],
            'review': {'title': 'Overall', 'rating': 4.25, 'summary': 'Strong year.'},
            'endMarker': 'End of Job',
        }
    )

    assert '<span class="chip ok">Expected: 4</span>' in markup
    assert '<span class="chip label">Core</span>' in markup
    assert '<strong>Behaviors</strong>' in markup
    assert '• Tracks progress' in markup
    assert '<span>User •  • </span>' in markup
    assert 'Progress: 60%' in markup
    assert '<span class="chip status">Done</span>' in markup
    assert '<section class="review"><h3>Overall</h3>' in markup
    assert '★</span> 4.3' in markup
    assert '<div class="end-marker">End of Job</div>' in markup


def test_avatar_url_is_attribute_escaped():
    markup = _markup(
        {'label': 'Job', 'sections': [{'title': 'A', 'comments': [{'author': 'Ann', 'avatar': 'a.png?x="1"'}]}]}
    )

    assert '<img class="avatar" src="a.png?x=&quot;1&quot;" alt="A" />' in markup


def test_css_uses_palette_colors():
    css = build_css(Palette(primary='#123456'))

    assert 'color: #123456' in css
    assert '.page + .page { page-break-before: always; }' in css


def test_document_without_tabs_has_no_pages():
    markup = build_markup(AppraisalDocument())

    assert _pages(markup) == []
    assert '<body>' in markup
