from __future__ import annotations

import html
import logging
from typing import Any

from ..types import (
    AppraisalDocument,
    Comment,
    Employee,
    HierarchyNode,
    RatingDetailsPanel,
    Review,
    Section,
    count_nodes,
    format_percent,
    format_rating,
    format_value,
)
from .styles import DEFAULT_MAX_DEPTH, NO_CONTENT_TEXT, Palette


logger = logging.getLogger(__name__)

HIERARCHY_INDENT_PX = 18


def _escape(value: Any) -> str:
    if value is None:
        return ''
    return html.escape(str(value), quote=False)


def _escape_attr(value: Any) -> str:
    return html.escape(str(value or ''), quote=True)


def build_css(palette: Palette) -> str:
    return f'''
  * {{ box-sizing: border-box; }}
  body {{ font-family: Inter, Arial, Helvetica, sans-serif; color: {palette.text}; background: {palette.background}; margin: 0; }}
  .page {{ width: 210mm; min-height: 297mm; padding: 18mm; margin: 0 auto; position: relative; }}
  .page + .page {{ page-break-before: always; }}

  .title {{ font-size: 18px; font-weight: 700; margin: 0 0 8px; }}
  .muted {{ color: {palette.muted}; }}
  .divider {{ height: 1px; background: {palette.border}; margin: 6px 0 10px; }}
  .header {{ margin-bottom: 8px; }}
  .identity {{ display: flex; align-items: center; gap: 8px; }}

  .avatar {{ width: 24px; height: 24px; border-radius: 999px; object-fit: cover; flex: none; }}
  .avatar.initials {{ display: inline-flex; align-items: center; justify-content: center; background: {palette.avatar_fill}; color: {palette.avatar_text}; font-size: 10px; font-weight: 700; }}

  .tabs {{ display: flex; flex-wrap: wrap; gap: 6px; background: {palette.tab_bar}; border-radius: 8px; padding: 6px; margin-top: 6px; }}
  .tab {{ display: inline-flex; align-items: center; justify-content: center; padding: 6px 10px; font-weight: 600; font-size: 11px; border-radius: 8px; color: {palette.muted}; min-width: 28mm; text-decoration: none; background: {palette.tab_inactive}; border: 1px solid {palette.border}; }}
  .tab.active {{ color: {palette.primary}; background: {palette.tab_active}; border-color: #D1D5DB; }}

  .tab-heading {{ font-size: 14px; margin: 10px 0; color: {palette.text}; }}

  .card {{ border: 1px solid {palette.border}; border-radius: 12px; padding: 14px; margin-bottom: 14px; break-inside: avoid; }}
  .card h3 {{ margin: 0 0 6px; font-size: 14px; }}
  .row {{ display: flex; flex-wrap: wrap; gap: 6px; margin: 4px 0 10px; }}

  .chip {{ display: inline-flex; align-items: center; gap: 6px; height: 20px; padding: 0 8px; border-radius: 999px; font-size: 10px; font-weight: 600; }}
  .chip.info {{ background: {palette.info_chip.background}; color: {palette.info_chip.foreground}; }}
  .chip.ok {{ background: {palette.ok_chip.background}; color: {palette.ok_chip.foreground}; }}
  .chip.rate {{ background: {palette.rating_chip.background}; color: {palette.rating_chip.foreground}; }}
  .chip.label {{ background: {palette.label_chip.background}; color: {palette.label_chip.foreground}; }}
  .chip.status {{ background: {palette.status_chip.background}; color: {palette.status_chip.foreground}; }}
  .chip.priority {{ background: {palette.priority_chip.background}; color: {palette.priority_chip.foreground}; }}
  .star {{ color: {palette.star}; font-size: 12px; }}

  .para {{ color: {palette.muted}; font-size: 11px; line-height: 1.5; margin: 0 0 8px; text-align: justify; }}
  .para.heading {{ color: {palette.text}; }}

  .comment {{ background: {palette.comment_fill}; border-radius: 8px; padding: 10px; margin-top: 8px; break-inside: avoid; }}
  .comment .hdr {{ display: flex; align-items: center; gap: 8px; font-weight: 700; font-size: 11px; color: {palette.text}; margin-bottom: 4px; }}
  .comment .txt {{ color: {palette.muted}; font-size: 11px; }}

  .rating-panel {{ border: 1px solid {palette.border}; border-radius: 12px; padding: 14px; margin-bottom: 14px; }}
  .rating-panel dl {{ display: grid; grid-template-columns: max-content 1fr; gap: 4px 12px; margin: 8px 0 0; font-size: 11px; }}
  .rating-panel dt {{ color: {palette.muted}; }}

  .review {{ border: 1px dashed {palette.border}; border-radius: 12px; padding: 14px; margin-bottom: 14px; }}

  .hierarchy {{ margin-top: 8px; }}
  .node {{ border: 1px solid {palette.border}; border-radius: 8px; padding: 8px; margin-top: 6px; background: {palette.node_fill}; break-inside: avoid; }}
  .node .node-head {{ display: flex; align-items: center; gap: 8px; font-weight: 700; font-size: 12px; }}
  .node .index {{ display: inline-flex; align-items: center; justify-content: center; min-width: 18px; height: 18px; border-radius: 999px; background: {palette.tab_active}; color: {palette.primary}; font-size: 10px; }}
  .node-children {{ margin-top: 4px; }}
  .omitted {{ font-size: 10px; margin-top: 4px; }}

  .end-marker {{ text-align: center; color: {palette.muted}; font-size: 10px; margin: 12px 0; border-top: 1px solid {palette.border}; padding-top: 6px; }}
  .footer {{ position: absolute; bottom: 12mm; right: 18mm; color: {palette.muted}; font-size: 10px; }}
  '''


def _avatar(src: str | None, initials: str) -> str:
    if src:
        return f'<img class="avatar" src="{_escape_attr(src)}" alt="{_escape_attr(initials)}" />'
    return f'<span class="avatar initials">{_escape(initials)}</span>'


def _chip(text: str, kind: str) -> str:
    return f'<span class="chip {kind}">{_escape(text)}</span>'


def _rating_chip(rating: Any) -> str:
    return f'<span class="chip rate"><span class="star">★</span> {_escape(format_rating(rating))}</span>'


def _chip_row(chips: list[str]) -> str:
    if not chips:
        return ''
    return f'<div class="row">{"".join(chips)}</div>'


def _paragraph(text: str | None) -> str:
    if not text:
        return ''
    return f'<p class="para">{_escape(text)}</p>'


def _header(document: AppraisalDocument) -> str:
    meta = document.meta
    employee: Employee = meta.employee
    return (
        '<div class="title">'
        f'{_escape(meta.report_title)}'
        '</div>'
        '<div class="identity">'
        f'{_avatar(employee.avatar, employee.initials) if employee.name or employee.avatar else ""}'
        f'<div class="muted">{_escape(employee.info_line)}</div>'
        '</div>'
        '<div class="divider"></div>'
    )


def _tab_bar(document: AppraisalDocument, active_index: int) -> str:
    pills = []
    for index in range(len(document.tabs)):
        active = ' active' if index == active_index else ''
        pills.append(
            f'<a class="tab{active}" href="#{document.tab_anchor(index)}">'
            f'{_escape(document.tab_label(index))}</a>'
        )
    return f'<nav class="tabs">{"".join(pills)}</nav>'


def _comment_chips(comment: Comment) -> list[str]:
    chips: list[str] = []
    if comment.rating is not None:
        chips.append(_rating_chip(comment.rating))
    if comment.progress is not None:
        chips.append(_chip(f'Progress: {format_percent(comment.progress)}', 'info'))
    if comment.updated_value is not None:
        chips.append(_chip(f'Updated: {format_value(comment.updated_value)}', 'ok'))
    if comment.status:
        chips.append(_chip(comment.status, 'status'))
    return chips


def _comment(comment: Comment) -> str:
    header = ' • '.join(
        _escape(part) for part in (comment.author or 'User', comment.role or '', comment.step or '')
    )
    return (
        '<div class="comment">'
        f'<div class="hdr">{_avatar(comment.avatar, comment.initials)}<span>{header}</span></div>'
        f'{_chip_row(_comment_chips(comment))}'
        f'<div class="txt">{_escape(comment.text or "")}</div>'
        '</div>'
    )


def _section(section: Section) -> str:
    chips: list[str] = []
    if section.weightage is not None:
        chips.append(_chip(f'Weightage: {format_value(section.weightage)}', 'info'))
    if section.expected_rating is not None:
        chips.append(_chip(f'Expected: {format_value(section.expected_rating)}', 'ok'))
    if section.rating is not None:
        chips.append(_rating_chip(section.rating))
    chips.extend(_chip(label, 'label') for label in section.labels)

    behaviors = ''
    if section.behaviors:
        behaviors = (
            '<div class="para heading"><strong>Behaviors</strong></div>'
            + ''.join(f'<p class="para">• {_escape(item)}</p>' for item in section.behaviors)
        )

    return (
        '<section class="card">'
        f'<h3>{_escape(section.title)}</h3>'
        f'{_chip_row(chips)}'
        f'{_paragraph(section.description)}'
        f'{behaviors}'
        f'{"".join(_comment(comment) for comment in section.comments)}'
        '</section>'
    )


def _review(review: Review) -> str:
    chips = [_rating_chip(review.rating)] if review.rating is not None else []
    return (
        '<section class="review">'
        f'<h3>{_escape(review.title)}</h3>'
        f'{_chip_row(chips)}'
        f'{_paragraph(review.summary)}'
        f'{"".join(_comment(comment) for comment in review.comments)}'
        '</section>'
    )


def _rating_details(panel: RatingDetailsPanel) -> str:
    rows = ''.join(f'<dt>{_escape(label)}</dt><dd>{_escape(value)}</dd>' for label, value in panel.rows())
    return (
        '<section class="rating-panel">'
        '<h3>Rating Details</h3>'
        f'{_paragraph(panel.description)}'
        f'<dl>{rows}</dl>'
        '</section>'
    )


def _node_chips(node: HierarchyNode) -> list[str]:
    chips: list[str] = []
    if node.kpi_id:
        chips.append(_chip(f'KPI: {node.kpi_id}', 'label'))
    category = ' / '.join(part for part in (node.category_name, node.category_type) if part)
    if category:
        chips.append(_chip(category, 'label'))
    if node.weightage is not None:
        chips.append(_chip(f'Weightage: {format_value(node.weightage)}', 'info'))
    if node.progress is not None:
        chips.append(_chip(f'Progress: {format_percent(node.progress)}', 'ok'))
    if node.rating is not None:
        chips.append(_rating_chip(node.rating))
    if node.priority:
        chips.append(_chip(node.priority, 'priority'))
    if node.status:
        chips.append(_chip(node.status, 'status'))
    return chips


def _omitted_note(count: int) -> str:
    noun = 'item' if count == 1 else 'items'
    return f'<div class="omitted muted">{count} nested {noun} omitted</div>'


def _hierarchy_nodes(nodes: list[HierarchyNode], *, depth: int, max_depth: int) -> str:
    if depth >= max_depth:
        omitted = count_nodes(nodes)
        logger.warning('Hierarchy deeper than %s levels; omitting %s nested nodes', max_depth, omitted)
        return _omitted_note(omitted)

    parts: list[str] = []
    for index, node in enumerate(nodes, start=1):
        date = f'<span class="muted">{_escape(node.date)}</span>' if node.date else ''
        children = ''
        if node.children:
            children = (
                '<div class="node-children">'
                f'{_hierarchy_nodes(node.children, depth=depth + 1, max_depth=max_depth)}'
                '</div>'
            )
        parts.append(
            f'<div class="node" data-depth="{depth}" style="margin-left: {depth * HIERARCHY_INDENT_PX}px">'
            '<div class="node-head">'
            f'<span class="index">{index}</span>'
            f'<span>{_escape(node.title)}</span>'
            f'{date}'
            '</div>'
            f'{_chip_row(_node_chips(node))}'
            f'{_paragraph(node.description)}'
            f'{"".join(_comment(comment) for comment in node.comments)}'
            '</div>'
            f'{children}'
        )
    return ''.join(parts)


def _tab_page(document: AppraisalDocument, index: int, *, max_depth: int) -> str:
    tab = document.tabs[index]
    content: list[str] = []

    if index == 0 and document.rating_details is not None:
        content.append(_rating_details(document.rating_details))

    if tab.has_content:
        content.extend(_section(section) for section in tab.sections)
    else:
        content.append(f'<div class="muted placeholder">{NO_CONTENT_TEXT}</div>')

    if tab.review is not None:
        content.append(_review(tab.review))

    if tab.hierarchy:
        content.append(
            '<div class="hierarchy">'
            f'{_hierarchy_nodes(tab.hierarchy, depth=0, max_depth=max_depth)}'
            '</div>'
        )

    if tab.end_marker:
        content.append(f'<div class="end-marker">{_escape(tab.end_marker)}</div>')

    return (
        f'<div class="page" id="{document.tab_anchor(index)}">'
        '<div class="header">'
        f'{_header(document)}'
        f'{_tab_bar(document, index)}'
        '</div>'
        f'<h2 class="tab-heading">{_escape(document.tab_label(index))}</h2>'
        f'<div class="content">{"".join(content)}</div>'
        f'<div class="footer">Tab {index + 1} / {len(document.tabs)}</div>'
        '</div>'
    )


def build_markup(
    document: AppraisalDocument,
    *,
    palette: Palette | None = None,
    max_depth: int | None = None,
) -> str:
    palette = palette or Palette()
    depth_cap = DEFAULT_MAX_DEPTH if max_depth is None else max(1, int(max_depth))
    report_title = _escape(document.meta.report_title)
    pages = ''.join(_tab_page(document, index, max_depth=depth_cap) for index in range(len(document.tabs)))

    return (
        '<!doctype html>\n'
        '<html>\n'
        '  <head>\n'
        '    <meta charset="utf-8" />\n'
        '    <meta name="viewport" content="width=device-width, initial-scale=1" />\n'
        f'    <title>{report_title}</title>\n'
        f'    <style>{build_css(palette)}</style>\n'
        '  </head>\n'
        '  <body>\n'
        f'    {pages}\n'
        '  </body>\n'
        '</html>\n'
    )
