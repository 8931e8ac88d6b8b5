from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

Number = int | float

_SLUG_STRIP = re.compile(r'[^a-z0-9]+')


class _InputModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore',
        frozen=True,
    )

    @model_validator(mode='before')
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # JSON null means the field is absent; fall back to its default.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        if data is None:
            return {}
        return data


class Employee(_InputModel):
    name: str | None = None
    code: str | None = None
    title: str | None = None
    avatar: str | None = None

    @property
    def info_line(self) -> str:
        return ' • '.join(part for part in (self.name, self.code, self.title) if part)

    @property
    def initials(self) -> str:
        words = [word for word in str(self.name or '').split() if word]
        if not words:
            return '?'
        return ''.join(word[0] for word in words[:2]).upper()


class ReportMeta(_InputModel):
    report_title: str = Field(default='Assessment Stage', alias='reportTitle')
    employee: Employee = Field(default_factory=Employee)


class Comment(_InputModel):
    author: str | None = None
    role: str | None = None
    avatar: str | None = None
    step: str | None = None
    text: str | None = None
    rating: Number | None = None
    progress: Number | None = None
    updated_value: Number | str | None = Field(default=None, alias='updatedValue')
    status: str | None = None

    @property
    def header(self) -> str:
        return '  •  '.join(part for part in (self.author, self.role, self.step) if part)

    @property
    def initials(self) -> str:
        return Employee(name=self.author).initials


class Section(_InputModel):
    title: str = ''
    weightage: Number | str | None = None
    expected_rating: Number | str | None = Field(default=None, alias='expectedRating')
    rating: Number | None = None
    description: str | None = None
    behaviors: list[str] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    labels: list[str] = Field(default_factory=list)


class Review(_InputModel):
    title: str = 'Review'
    rating: Number | None = None
    summary: str | None = None
    comments: list[Comment] = Field(default_factory=list)


class HierarchyNode(_InputModel):
    title: str = ''
    date: str | None = None
    kpi_id: str | None = Field(default=None, alias='kpiId')
    category_name: str | None = Field(default=None, alias='categoryName')
    category_type: str | None = Field(default=None, alias='categoryType')
    weightage: Number | str | None = None
    progress: Number | None = None
    rating: Number | None = None
    priority: str | None = None
    status: str | None = None
    description: str | None = None
    comments: list[Comment] = Field(default_factory=list)
    children: list[HierarchyNode] = Field(default_factory=list)


class Tab(_InputModel):
    id: str | None = None
    label: str | None = None
    sections: list[Section] = Field(default_factory=list)
    review: Review | None = None
    end_marker: str | None = Field(default=None, alias='endMarker')
    hierarchy: list[HierarchyNode] = Field(default_factory=list)

    @property
    def has_content(self) -> bool:
        return bool(self.sections or self.hierarchy)


class RatingDetailsPanel(_InputModel):
    description: str | None = None
    score: Number | str | None = None
    manual_rating: Number | str | None = Field(default=None, alias='manualRating')
    mapped_score: Number | str | None = Field(default=None, alias='mappedScore')
    mapped_label: str | None = Field(default=None, alias='mappedLabel')

    def rows(self) -> list[tuple[str, str]]:
        rows = [
            ('Score', self.score),
            ('Manual Rating', self.manual_rating),
            ('Mapped Score', self.mapped_score),
            ('Mapped Label', self.mapped_label),
        ]
        return [(label, format_value(value)) for label, value in rows if value is not None]


class AppraisalDocument(_InputModel):
    meta: ReportMeta = Field(default_factory=ReportMeta)
    tabs: list[Tab] = Field(default_factory=list)
    rating_details: RatingDetailsPanel | None = Field(default=None, alias='ratingDetails')

    def tab_label(self, index: int) -> str:
        tab = self.tabs[index]
        return str(tab.label or tab.id or f'Tab {index + 1}')

    def tab_anchor(self, index: int) -> str:
        tab = self.tabs[index]
        slug = _SLUG_STRIP.sub('-', str(tab.id or tab.label or 'sec').strip().lower()).strip('-')
        return f'tab-{index}-{slug or "sec"}'


def format_value(value: Number | str | None) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_rating(value: Number | str | None) -> str:
    if value is None:
        return ''
    try:
        return str(Decimal(str(value)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError):
        return str(value)


def format_percent(value: Number | None) -> str:
    if value is None:
        return ''
    return f'{format_value(value)}%'


def count_nodes(nodes: list[HierarchyNode]) -> int:
    total = 0
    stack = list(nodes)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.children)
    return total
