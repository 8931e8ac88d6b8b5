from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from hrmsreport.config import get_settings
from hrmsreport.types import AppraisalDocument


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    for name in ('HRMS_RENDERER', 'APPRAISAL_RENDERER', 'HRMS_MAX_HIERARCHY_DEPTH', 'HRMS_LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def chain(depth: int, prefix: str = 'Level') -> dict[str, Any]:
    node: dict[str, Any] = {'title': f'{prefix} {depth - 1}'}
    for level in range(depth - 2, -1, -1):
        node = {'title': f'{prefix} {level}', 'children': [node]}
    return node


@pytest.fixture
def scenario_payload() -> dict[str, Any]:
    return {
        'meta': {
            'reportTitle': 'Assessment Stage',
            'employee': {'name': 'James Major', 'code': 'EMP-1042', 'title': 'Developer'},
        },
        'tabs': [
            {
                'id': 'job',
                'label': 'Job Competencies',
                'sections': [
                    {
                        'title': 'Manage Relationships',
                        'weightage': 80,
                        'rating': 5.0,
                        'comments': [
                            {
                                'author': 'James Major',
                                'role': 'Developer',
                                'step': 'User Comment',
                                'text': 'Worked closely with QA on the release train.',
                            },
                            {
                                'author': 'Millard Atkins',
                                'role': 'Reporting Manager',
                                'step': 'RM Comment',
                                'text': 'Keeps every stakeholder informed.',
                            },
                        ],
                    }
                ],
            }
        ],
    }


@pytest.fixture
def scenario_document(scenario_payload) -> AppraisalDocument:
    return AppraisalDocument.model_validate(scenario_payload)


@pytest.fixture
def multi_tab_document() -> AppraisalDocument:
    long_text = 'word ' * 400
    sections = [
        {
            'title': f'Competency {index}',
            'weightage': 10,
            'description': long_text,
            'comments': [{'author': 'Reviewer', 'role': 'Manager', 'step': 'RM Comment', 'text': long_text}],
        }
        for index in range(4)
    ]
    return AppraisalDocument.model_validate(
        {
            'meta': {'reportTitle': 'Annual Review', 'employee': {'name': 'Ada Lovelace'}},
            'tabs': [
                {'id': 'job', 'label': 'Job Competencies', 'sections': sections},
                {'id': 'goals', 'label': 'Goals', 'hierarchy': [chain(3, 'Goal')]},
                {'id': 'empty', 'label': 'Empty'},
            ],
        }
    )


@pytest.fixture
def write_json(tmp_path: Path):
    def _write(payload: Any, name: str = 'input.json') -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding='utf-8')
        return path

    return _write
