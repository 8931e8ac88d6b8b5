from __future__ import annotations

from pathlib import Path

import pytest
from pypdf import PdfReader

import main
from hrmsreport.config import Settings, get_settings
from hrmsreport.report import browser_export
from hrmsreport.runner import generate_pdf

SAMPLE = Path(__file__).resolve().parent.parent / 'sample-data.json'


def test_generate_vector_pdf(tmp_path, scenario_payload, write_json):
    output = tmp_path / 'out' / 'report.pdf'
    result = generate_pdf(write_json(scenario_payload), output, settings=Settings())

    assert result == output.resolve()
    assert len(PdfReader(str(result)).pages) == 1
    assert not list(output.parent.glob('*.tmp'))


def test_sample_data_renders(tmp_path):
    result = generate_pdf(SAMPLE, tmp_path / 'sample.pdf', renderer='vector', settings=Settings())
    reader = PdfReader(str(result))

    assert len(reader.pages) >= 3
    assert [item.title for item in reader.outline] == ['Job Competencies', 'Goals', 'Final Review']


def test_unknown_renderer(tmp_path, scenario_payload, write_json):
    with pytest.raises(ValueError, match='Unknown renderer'):
        generate_pdf(write_json(scenario_payload), tmp_path / 'x.pdf', renderer='svg', settings=Settings())


def test_html_renderer_hands_markup_to_browser(tmp_path, scenario_payload, write_json, monkeypatch):
    calls = []

    def fake_render(markup, output_path, *, settings=None):
        calls.append((markup, output_path))
        output_path.write_bytes(b'%PDF-1.4\n')
        return output_path

    monkeypatch.setattr(browser_export, 'render_markup_pdf', fake_render)
    result = generate_pdf(write_json(scenario_payload), tmp_path / 'html.pdf', renderer='html', settings=Settings())

    (markup, target), = calls
    assert target == result
    assert 'Manage Relationships' in markup
    assert result.read_bytes().startswith(b'%PDF')


def test_renderer_from_environment(tmp_path, scenario_payload, write_json, monkeypatch):
    monkeypatch.setenv('HRMS_RENDERER', 'html')
    seen = []
    monkeypatch.setattr(
        browser_export,
        'render_markup_pdf',
        lambda markup, output_path, *, settings=None: seen.append(output_path) or output_path,
    )

    generate_pdf(write_json(scenario_payload), tmp_path / 'env.pdf')
    assert seen == [(tmp_path / 'env.pdf').resolve()]


def test_settings_sources(monkeypatch):
    assert Settings().renderer == 'vector'
    assert Settings(renderer='html').renderer == 'html'

    monkeypatch.setenv('APPRAISAL_RENDERER', 'html')
    monkeypatch.setenv('HRMS_MAX_HIERARCHY_DEPTH', '5')
    settings = get_settings()
    assert settings.renderer == 'html'
    assert settings.max_hierarchy_depth == 5
    assert get_settings() is settings


def test_cli_success(tmp_path, scenario_payload, write_json, capsys):
    output = tmp_path / 'cli.pdf'
    code = main.main(['-i', str(write_json(scenario_payload)), '-o', str(output)])

    assert code == 0
    assert output.exists()
    assert capsys.readouterr().out.strip() == f'PDF generated: {output.resolve()}'


def test_cli_missing_input(tmp_path, capsys):
    code = main.main(['--input', str(tmp_path / 'missing.json'), '--output', str(tmp_path / 'x.pdf')])

    assert code == 1
    assert capsys.readouterr().err.startswith('Error:')
    assert not (tmp_path / 'x.pdf').exists()


def test_cli_invalid_json(tmp_path, capsys):
    source = tmp_path / 'bad.json'
    source.write_text('{not json', encoding='utf-8')

    assert main.main(['-i', str(source), '-o', str(tmp_path / 'x.pdf')]) == 1
    assert 'Error:' in capsys.readouterr().err


def test_cli_defaults_come_from_settings(monkeypatch):
    monkeypatch.setenv('HRMS_DEFAULT_OUTPUT', 'custom.pdf')
    get_settings.cache_clear()
    args = main.build_parser().parse_args([])

    assert args.input == 'sample-data.json'
    assert args.output == 'custom.pdf'
