from __future__ import annotations

import pytest

from hrmsreport.config import Settings
from hrmsreport.report import browser_export


class FakePage:
    def __init__(self, log: list, fail: bool):
        self.log = log
        self.fail = fail

    async def set_content(self, markup, wait_until=None):
        self.log.append(('set_content', markup, wait_until))

    async def pdf(self, **options):
        if self.fail:
            raise RuntimeError('print failed')
        self.log.append(('pdf', options))


class FakeBrowser:
    def __init__(self, log: list, fail: bool):
        self.log = log
        self.fail = fail

    async def new_page(self):
        return FakePage(self.log, self.fail)

    async def close(self):
        self.log.append(('close',))


class FakeChromium:
    def __init__(self, log: list, fail: bool):
        self.log = log
        self.fail = fail

    async def launch(self, headless=True):
        self.log.append(('launch', headless))
        return FakeBrowser(self.log, self.fail)


class FakePlaywright:
    def __init__(self, log: list, fail: bool = False):
        self.chromium = FakeChromium(log, fail)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def browser_log(monkeypatch):
    log: list = []
    state = {'fail': False}
    monkeypatch.setattr(browser_export, 'async_playwright', lambda: FakePlaywright(log, state['fail']))
    return log, state


def test_markup_is_printed_to_a4_pdf(tmp_path, browser_log):
    log, _ = browser_log
    output = tmp_path / 'nested' / 'report.pdf'

    result = browser_export.render_markup_pdf('<html></html>', output, settings=Settings(browser_headless=False))

    assert result == output
    assert output.parent.is_dir()
    assert log[0] == ('launch', False)
    assert log[1] == ('set_content', '<html></html>', 'domcontentloaded')
    name, options = log[2]
    assert name == 'pdf'
    assert options['path'] == str(output)
    assert options['format'] == 'A4'
    assert options['print_background'] is True
    assert options['margin'] == browser_export.PDF_MARGINS
    assert log[-1] == ('close',)


def test_browser_is_closed_when_printing_fails(tmp_path, browser_log):
    log, state = browser_log
    state['fail'] = True

    with pytest.raises(RuntimeError, match='print failed'):
        browser_export.render_markup_pdf('<html></html>', tmp_path / 'report.pdf', settings=Settings())

    assert log[-1] == ('close',)
