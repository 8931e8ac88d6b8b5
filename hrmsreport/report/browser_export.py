from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from playwright.async_api import async_playwright

from ..config import Settings, get_settings


logger = logging.getLogger(__name__)

PDF_MARGINS = {'top': '10mm', 'right': '10mm', 'bottom': '12mm', 'left': '10mm'}


async def export_markup_pdf(
    markup: str,
    output_path: Path,
    *,
    settings: Settings | None = None,
) -> Path:
    settings = settings or get_settings()
    output_path.parent.mkdir(parents=True, exist_ok=True)

    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=settings.browser_headless)
        try:
            page = await browser.new_page()
            await page.set_content(markup, wait_until='domcontentloaded')
            await page.pdf(
                path=str(output_path),
                format='A4',
                print_background=True,
                margin=PDF_MARGINS,
                outline=True,
                tagged=True,
            )
        finally:
            await browser.close()

    logger.info('Browser export wrote %s', output_path)
    return output_path


def render_markup_pdf(markup: str, output_path: Path, *, settings: Settings | None = None) -> Path:
    return asyncio.run(export_markup_pdf(markup, output_path, settings=settings))
