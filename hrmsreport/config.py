from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix='HRMS_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
        populate_by_name=True,
    )

    # CLI defaults
    default_input: str = 'sample-data.json'
    default_output: str = 'appraisal.pdf'

    renderer: Literal['vector', 'html'] = Field(
        default='vector',
        validation_alias=AliasChoices('HRMS_RENDERER', 'APPRAISAL_RENDERER'),
    )
    log_level: str = 'WARNING'

    # Layout behaviour
    max_hierarchy_depth: int = 32
    # Pre-measure whole section cards before drawing so a card only starts
    # on a page that can hold it.
    keep_sections_together: bool = True

    # PDF metadata
    pdf_author: str = 'HRMS'

    # Browser export
    browser_headless: bool = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
