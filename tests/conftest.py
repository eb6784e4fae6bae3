from __future__ import annotations

import pytest

from mdguard.core.models import AppConfig, HighlightConfig
from mdguard.render.pipeline import RenderPipeline
from mdguard.render.sanitize import HtmlSanitizer, default_policy


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "MDGUARD_CONFIG",
        "MDGUARD_TABLE_CLASS",
        "MDGUARD_CODE_CLASS_PREFIX",
        "MDGUARD_HIGHLIGHT_LANGUAGES",
        "MDGUARD_MAX_CONTENT_BYTES",
        "MDGUARD_HOST",
        "MDGUARD_PORT",
        "MDGUARD_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(highlight=HighlightConfig(languages=["python", "go", "bash"]))


@pytest.fixture
def pipeline(config) -> RenderPipeline:
    return RenderPipeline.from_config(config)


@pytest.fixture
def sanitizer() -> HtmlSanitizer:
    return HtmlSanitizer(default_policy())
