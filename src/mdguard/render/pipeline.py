"""Markdown -> highlighted HTML -> sanitized HTML -> styled tables."""

from __future__ import annotations

import html
import logging
from functools import lru_cache
from typing import Optional

from mdguard.core.config import load_config
from mdguard.core.models import AppConfig
from mdguard.render.highlight import HighlighterRegistry, build_registry
from mdguard.render.parser import MarkdownParser
from mdguard.render.postprocess import add_table_class
from mdguard.render.sanitize import HtmlSanitizer, SanitizePolicy

logger = logging.getLogger(__name__)


class RenderPipeline:
    """Turn untrusted markdown into HTML safe to insert into a live page.

    Holds only immutable collaborators, so one instance serves any number of
    concurrent ``render`` calls.
    """

    def __init__(
        self,
        parser: MarkdownParser,
        sanitizer: HtmlSanitizer,
        table_class: str = "table",
    ) -> None:
        self.parser = parser
        self.sanitizer = sanitizer
        self.table_class = table_class

    @classmethod
    def from_config(cls, config: AppConfig, registry: Optional[HighlighterRegistry] = None) -> RenderPipeline:
        if registry is None:
            registry = build_registry(config.highlight.languages, config.highlight.token_class_prefix)
        parser = MarkdownParser(
            code_hook=registry.highlight,
            lang_prefix=config.sanitizer.code_class_prefix,
        )
        policy = SanitizePolicy.from_config(config.sanitizer, config.highlight.token_class_prefix)
        sanitizer = HtmlSanitizer(policy)
        return cls(parser, sanitizer, table_class=config.render.table_class)

    def to_html(self, text: str) -> str:
        """Markdown conversion only; falls back to escaped text if the parser blows up."""
        try:
            return self.parser.render(text)
        except Exception:
            logger.exception("Markdown conversion failed, rendering as plain text")
            return f"<p>{html.escape(text)}</p>"

    def render(self, text: Optional[str]) -> str:
        if not text:
            return ""
        raw_html = self.to_html(text)
        clean_html = self.sanitizer.sanitize(raw_html)
        return add_table_class(clean_html, self.table_class)


@lru_cache(maxsize=1)
def get_pipeline() -> RenderPipeline:
    """Process-wide pipeline built once from the loaded configuration."""
    return RenderPipeline.from_config(load_config())


def render_markdown(text: Optional[str]) -> str:
    """Convert markdown text to sanitized HTML."""
    return get_pipeline().render(text)
