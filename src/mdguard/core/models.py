"""Pydantic models for mdguard configuration."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Sanitizer ---

DEFAULT_TAGS: list[str] = [
    "p", "h1", "h2", "h3", "h4", "h5", "h6",
    "a", "strong", "em", "b", "i", "u", "s", "del",
    "ul", "ol", "li",
    "blockquote", "br", "hr",
    "img",
    "code", "pre", "span", "div",
    "table", "thead", "tbody", "tr", "th", "td",
    "dl", "dt", "dd",
    "sup", "sub",
    "abbr",
]

DEFAULT_ATTRIBUTES: dict[str, list[str]] = {
    "a": ["href", "title"],
    "img": ["src", "alt", "title", "width", "height"],
    "td": ["colspan", "rowspan", "align"],
    "th": ["colspan", "rowspan", "align"],
    "abbr": ["title"],
}


class SanitizerConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    tags: list[str] = Field(default_factory=lambda: list(DEFAULT_TAGS))
    attributes: dict[str, list[str]] = Field(default_factory=lambda: {k: list(v) for k, v in DEFAULT_ATTRIBUTES.items()})
    global_attributes: list[str] = Field(default_factory=lambda: ["id", "title"])
    strip_content_tags: list[str] = Field(default_factory=lambda: ["script", "style"])
    protocols: list[str] = Field(default_factory=lambda: ["http", "https", "mailto"])
    code_class_prefix: str = Field("language-", min_length=1)


# --- Highlighting ---

class HighlightConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    # None or empty means every lexer Pygments ships
    languages: Optional[list[str]] = None
    token_class_prefix: str = "tok-"


# --- Rendering ---

MAX_CONTENT_BYTES = 512 * 1024


class RenderConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    table_class: str = Field("table", min_length=1)
    max_content_bytes: int = Field(MAX_CONTENT_BYTES, gt=0)


class WebConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = Field(8000, gt=0, lt=65536)


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    sanitizer: SanitizerConfig = Field(default_factory=SanitizerConfig)
    highlight: HighlightConfig = Field(default_factory=HighlightConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    web: WebConfig = Field(default_factory=WebConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
