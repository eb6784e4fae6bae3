"""Configuration loader: YAML files + environment variables."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from mdguard.core.models import (
    AppConfig,
    HighlightConfig,
    RenderConfig,
    SanitizerConfig,
    WebConfig,
)


def _find_project_root() -> Path:
    """Walk up from cwd to find a directory containing pyproject.toml."""
    cwd = Path.cwd()
    for p in [cwd, *cwd.parents]:
        if (p / "pyproject.toml").exists():
            return p
    return cwd


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Load configuration from YAML + environment variables.

    Priority: env vars > .env file > YAML > model defaults.
    """
    root = _find_project_root()
    load_dotenv(root / ".env")

    # Load YAML
    config_path = config_path or os.getenv("MDGUARD_CONFIG")
    yaml_path = Path(config_path) if config_path else root / "config" / "default.yaml"
    yaml_data: dict = {}
    if yaml_path.exists():
        with open(yaml_path) as f:
            yaml_data = yaml.safe_load(f) or {}
    if not isinstance(yaml_data, dict):
        raise ValueError(f"{yaml_path}: expected a mapping at the top level")

    # Sanitizer config with env overrides
    san_data = dict(yaml_data.get("sanitizer") or {})
    if os.getenv("MDGUARD_CODE_CLASS_PREFIX"):
        san_data["code_class_prefix"] = os.environ["MDGUARD_CODE_CLASS_PREFIX"]
    sanitizer = SanitizerConfig(**san_data)

    # Highlight config
    hl_data = dict(yaml_data.get("highlight") or {})
    if os.getenv("MDGUARD_HIGHLIGHT_LANGUAGES"):
        hl_data["languages"] = _split_list(os.environ["MDGUARD_HIGHLIGHT_LANGUAGES"])
    highlight = HighlightConfig(**hl_data)

    # Render config
    render_data = yaml_data.get("render") or {}
    render = RenderConfig(
        table_class=os.getenv("MDGUARD_TABLE_CLASS", render_data.get("table_class", "table")),
        max_content_bytes=int(os.getenv("MDGUARD_MAX_CONTENT_BYTES", render_data.get("max_content_bytes", 512 * 1024))),
    )

    # Web config
    web_data = yaml_data.get("web") or {}
    web = WebConfig(
        host=os.getenv("MDGUARD_HOST", web_data.get("host", "127.0.0.1")),
        port=int(os.getenv("MDGUARD_PORT", web_data.get("port", 8000))),
    )

    log_level = os.getenv("MDGUARD_LOG_LEVEL", yaml_data.get("log_level", "WARNING"))

    return AppConfig(
        sanitizer=sanitizer,
        highlight=highlight,
        render=render,
        web=web,
        log_level=str(log_level).upper(),
    )
