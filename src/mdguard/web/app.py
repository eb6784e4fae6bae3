"""FastAPI preview service for the render pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Form, HTTPException
from fastapi.responses import HTMLResponse
from jinja2 import Environment, FileSystemLoader
from markupsafe import Markup
from pydantic import BaseModel

from mdguard.core.config import load_config
from mdguard.core.models import AppConfig
from mdguard.render.pipeline import RenderPipeline

logger = logging.getLogger(__name__)

_TEMPLATES_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(str(_TEMPLATES_DIR)),
    autoescape=True,
)


class RenderRequest(BaseModel):
    markdown: str = ""


class RenderResponse(BaseModel):
    html: str


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    cfg = config or load_config()
    pipeline = RenderPipeline.from_config(cfg)
    limit = cfg.render.max_content_bytes

    app = FastAPI(title="mdguard", docs_url=None, redoc_url=None)

    def _render_checked(text: str) -> str:
        size = len(text.encode("utf-8"))
        if size > limit:
            logger.info("Rejected %d byte document (limit %d)", size, limit)
            raise HTTPException(status_code=413, detail=f"Content exceeds {limit} bytes")
        return pipeline.render(text)

    def _page(markdown_text: str = "", rendered: str = "") -> str:
        tpl = _env.get_template("page.html")
        # Pipeline output is already sanitized; mark it so autoescape leaves it alone
        return tpl.render(markdown=markdown_text, rendered=Markup(rendered))

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/api/render", response_model=RenderResponse)
    def api_render(body: RenderRequest) -> RenderResponse:
        return RenderResponse(html=_render_checked(body.markdown))

    @app.get("/", response_class=HTMLResponse)
    def index() -> HTMLResponse:
        return HTMLResponse(_page())

    @app.post("/preview", response_class=HTMLResponse)
    def preview(markdown: str = Form("")) -> HTMLResponse:
        return HTMLResponse(_page(markdown, _render_checked(markdown)))

    return app
