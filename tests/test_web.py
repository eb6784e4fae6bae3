import pytest
from fastapi.testclient import TestClient

from mdguard.core.models import AppConfig, HighlightConfig, RenderConfig
from mdguard.web.app import create_app


@pytest.fixture
def client():
    cfg = AppConfig(highlight=HighlightConfig(languages=["python"]))
    return TestClient(create_app(cfg))


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_api_render(client):
    resp = client.post("/api/render", json={"markdown": "# T\n\n<script>alert(1)</script>"})
    assert resp.status_code == 200
    html = resp.json()["html"]
    assert "<h1>T</h1>" in html
    assert "alert" not in html


def test_api_render_highlights_code(client):
    resp = client.post("/api/render", json={"markdown": "```python\nprint(1)\n```"})
    assert '<code class="language-python">' in resp.json()["html"]


def test_api_render_rejects_oversized_content():
    client = TestClient(create_app(AppConfig(render=RenderConfig(max_content_bytes=8))))
    resp = client.post("/api/render", json={"markdown": "x" * 9})
    assert resp.status_code == 413


def test_index_page(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert "<form" in resp.text


def test_preview_page_inserts_sanitized_html(client):
    resp = client.post("/preview", data={"markdown": "**bold** <script>alert(1)</script>"})
    assert resp.status_code == 200
    assert "<strong>bold</strong>" in resp.text
    assert "<script>" not in resp.text
    # the source is echoed back escaped in the textarea
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in resp.text
