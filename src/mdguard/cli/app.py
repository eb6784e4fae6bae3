"""Root CLI application: render, sanitize, and inspect the policy."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mdguard.core.config import load_config
from mdguard.core.log import setup_logging
from mdguard.core.models import AppConfig
from mdguard.render.highlight import build_registry
from mdguard.render.pipeline import RenderPipeline
from mdguard.render.sanitize import HtmlSanitizer, SanitizePolicy

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(
    name="mdguard",
    help="Render untrusted markdown into HTML that is safe to insert into a page.",
    no_args_is_help=True,
)

_state: dict[str, Optional[str]] = {"config": None}


def _load() -> AppConfig:
    try:
        return load_config(_state["config"])
    except (ValidationError, ValueError) as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {escape(str(exc))}")
        raise typer.Exit(1)


def _read_input(path: str, limit: int) -> str:
    try:
        if path == "-":
            text = sys.stdin.read()
        else:
            text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        err_console.print(f"[red]Cannot read {escape(path)}:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    size = len(text.encode("utf-8"))
    if size > limit:
        err_console.print(f"[red]Input too large:[/red] {size} bytes (limit {limit})")
        raise typer.Exit(1)
    return text


def _write_output(html: str, output: Optional[Path]) -> None:
    if output is None:
        typer.echo(html, nl=False)
        return
    output.write_text(html, encoding="utf-8")
    err_console.print(f"Wrote [cyan]{output}[/cyan]")


@app.callback()
def main(
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to a YAML config file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the configured log level"),
) -> None:
    _state["config"] = config
    cfg = _load()
    setup_logging(log_level or cfg.log_level)


@app.command()
def render(
    path: str = typer.Argument("-", help="Markdown file to render, or - for stdin"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write HTML here instead of stdout"),
) -> None:
    """Render markdown to sanitized HTML."""
    cfg = _load()
    text = _read_input(path, cfg.render.max_content_bytes)
    try:
        pipeline = RenderPipeline.from_config(cfg)
    except ValueError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)
    _write_output(pipeline.render(text), output)


@app.command()
def sanitize(
    path: str = typer.Argument("-", help="HTML file to sanitize, or - for stdin"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Write HTML here instead of stdout"),
) -> None:
    """Sanitize an HTML fragment against the configured whitelist."""
    cfg = _load()
    text = _read_input(path, cfg.render.max_content_bytes)
    sanitizer = HtmlSanitizer(SanitizePolicy.from_config(cfg.sanitizer, cfg.highlight.token_class_prefix))
    _write_output(sanitizer.sanitize(text), output)


@app.command()
def policy() -> None:
    """Show the tag/attribute whitelist and the strip-content tags."""
    cfg = _load()
    pol = SanitizePolicy.from_config(cfg.sanitizer, cfg.highlight.token_class_prefix)

    table = Table(title="Whitelist")
    table.add_column("Tag", style="cyan")
    table.add_column("Attributes", style="white")
    for tag in sorted(pol.tags):
        attrs = sorted(pol.attributes.get(tag, frozenset()))
        table.add_row(tag, ", ".join(attrs) or "[dim]-[/dim]")
    console.print(table)

    console.print(f"Global attributes: [cyan]{', '.join(sorted(pol.global_attributes)) or '-'}[/cyan]")
    console.print(f"Strip content of: [red]{', '.join(sorted(pol.strip_content_tags)) or '-'}[/red]")
    console.print(f"URL protocols: [cyan]{', '.join(sorted(pol.protocols))}[/cyan]")
    console.print(f"Kept code class: [green]<code class=\"{cfg.sanitizer.code_class_prefix}*\">[/green]")
    console.print(f"Kept span class: [green]<span class=\"{cfg.highlight.token_class_prefix}*\">[/green]")


@app.command()
def languages() -> None:
    """List the languages fenced code blocks are highlighted for."""
    cfg = _load()
    try:
        registry = build_registry(cfg.highlight.languages, cfg.highlight.token_class_prefix)
    except ValueError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)

    names = registry.languages()
    console.print(f"[bold]{len(names)}[/bold] highlight languages")
    console.print(", ".join(names))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to listen on"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the preview web service."""
    import uvicorn

    cfg = _load()
    host = host or cfg.web.host
    port = port or cfg.web.port
    if _state["config"]:
        # create_app runs in the server process and reads its config from the environment
        os.environ["MDGUARD_CONFIG"] = _state["config"]

    console.print("\n[bold]mdguard preview[/bold]")
    console.print(f"Starting at [cyan]http://{host}:{port}[/cyan]\n")
    uvicorn.run(
        "mdguard.web.app:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )
