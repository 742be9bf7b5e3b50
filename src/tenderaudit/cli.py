"""Command line interface for tenderaudit."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from tenderaudit.config import AppConfig
from tenderaudit.errors import ConfigurationError, NoRenderableVariant, TenderAuditError
from tenderaudit.remote.webdav import WebDAVClient
from tenderaudit.service import DocumentService
from tenderaudit.web.app import app as web_app
from tenderaudit.web.app import get_config


console = Console()
app = typer.Typer(help="tenderaudit - parser index and rendered variants on a WebDAV document store")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_config(ctx: typer.Context) -> AppConfig:
    config = AppConfig.from_env()
    overrides = ctx.obj or {}
    for field_name, value in overrides.items():
        if value is not None:
            setattr(config.store, field_name, value)
    return config


def _build_service(ctx: typer.Context) -> DocumentService:
    config = _load_config(ctx)
    try:
        client = WebDAVClient(config.store)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    return DocumentService(config, client)


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except NoRenderableVariant as exc:
        console.print(f"[red]{exc.document}: no rendered variant could be loaded.[/red]")
        for path in exc.attempted:
            console.print(f"  tried {path}")
        raise typer.Exit(code=1) from exc
    except TenderAuditError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="WebDAV server URL"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="WebDAV user"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="WebDAV password"),
    base_path: Optional[str] = typer.Option(None, "--base-path", help="Root directory of the projects"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Settings not given here are read from TENDERAUDIT_* environment variables."""
    _setup_logging(verbose)
    ctx.obj = {"host": host, "username": username, "password": password, "base_path": base_path}


@app.command("ls")
def list_directory(
    ctx: typer.Context,
    path: str = typer.Argument("/", help="Remote directory"),
    show_hidden: bool = typer.Option(False, "--all", "-a", help="Include hidden entries"),
) -> None:
    """List a remote directory with parser index information."""
    service = _build_service(ctx)
    with _reporting_errors():
        entries = service.list_directory(path, show_hidden=show_hidden)

    if not entries:
        console.print("[yellow]Directory is empty.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Parsers")
    table.add_column("Default")
    table.add_column("Status")
    for entry in entries:
        table.add_row(
            entry.name,
            entry.kind,
            "" if entry.size is None else str(entry.size),
            ", ".join(entry.parser_det),
            entry.parser_default,
            entry.parser_status,
        )
    console.print(table)


@app.command()
def resolve(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Source document path"),
    previous: Optional[str] = typer.Option(None, "--variant", help="Preferred variant label"),
    show_content: bool = typer.Option(True, "--content/--no-content", help="Print the rendered text"),
) -> None:
    """Resolve a document to its rendered markdown variant."""
    service = _build_service(ctx)
    with _reporting_errors():
        resolved = service.resolve_document(path, previous_label=previous)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("")
    table.add_column("Variant")
    table.add_column("Path")
    for candidate in resolved.candidates:
        marker = "*" if candidate is resolved.active else ""
        table.add_row(marker, candidate.label, candidate.path)
    console.print(table)
    console.print(f"Active variant: [bold]{resolved.active_label}[/bold]")
    if show_content:
        console.print(resolved.content, markup=False, highlight=False)


@app.command("set-default")
def set_default(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Source document path"),
    label: str = typer.Argument(..., help="Variant label, e.g. 'Marker' or 'docling'"),
) -> None:
    """Persist a variant as the document's default parser."""
    service = _build_service(ctx)
    with _reporting_errors():
        service.set_default_variant(path, label)
    console.print(f"Default variant of {path} set to [bold]{label}[/bold].")


@app.command("meta-get")
def meta_get(ctx: typer.Context, path: str = typer.Argument(..., help="Metadata sidecar path")) -> None:
    """Print a metadata sidecar."""
    service = _build_service(ctx)
    with _reporting_errors():
        metadata = service.load_metadata(path)
    if metadata is None:
        console.print("[yellow]No metadata stored yet.[/yellow]")
        return
    console.print_json(data=metadata)


@app.command("meta-set")
def meta_set(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Metadata sidecar path"),
    document: str = typer.Argument(..., help="Complete metadata object as JSON"),
) -> None:
    """Replace a metadata sidecar with the given JSON object."""
    try:
        metadata = json.loads(document)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid JSON: {exc}") from exc
    if not isinstance(metadata, dict):
        raise typer.BadParameter("Metadata must be a JSON object")

    service = _build_service(ctx)
    with _reporting_errors():
        service.save_metadata(path, metadata)
    console.print(f"Saved metadata to {path}.")


@app.command("init-project")
def init_project(ctx: typer.Context, name: str = typer.Argument(..., help="Project name")) -> None:
    """Create a project directory with its standard sub-directories."""
    service = _build_service(ctx)
    with _reporting_errors():
        created = service.init_project(name)
    for path in created:
        console.print(f"Ensured {path}")


@app.command()
def web(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    config = _load_config(ctx)
    if not config.store.is_complete():
        console.print("[yellow]Warning: WebDAV settings incomplete, requests will fail.[/yellow]")
    web_app.dependency_overrides[get_config] = lambda: config

    console.print(f"Starting API on http://{host}:{port} (store: {config.store.host})")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
