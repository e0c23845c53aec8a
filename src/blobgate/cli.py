"""CLI for blobgate."""

import logging
import shutil
import sys
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import BlobStoreConfig, config_from_env, load_config
from .errors import (
    BlobStoreError,
    ConfigError,
    DirectTransferRequiredError,
    NotFoundError,
    SignatureError,
)
from .models import UploadParams
from .storage import BlobStore, make_blob_store
from .utils import humanize_size

app = typer.Typer(help="""\
Store, fetch and delete blobs on a configured backend, and issue or verify
presigned upload/download URLs.""")

console = Console()
err_console = Console(stderr=True)


class UrlKind(str, Enum):
    upload = "upload"
    download = "download"
    preview = "preview"


_state = {"config_path": None}


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="YAML config file (default: BLOBGATE_* environment variables)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Blob storage with presigned URLs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    _state["config_path"] = config


def _load_config() -> BlobStoreConfig:
    path = _state["config_path"]
    if path is not None:
        return load_config(path)
    return config_from_env()


def _fail(e: Exception) -> None:
    """Print an error and exit with a code matching its class.

    Raises:
        typer.Exit: Always
    """
    if isinstance(e, NotFoundError):
        err_console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(2)
    if isinstance(e, SignatureError):
        err_console.print(f"[red]✗ Rejected:[/red] {e}")
        raise typer.Exit(3)
    if isinstance(e, DirectTransferRequiredError):
        err_console.print(f"[yellow]⚠[/yellow] {e}")
        err_console.print("[dim]Hint: set url_prefix (BLOBGATE_URL_PREFIX) to enable URLs[/dim]")
        raise typer.Exit(1)
    err_console.print(f"[red]✗[/red] {e}")
    raise typer.Exit(1)


def _get_store() -> BlobStore:
    try:
        return make_blob_store(_load_config())
    except ConfigError as e:
        _fail(e)


@app.command()
def put(
    key: str = typer.Argument(..., help="Object key"),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="File to upload"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Declared MIME type"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Abort after this many seconds"),
):
    """Upload a local file to KEY."""
    store = _get_store()
    try:
        with open(file, "rb") as f:
            if content_type:
                store.upload_with_params(
                    f, UploadParams(object_key=key, mime_type=content_type), timeout=timeout
                )
            else:
                store.upload(key, f, timeout=timeout)
    except (BlobStoreError, ValueError) as e:
        _fail(e)
    console.print(f"[green]✓[/green] Uploaded {file} → {key}")


@app.command()
def get(
    key: str = typer.Argument(..., help="Object key"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
):
    """Download KEY."""
    store = _get_store()
    try:
        reader = store.download(key)
    except BlobStoreError as e:
        _fail(e)

    with reader:
        if output is None:
            shutil.copyfileobj(reader, sys.stdout.buffer)
            sys.stdout.buffer.flush()
            return
        output.parent.mkdir(parents=True, exist_ok=True)
        with open(output, "wb") as f:
            shutil.copyfileobj(reader, f)
    console.print(f"[green]✓[/green] Downloaded {key} → {output}")


@app.command()
def stat(key: str = typer.Argument(..., help="Object key")):
    """Show object metadata."""
    store = _get_store()
    try:
        meta = store.get_object_meta(key)
    except BlobStoreError as e:
        _fail(e)

    table = Table(title=meta.key, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Size", f"{humanize_size(meta.size)} ({meta.size} bytes)")
    table.add_row("Content type", meta.content_type)
    table.add_row("Updated", meta.updated_at.strftime("%Y-%m-%d %H:%M:%S %Z"))
    for name, value in sorted(meta.metadata.items()):
        if name != "content_type":
            table.add_row(name, value)
    console.print(table)


@app.command()
def rm(key: str = typer.Argument(..., help="Object key")):
    """Delete KEY."""
    store = _get_store()
    try:
        store.delete(key)
    except BlobStoreError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Deleted {key}")


@app.command()
def url(
    kind: UrlKind = typer.Argument(..., help="upload, download or preview"),
    key: str = typer.Argument(..., help="Object key"),
    filename: str = typer.Option("", "--filename", help="Suggested save name (download only)"),
):
    """Issue an upload, download or preview URL for KEY."""
    store = _get_store()
    try:
        if kind == UrlKind.upload:
            result = store.get_upload_url(key)
        elif kind == UrlKind.download:
            result = store.get_download_url(key, filename)
        else:
            result = store.get_preview_url(key)
    except BlobStoreError as e:
        _fail(e)
    # Plain print so the URL can be piped
    typer.echo(result)


@app.command()
def verify(
    presigned_url: str = typer.Argument(..., metavar="URL", help="Presigned URL to check"),
    method: str = typer.Option("PUT", "--method", "-X", help="HTTP method the URL will be used with"),
):
    """Check a presigned URL's signature and expiration."""
    store = _get_store()
    signer = getattr(store, "signer", None)
    if not hasattr(store, "validate_upload_signature"):
        err_console.print("[red]✗[/red] This backend's URLs are validated by the storage service")
        raise typer.Exit(1)
    if signer is None:
        console.print("[yellow]⚠[/yellow] No secret key configured: all URLs are accepted (open mode)")
        return

    try:
        grant = signer.validate_url(method, presigned_url, prefix=store.url_prefix)
    except BlobStoreError as e:
        _fail(e)
    console.print(f"[green]✓[/green] Valid {grant.method} grant for {grant.path} (expires {grant.expires_at})")


if __name__ == "__main__":
    app()
