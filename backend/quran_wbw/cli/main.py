"""CLI entrypoint for the offline reader backend."""

from __future__ import annotations

import json
import os
from typing import Optional

import requests
import typer

app = typer.Typer(name="qwbw", help="Quran word-by-word offline reader command-line interface")
documents_app = typer.Typer(name="documents", help="Browse and download chapters")
bookmarks_app = typer.Typer(name="bookmarks", help="Manage verse bookmarks")
prefs_app = typer.Typer(name="prefs", help="Reader preferences")
app.add_typer(documents_app, name="documents")
app.add_typer(bookmarks_app, name="bookmarks")
app.add_typer(prefs_app, name="prefs")

DEFAULT_HOST = "http://127.0.0.1:5180"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("QWBW_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    try:
        resp = requests.request(method, url, timeout=60, **kwargs)
    except requests.RequestException as exc:
        typer.echo(f"Cannot reach {base}: {exc}", err=True)
        raise typer.Exit(code=1)
    if not resp.ok:
        try:
            detail = resp.json()
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _print(payload: object) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@documents_app.command("list")
def list_documents(host: Optional[str] = typer.Option(None, "--host", help="Override backend host")) -> None:
    """List chapters with their download status."""
    _print(_request("GET", "/documents", host=host).json())


@documents_app.command("offline")
def list_offline(host: Optional[str] = typer.Option(None, "--host", help="Override backend host")) -> None:
    """List chapters stored for offline reading."""
    _print(_request("GET", "/documents/offline", host=host).json())


@documents_app.command("search")
def search(
    q: str = typer.Argument(..., help="Name fragment"),
    limit: int = typer.Option(20, "--limit", help="Maximum number of hits"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Search stored chapters by name."""
    _print(_request("GET", "/documents/search", host=host, params={"q": q, "limit": limit}).json())


@documents_app.command("show")
def show(
    document_id: int = typer.Argument(..., help="Chapter number"),
    cache: bool = typer.Option(True, "--cache/--no-cache", help="Store the chapter if it had to be fetched"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Print a chapter, loading it from the offline store when present."""
    params = {"cache": str(cache).lower()}
    _print(_request("GET", f"/documents/{document_id}", host=host, params=params).json())


@documents_app.command("download")
def download(
    document_id: int = typer.Argument(..., help="Chapter number"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Download a chapter for offline reading."""
    _print(_request("POST", f"/documents/{document_id}/download", host=host).json())


@documents_app.command("remove")
def remove_document(
    document_id: int = typer.Argument(..., help="Chapter number"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Remove a chapter from offline storage."""
    _print(_request("DELETE", f"/documents/{document_id}", host=host).json())


@bookmarks_app.command("list")
def list_bookmarks(
    document_id: Optional[int] = typer.Option(None, "--document", help="Only bookmarks in this chapter"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List bookmarks."""
    params = {"document_id": document_id} if document_id is not None else None
    _print(_request("GET", "/bookmarks", host=host, params=params).json())


@bookmarks_app.command("add")
def add_bookmark(
    document_id: int = typer.Argument(..., help="Chapter number"),
    unit_number: int = typer.Argument(..., help="Verse number"),
    note: Optional[str] = typer.Option(None, "--note", help="Free-form note"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Bookmark a verse."""
    payload = {"document_id": document_id, "unit_number": unit_number, "note": note}
    _print(_request("POST", "/bookmarks", host=host, json=payload).json())


@bookmarks_app.command("remove")
def remove_bookmark(
    bookmark_id: str = typer.Argument(..., help="Bookmark identifier"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Remove a bookmark."""
    _print(_request("DELETE", f"/bookmarks/{bookmark_id}", host=host).json())


@prefs_app.command("show")
def show_prefs(host: Optional[str] = typer.Option(None, "--host", help="Override backend host")) -> None:
    """Print the current preferences."""
    _print(_request("GET", "/preferences", host=host).json())


@prefs_app.command("set")
def set_prefs(
    font_size: Optional[int] = typer.Option(None, "--font-size", min=12, max=32, help="Arabic font size"),
    transliteration: Optional[bool] = typer.Option(
        None, "--transliteration/--no-transliteration", help="Show transliteration"
    ),
    word_meanings: Optional[bool] = typer.Option(
        None, "--word-meanings/--no-word-meanings", help="Show word meanings"
    ),
    translation: Optional[str] = typer.Option(None, "--translation", help="Selected translation id"),
    annotation: Optional[str] = typer.Option(None, "--annotation", help="Selected commentary source id"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Change preferences; unspecified fields keep their current value."""
    current = _request("GET", "/preferences", host=host).json()
    changes = {
        "font_size": font_size,
        "show_transliteration": transliteration,
        "show_word_meanings": word_meanings,
        "selected_translation_id": translation,
        "selected_annotation_source_id": annotation,
    }
    current.update({key: value for key, value in changes.items() if value is not None})
    _print(_request("PUT", "/preferences", host=host, json=current).json())


@app.command()
def serve(
    bind: str = typer.Option("127.0.0.1", "--bind", help="Interface to listen on"),
    port: int = typer.Option(5180, "--port", help="Port to listen on"),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("quran_wbw.app:app", host=bind, port=port)


if __name__ == "__main__":
    app()
