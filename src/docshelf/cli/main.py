"""docshelf CLI — talk to a docshelf server from the terminal.

Usage:
    docshelf register alice alice@example.com s3cret   # Create account, print token
    docshelf login alice@example.com s3cret            # Rotate + print token
    docshelf me                                        # Who am I?
    docshelf users                                     # All users
    docshelf docs list                                 # My documents
    docshelf docs upload score.pdf --artist "J. S. Bach" --nickname Bach \\
        --composition "Cello Suite No. 1" --price 9.99
    docshelf docs show <id>
    docshelf docs download <id> -o score.pdf
    docshelf docs update <id> --comment "practice bar 12" --favorite
    docshelf docs delete <id>
    docshelf docs purge                                # Delete all my documents

The bearer token comes from --token or the DOCSHELF_TOKEN env var.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
import httpx

from docshelf import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("DOCSHELF_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None, auth: Optional[httpx.Auth] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the docshelf backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(
        base_url=_api_url(), headers=headers, auth=auth, timeout=60.0
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("DOCSHELF_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set DOCSHELF_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _check(r: httpx.Response) -> httpx.Response:
    """Exit with the server's error detail on any non-2xx response."""
    if r.is_success:
        return r
    try:
        detail = r.json().get("detail", r.text)
    except ValueError:
        detail = r.text
    click.secho(f"Error {r.status_code}: {detail}", fg="red", err=True)
    sys.exit(1)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k) if row.get(k) is not None else "—")[:w].ljust(w)
                         for _, k, w in columns)
        click.echo(line)


def _print_token(token: dict):
    click.secho(f"Token for user {token['userId']}:", fg="green")
    click.echo(token["value"])
    click.echo()
    click.echo(f"  export DOCSHELF_TOKEN={token['value']}")


token_option = click.option(
    "--token", envvar="DOCSHELF_TOKEN", help="Bearer token (or set DOCSHELF_TOKEN)"
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="docshelf")
def main():
    """docshelf — manage your document shelf from the command line."""


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


@main.command()
@click.argument("username")
@click.argument("email")
@click.argument("password")
def register(username: str, email: str, password: str):
    """Create an account and print its token."""
    _run(_register_impl(username, email, password))


async def _register_impl(username: str, email: str, password: str):
    async with _client() as c:
        r = _check(await c.post("/api/v1/auth/register", json={
            "username": username,
            "email": email,
            "password": password,
        }))
    _print_token(r.json())


@main.command()
@click.argument("email")
@click.argument("password")
def login(email: str, password: str):
    """Log in with email + password and print a freshly rotated token."""
    _run(_login_impl(email, password))


async def _login_impl(email: str, password: str):
    async with _client(auth=httpx.BasicAuth(email, password)) as c:
        r = _check(await c.post("/api/v1/auth/login"))
    _print_token(r.json())


@main.command()
@token_option
def me(token: Optional[str]):
    """Show the account behind the token."""
    _run(_me_impl(_require_token(token)))


async def _me_impl(token: str):
    async with _client(token) as c:
        r = _check(await c.get("/api/v1/users/me"))
    click.echo(_pretty_json(r.json()))


@main.command()
def users():
    """List all users."""
    _run(_users_impl())


async def _users_impl():
    async with _client() as c:
        r = _check(await c.get("/api/v1/users"))
    _print_table(r.json(), [
        ("ID", "id", 36),
        ("USERNAME", "username", 20),
        ("EMAIL", "email", 30),
    ])


@main.command("update-profile")
@token_option
@click.option("--username", help="New username")
@click.option("--email", help="New email")
@click.option("--password", help="New password")
def update_profile(token: Optional[str], username: Optional[str],
                   email: Optional[str], password: Optional[str]):
    """Change username, email, and/or password."""
    body = {k: v for k, v in
            {"username": username, "email": email, "password": password}.items()
            if v is not None}
    if not body:
        click.secho("Nothing to update.", fg="yellow")
        return
    _run(_update_profile_impl(_require_token(token), body))


async def _update_profile_impl(token: str, body: dict):
    async with _client(token) as c:
        r = _check(await c.put("/api/v1/users", json=body))
    click.echo(_pretty_json(r.json()))


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@main.group()
def docs():
    """Upload, list, and manage your documents."""


@docs.command("list")
@token_option
def docs_list(token: Optional[str]):
    """List your documents."""
    _run(_docs_list_impl(_require_token(token)))


async def _docs_list_impl(token: str):
    async with _client(token) as c:
        r = _check(await c.get("/api/v1/documents"))
    rows = r.json()
    if not rows:
        click.echo("No documents.")
        return
    for row in rows:
        row["fav"] = "*" if row.get("isFavorite") else ""
    _print_table(rows, [
        ("ID", "id", 36),
        ("", "fav", 1),
        ("FILE", "fileName", 24),
        ("ARTIST", "artistName", 18),
        ("COMPOSITION", "compositionName", 24),
        ("PRICE", "price", 8),
    ])


@docs.command("upload")
@token_option
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--artist", "artist_name", required=True, help="Artist name")
@click.option("--nickname", "artist_nickname", required=True, help="Artist nickname")
@click.option("--composition", "composition_name", required=True, help="Composition name")
@click.option("--price", required=True, help="Price (free-form)")
@click.option("--type", "file_type", help="File type (default: file extension)")
@click.option("--created", "create_time", help="Creation time (default: now, ISO 8601)")
@click.option("--comment", help="Comment")
@click.option("--favorite", is_flag=True, help="Mark as favorite")
def docs_upload(token: Optional[str], path: Path, artist_name: str, artist_nickname: str,
                composition_name: str, price: str, file_type: Optional[str],
                create_time: Optional[str], comment: Optional[str], favorite: bool):
    """Upload a file with its metadata."""
    data = {
        "fileType": file_type or (path.suffix.lstrip(".") or "bin"),
        "createTime": create_time or datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "artistName": artist_name,
        "artistNickname": artist_nickname,
        "compositionName": composition_name,
        "price": price,
        "isFavorite": favorite,
    }
    if comment is not None:
        data["comment"] = comment
    _run(_docs_upload_impl(_require_token(token), path, data))


async def _docs_upload_impl(token: str, path: Path, data: dict):
    async with _client(token) as c:
        r = _check(await c.post(
            "/api/v1/documents",
            files={"file": (path.name, path.read_bytes())},
            data={"data": json.dumps(data)},
        ))
    doc = r.json()
    click.secho(f"Uploaded {doc['fileName']} as {doc['id']}", fg="green")


@docs.command("show")
@token_option
@click.argument("document_id")
def docs_show(token: Optional[str], document_id: str):
    """Show one document's metadata."""
    _run(_docs_show_impl(_require_token(token), document_id))


async def _docs_show_impl(token: str, document_id: str):
    async with _client(token) as c:
        r = _check(await c.get(f"/api/v1/documents/{document_id}"))
    click.echo(_pretty_json(r.json()))


@docs.command("download")
@token_option
@click.argument("document_id")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path),
              help="Where to write the file (default: original filename)")
def docs_download(token: Optional[str], document_id: str, output: Optional[Path]):
    """Download a document's file."""
    _run(_docs_download_impl(_require_token(token), document_id, output))


async def _docs_download_impl(token: str, document_id: str, output: Optional[Path]):
    async with _client(token) as c:
        if output is None:
            meta = _check(await c.get(f"/api/v1/documents/{document_id}")).json()
            output = Path(Path(meta["fileName"]).name or document_id)
        async with c.stream("GET", f"/api/v1/documents/{document_id}/download") as r:
            if not r.is_success:
                await r.aread()
                _check(r)
            with output.open("wb") as fh:
                async for chunk in r.aiter_bytes():
                    fh.write(chunk)
    click.secho(f"Saved {output}", fg="green")


@docs.command("update")
@token_option
@click.argument("document_id")
@click.option("--comment", help="New comment")
@click.option("--favorite/--no-favorite", default=None, help="Set or clear favorite")
def docs_update(token: Optional[str], document_id: str,
                comment: Optional[str], favorite: Optional[bool]):
    """Update a document's comment and/or favorite flag."""
    body: dict = {}
    if comment is not None:
        body["comment"] = comment
    if favorite is not None:
        body["isFavorite"] = favorite
    if not body:
        click.secho("Nothing to update.", fg="yellow")
        return
    _run(_docs_update_impl(_require_token(token), document_id, body))


async def _docs_update_impl(token: str, document_id: str, body: dict):
    async with _client(token) as c:
        r = _check(await c.put(f"/api/v1/documents/{document_id}", json=body))
    click.echo(_pretty_json(r.json()))


@docs.command("delete")
@token_option
@click.argument("document_id")
def docs_delete(token: Optional[str], document_id: str):
    """Delete one document and its file."""
    _run(_docs_delete_impl(_require_token(token), document_id))


async def _docs_delete_impl(token: str, document_id: str):
    async with _client(token) as c:
        _check(await c.delete(f"/api/v1/documents/{document_id}"))
    click.secho(f"Deleted {document_id}", fg="green")


@docs.command("purge")
@token_option
@click.confirmation_option(prompt="Delete ALL of your documents?")
def docs_purge(token: Optional[str]):
    """Delete every document you own."""
    _run(_docs_purge_impl(_require_token(token)))


async def _docs_purge_impl(token: str):
    async with _client(token) as c:
        _check(await c.delete("/api/v1/documents"))
    click.secho("All documents deleted.", fg="green")


if __name__ == "__main__":
    main()
