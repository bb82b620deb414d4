"""CLI interface for kalam."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from kalam.auth import AuthContext, load_auth_context
from kalam.config import KalamConfig, load_config, merge_cli_overrides
from kalam.errors import DraftValidationError, KalamError
from kalam.integrations.supabase import user_id_from_token
from kalam.posts.admin import list_author_posts
from kalam.posts.models import SubmitOutcome
from kalam.posts.reader import get_published_post, list_published_posts
from kalam.posts.session import AuthoringSession
from kalam.store.base import DataStore

app = typer.Typer(
    name="kalam",
    help="Read and write posts on a kalam blog.",
)

console = Console()


class _State:
    config: KalamConfig = KalamConfig()
    user: str | None = None


state = _State()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from kalam import __version__

        console.print(f"kalam {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .kalam.toml file."),
    ] = None,
    store_path: Annotated[
        Optional[str],
        typer.Option("--store", help="Local JSON store path (when Supabase is not configured)."),
    ] = None,
    user: Annotated[
        Optional[str],
        typer.Option("--user", help="Act as this user id instead of the access token's."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """kalam - a bilingual personal blog."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    state.config = merge_cli_overrides(load_config(config_path), store_path=store_path)
    state.user = user


def _store() -> DataStore:
    return state.config.create_store()


def _auth(store: DataStore) -> AuthContext:
    user_id = state.user or user_id_from_token(state.config.supabase.access_token)
    return load_auth_context(store, user_id)


@app.command()
def posts(
    category: Annotated[
        Optional[str],
        typer.Option("--category", help="Only posts in this category id."),
    ] = None,
    tag: Annotated[
        Optional[list[str]],
        typer.Option("--tag", help="Only posts carrying any of these tag ids."),
    ] = None,
) -> None:
    """List published posts, newest first."""
    try:
        results = list_published_posts(_store(), category_id=category, tag_ids=tag or [])
    except KalamError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    if not results:
        console.print("[yellow]No posts yet.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Published")
    table.add_column("Title")
    table.add_column("Slug")
    table.add_column("Category")
    table.add_column("Tags")
    for post in results:
        table.add_row(
            post.published_at.date().isoformat() if post.published_at else "",
            post.title,
            post.slug,
            post.category.name if post.category else "",
            ", ".join(t.name for t in post.tags),
        )
    console.print(table)


@app.command()
def read(slug: Annotated[str, typer.Argument(help="Slug of the post.")]) -> None:
    """Print one published post."""
    try:
        post = get_published_post(_store(), slug)
    except KalamError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    console.print(f"[bold]{post.title}[/bold]")
    byline = post.author_name or "Anonymous"
    if post.published_at:
        byline += f" · {post.published_at.date().isoformat()}"
    console.print(f"[dim]{byline}[/dim]\n")
    console.print(post.content, markup=False)


@app.command()
def dashboard() -> None:
    """List your own posts, drafts included."""
    store = _store()
    try:
        rows = list_author_posts(store, _auth(store))
    except KalamError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    if not rows:
        console.print("[yellow]No posts yet. Start writing![/yellow]")
        return
    for row in rows:
        status = "[green]Published[/green]" if row.published else "[dim]Draft[/dim]"
        console.print(f"{row.id}  {status}  {row.title}")


async def _write(
    store: DataStore,
    auth: AuthContext,
    post_id: str | None,
    changes: dict[str, object],
) -> SubmitOutcome:
    session = await AuthoringSession.open(
        store,
        auth,
        post_id=post_id,
        interval=state.config.autosave.interval_seconds,
    )
    try:
        session.edit(**changes)
        return await session.submitter.submit()
    finally:
        session.close()


@app.command()
def write(
    file: Annotated[Path, typer.Argument(help="File holding the post content.")],
    title: Annotated[
        Optional[str],
        typer.Option("--title", "-t", help="Post title (defaults to the file's first heading)."),
    ] = None,
    post_id: Annotated[
        Optional[str],
        typer.Option("--id", help="Update this existing post instead of creating one."),
    ] = None,
    excerpt: Annotated[Optional[str], typer.Option("--excerpt", help="Brief summary.")] = None,
    image: Annotated[Optional[str], typer.Option("--image", help="Featured image URL.")] = None,
    category: Annotated[Optional[str], typer.Option("--category", help="Category id.")] = None,
    tag: Annotated[Optional[list[str]], typer.Option("--tag", help="Tag id (repeatable).")] = None,
    publish: Annotated[
        Optional[bool],
        typer.Option("--publish/--draft", help="Make the post visible to everyone."),
    ] = None,
) -> None:
    """Save a post from a file, creating it or updating --id."""
    if not file.exists():
        console.print(f"[red]Error:[/red] {file} does not exist")
        raise typer.Exit(1)
    content = file.read_text(encoding="utf-8")
    if title is None:
        first = next((ln for ln in content.splitlines() if ln.strip()), "")
        title = first.lstrip("#").strip()

    changes: dict[str, object] = {"title": title, "content": content}
    if publish is not None:
        changes["published"] = publish
    if excerpt is not None:
        changes["excerpt"] = excerpt
    if image is not None:
        changes["featured_image"] = image
    if category is not None:
        changes["category_id"] = category
    if tag is not None:
        changes["tag_ids"] = set(tag)

    store = _store()
    try:
        outcome = asyncio.run(_write(store, _auth(store), post_id, changes))
    except DraftValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(2) from exc
    except KalamError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    if not outcome.ok:
        console.print(f"[red]Error:[/red] {outcome.message}")
        raise typer.Exit(1)
    console.print(f"[green]{outcome.message}[/green] {outcome.post_id}")


if __name__ == "__main__":
    app()
