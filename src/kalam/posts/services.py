"""Persistence services for drafts.

Contains the save protocol shared by autosave and manual submit: slug
derivation, record building, insert-or-update by identity, and the
delete-then-insert relink of tag associations. Imports models from
``kalam.posts.models``.
"""

from __future__ import annotations

import asyncio
import logging
import re
import unicodedata
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from kalam.errors import PostNotFoundError, StoreError
from kalam.posts.models import POST_TAGS, POSTS, Draft
from kalam.store.base import DataStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-+")


def _slug_char(ch: str) -> bool:
    # Letters, digits and combining marks (Devanagari vowel signs) survive.
    if ch in "-_" or ch.isspace():
        return True
    return unicodedata.category(ch)[0] in ("L", "N", "M")


def generate_slug(title: str) -> str:
    """Derive a URL-safe slug from a post title.

    Lower-cases, drops punctuation, turns whitespace runs into single
    hyphens and trims hyphens from both ends.
    """
    text = "".join(ch for ch in title.lower() if _slug_char(ch))
    text = _WHITESPACE_RE.sub("-", text)
    text = _HYPHENS_RE.sub("-", text)
    return text.strip("-")


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class DraftIdentity:
    """Tracks whether a draft has been persisted yet.

    The first assigned id is authoritative for the rest of the session;
    saves before that INSERT, saves after it UPDATE.
    """

    def __init__(
        self,
        post_id: str | None = None,
        on_assigned: Callable[[str], None] | None = None,
    ) -> None:
        self._post_id = post_id
        self._on_assigned = on_assigned

    @property
    def post_id(self) -> str | None:
        return self._post_id

    @property
    def is_persisted(self) -> bool:
        return self._post_id is not None

    def assign(self, post_id: str) -> None:
        """Record the id generated by the first INSERT."""
        if self._post_id is not None:
            raise RuntimeError(
                f"Draft already has identity {self._post_id!r}, refusing {post_id!r}"
            )
        self._post_id = post_id
        logger.info("Draft persisted as %s", post_id)
        if self._on_assigned is not None:
            self._on_assigned(post_id)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def resolve_published_at(draft: Draft, now: datetime) -> datetime | None:
    """Publish timestamp to write on a manual submit.

    Set on a false→true transition, kept while the post stays published,
    cleared when unpublishing.
    """
    if not draft.published:
        return None
    if draft.was_published and draft.published_at is not None:
        return draft.published_at
    return now


def build_post_record(
    draft: Draft,
    author_id: str,
    *,
    manual: bool,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build the ``posts`` row for a save.

    Autosave rows leave the publish fields out entirely so they never
    change what a manual submit decided; an autosave INSERT adds
    ``published = false`` itself.
    """
    record: dict[str, Any] = {
        "title": draft.title,
        "slug": generate_slug(draft.title),
        "content": draft.content,
        "excerpt": draft.excerpt or None,
        "featured_image": draft.featured_image or None,
        "author_id": author_id,
        "category_id": draft.category_id,
    }
    if manual:
        published_at = resolve_published_at(draft, now or datetime.now(tz=UTC))
        record["published"] = draft.published
        record["published_at"] = published_at.isoformat() if published_at else None
    return record


@dataclass
class SaveResult:
    """Outcome of one successful run of the save protocol."""

    post_id: str
    created: bool
    record: dict[str, Any]


# ---------------------------------------------------------------------------
# Save protocol
# ---------------------------------------------------------------------------


async def replace_post_tags(store: DataStore, post_id: str, tag_ids: Iterable[str]) -> None:
    """Make the stored tag associations of ``post_id`` equal ``tag_ids``.

    Deletes every existing association, then inserts the new set in one
    call. The two steps are not atomic: a failure between them leaves the
    post untagged until the next successful save.
    """
    await asyncio.to_thread(store.delete_where, POST_TAGS, {"post_id": post_id})
    rows = [{"post_id": post_id, "tag_id": tag_id} for tag_id in sorted(set(tag_ids))]
    if rows:
        await asyncio.to_thread(store.insert, POST_TAGS, rows)


async def save_draft(
    store: DataStore,
    draft: Draft,
    author_id: str,
    identity: DraftIdentity,
    *,
    manual: bool,
    now: datetime | None = None,
) -> SaveResult:
    """Persist ``draft`` and relink its tags.

    ``draft`` should be a snapshot taken when the save started; the tag
    set written is exactly its ``tag_ids``.

    Raises:
        StoreError: If any step fails.
    """
    record = build_post_record(draft, author_id, manual=manual, now=now)
    created = False

    post_id = identity.post_id
    if post_id is None:
        if not manual:
            record["published"] = False
        rows = await asyncio.to_thread(store.insert, POSTS, record)
        if not rows or not rows[0].get("id"):
            raise StoreError("Insert did not return the new post id")
        post_id = str(rows[0]["id"])
        identity.assign(post_id)
        created = True
    else:
        await asyncio.to_thread(store.update, POSTS, {"id": post_id}, record)

    await replace_post_tags(store, post_id, draft.tag_ids)
    logger.debug(
        "Saved post %s (%s, %d tags, manual=%s)",
        post_id,
        "insert" if created else "update",
        len(draft.tag_ids),
        manual,
    )
    return SaveResult(post_id=post_id, created=created, record=record)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_draft(store: DataStore, post_id: str, author_id: str) -> Draft:
    """Load an existing post for editing, restricted to its author.

    Raises:
        PostNotFoundError: If no such post belongs to ``author_id``.
    """
    data = store.find(POSTS, {"id": post_id, "author_id": author_id})
    if data is None:
        raise PostNotFoundError("Post not found")

    tag_rows = store.select(POST_TAGS, {"post_id": post_id}, columns=["tag_id"])
    return Draft(
        id=post_id,
        title=data.get("title") or "",
        content=data.get("content") or "",
        excerpt=data.get("excerpt") or "",
        featured_image=data.get("featured_image") or "",
        category_id=data.get("category_id"),
        tag_ids={row["tag_id"] for row in tag_rows},
        published=bool(data.get("published")),
        was_published=bool(data.get("published")),
        published_at=data.get("published_at"),
    )
