"""Public reading of published posts."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from kalam.errors import PostNotFoundError
from kalam.posts.models import (
    CATEGORIES,
    POST_TAGS,
    POSTS,
    PROFILES,
    TAGS,
    Category,
    PostDetail,
    PostSummary,
    Tag,
)
from kalam.store.base import DataStore

logger = logging.getLogger(__name__)

_SUMMARY_COLUMNS = [
    "id",
    "title",
    "slug",
    "excerpt",
    "featured_image",
    "published_at",
    "created_at",
    "author_id",
    "category_id",
]


def list_categories(store: DataStore) -> list[Category]:
    """All categories, by name."""
    rows = store.select(CATEGORIES, columns=["id", "name", "slug"], order="name")
    return [Category.model_validate(r) for r in rows]


def list_tags(store: DataStore) -> list[Tag]:
    """All tags, by name."""
    rows = store.select(TAGS, columns=["id", "name", "slug"], order="name")
    return [Tag.model_validate(r) for r in rows]


def author_names(store: DataStore, author_ids: Iterable[str]) -> dict[str, str | None]:
    """Map user ids to profile display names."""
    ids = sorted(set(author_ids))
    if not ids:
        return {}
    rows = store.select(PROFILES, in_=("user_id", ids), columns=["user_id", "full_name"])
    return {r["user_id"]: r.get("full_name") for r in rows}


def list_published_posts(
    store: DataStore,
    *,
    category_id: str | None = None,
    tag_ids: Iterable[str] | None = None,
) -> list[PostSummary]:
    """Published posts, newest first, with author, category and tags.

    ``category_id`` filters in the query. ``tag_ids`` keeps posts that
    carry at least one of the given tags.
    """
    filters: dict[str, object] = {"published": True}
    if category_id:
        filters["category_id"] = category_id
    rows = store.select(
        POSTS,
        filters,
        columns=_SUMMARY_COLUMNS,
        order="published_at",
        descending=True,
    )
    if not rows:
        return []

    names = author_names(store, (r["author_id"] for r in rows))

    category_ids = sorted({r["category_id"] for r in rows if r.get("category_id")})
    categories: dict[str, Category] = {}
    if category_ids:
        for c in store.select(CATEGORIES, in_=("id", category_ids), columns=["id", "name", "slug"]):
            categories[c["id"]] = Category.model_validate(c)

    links = store.select(
        POST_TAGS,
        in_=("post_id", [r["id"] for r in rows]),
        columns=["post_id", "tag_id"],
    )
    tag_map: dict[str, Tag] = {}
    linked_tag_ids = sorted({link["tag_id"] for link in links})
    if linked_tag_ids:
        for t in store.select(TAGS, in_=("id", linked_tag_ids), columns=["id", "name", "slug"]):
            tag_map[t["id"]] = Tag.model_validate(t)
    post_tags: dict[str, list[Tag]] = {}
    for link in links:
        tag = tag_map.get(link["tag_id"])
        if tag is not None:
            post_tags.setdefault(link["post_id"], []).append(tag)

    posts = [
        PostSummary(
            id=r["id"],
            title=r["title"],
            slug=r["slug"],
            excerpt=r.get("excerpt"),
            featured_image=r.get("featured_image"),
            published_at=r.get("published_at"),
            created_at=r.get("created_at"),
            author_id=r["author_id"],
            author_name=names.get(r["author_id"]),
            category=categories.get(r.get("category_id") or ""),
            tags=sorted(post_tags.get(r["id"], []), key=lambda t: t.name),
        )
        for r in rows
    ]

    wanted = set(tag_ids or [])
    if wanted:
        posts = [p for p in posts if any(t.id in wanted for t in p.tags)]
    logger.debug("Listed %d published posts", len(posts))
    return posts


def get_published_post(store: DataStore, slug: str) -> PostDetail:
    """Fetch one published post by slug.

    Raises:
        PostNotFoundError: If no published post has this slug.
    """
    data = store.find(POSTS, {"slug": slug, "published": True})
    if data is None:
        raise PostNotFoundError(f"No published post with slug {slug!r}")
    names = author_names(store, [data["author_id"]])
    return PostDetail(
        id=data["id"],
        title=data["title"],
        content=data.get("content") or "",
        excerpt=data.get("excerpt"),
        featured_image=data.get("featured_image"),
        published_at=data.get("published_at"),
        created_at=data.get("created_at"),
        author_id=data["author_id"],
        author_name=names.get(data["author_id"]),
    )
