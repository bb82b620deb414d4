"""Author dashboard and admin services.

Writers manage their own posts; admins see every post, toggle publish
state, grant or revoke the writer role, and maintain the taxonomy.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from kalam.auth import AuthContext, Role
from kalam.errors import PostNotFoundError
from kalam.posts.models import (
    CATEGORIES,
    POST_TAGS,
    POSTS,
    PROFILES,
    TAGS,
    USER_ROLES,
    Category,
    DashboardPost,
    Tag,
    UserWithRoles,
)
from kalam.posts.reader import author_names
from kalam.posts.services import generate_slug
from kalam.store.base import DataStore

logger = logging.getLogger(__name__)

_DASHBOARD_COLUMNS = ["id", "title", "slug", "published", "published_at", "created_at", "author_id"]


# ---------------------------------------------------------------------------
# Dashboard (writers)
# ---------------------------------------------------------------------------


def list_author_posts(store: DataStore, auth: AuthContext) -> list[DashboardPost]:
    """The current writer's posts, newest first, drafts included."""
    author_id = auth.require_writer()
    rows = store.select(
        POSTS,
        {"author_id": author_id},
        columns=_DASHBOARD_COLUMNS,
        order="created_at",
        descending=True,
    )
    return [DashboardPost.model_validate(r) for r in rows]


def delete_post(store: DataStore, auth: AuthContext, post_id: str) -> None:
    """Delete a post and its tag associations.

    Writers may delete only their own posts; admins may delete any.

    Raises:
        PostNotFoundError: If the post is not visible to the caller.
    """
    user_id = auth.require_writer()
    filters: dict[str, str] = {"id": post_id}
    if not auth.is_admin:
        filters["author_id"] = user_id
    if store.find(POSTS, filters) is None:
        raise PostNotFoundError("Post not found")
    store.delete_where(POST_TAGS, {"post_id": post_id})
    store.delete_where(POSTS, filters)
    logger.info("Deleted post %s", post_id)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


def list_all_posts(store: DataStore, auth: AuthContext) -> list[DashboardPost]:
    """Every post with its author's name."""
    auth.require_admin()
    rows = store.select(POSTS, columns=_DASHBOARD_COLUMNS, order="created_at", descending=True)
    names = author_names(store, (r["author_id"] for r in rows if r.get("author_id")))
    posts = []
    for r in rows:
        post = DashboardPost.model_validate(r)
        post.author_name = names.get(post.author_id or "")
        posts.append(post)
    return posts


def set_post_published(
    store: DataStore,
    auth: AuthContext,
    post_id: str,
    published: bool,
    now: datetime | None = None,
) -> None:
    """Publish or unpublish any post."""
    auth.require_admin()
    published_at = (now or datetime.now(tz=UTC)).isoformat() if published else None
    store.update(POSTS, {"id": post_id}, {"published": published, "published_at": published_at})
    logger.info("Post %s %s", post_id, "published" if published else "unpublished")


def list_users(store: DataStore, auth: AuthContext) -> list[UserWithRoles]:
    """All profiles with the roles each one holds."""
    auth.require_admin()
    profiles = store.select(PROFILES, columns=["user_id", "full_name"])
    role_rows = store.select(USER_ROLES, columns=["user_id", "role"])
    roles: dict[str, list[str]] = {}
    for row in role_rows:
        roles.setdefault(row["user_id"], []).append(row["role"])
    return [
        UserWithRoles(
            id=p["user_id"],
            full_name=p.get("full_name"),
            roles=sorted(roles.get(p["user_id"], [])),
        )
        for p in profiles
    ]


def set_writer_role(store: DataStore, auth: AuthContext, user_id: str, grant: bool) -> None:
    """Grant or revoke the writer role."""
    auth.require_admin()
    if grant:
        existing = store.find(USER_ROLES, {"user_id": user_id, "role": Role.WRITER.value})
        if existing is None:
            store.insert(USER_ROLES, {"user_id": user_id, "role": Role.WRITER.value})
        logger.info("Writer role assigned to %s", user_id)
    else:
        store.delete_where(USER_ROLES, {"user_id": user_id, "role": Role.WRITER.value})
        logger.info("Writer role removed from %s", user_id)


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


def create_category(store: DataStore, auth: AuthContext, name: str) -> Category:
    auth.require_admin()
    rows = store.insert(CATEGORIES, {"name": name, "slug": generate_slug(name)})
    return Category.model_validate(rows[0])


def create_tag(store: DataStore, auth: AuthContext, name: str) -> Tag:
    auth.require_admin()
    rows = store.insert(TAGS, {"name": name, "slug": generate_slug(name)})
    return Tag.model_validate(rows[0])
