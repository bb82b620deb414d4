"""Pure data models for posts and drafts.

All Pydantic models and enums live here. No I/O, no business logic.
Services import from this module; this module only imports from stdlib
and third-party packages.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

POSTS = "posts"
POST_TAGS = "post_tags"
CATEGORIES = "categories"
TAGS = "tags"
PROFILES = "profiles"
USER_ROLES = "user_roles"


class AutosaveStatus(StrEnum):
    """Autosave indicator states."""

    IDLE = "idle"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


class Category(BaseModel):
    """A post category."""

    id: str
    name: str
    slug: str


class Tag(BaseModel):
    """A post tag."""

    id: str
    name: str
    slug: str


# ---------------------------------------------------------------------------
# Draft (in-memory editing state)
# ---------------------------------------------------------------------------


class Draft(BaseModel):
    """The in-memory representation of a post being authored.

    ``id`` stays None until the first successful save. ``was_published``
    and ``published_at`` reflect what was last persisted, not the current
    toggle.
    """

    title: str = ""
    content: str = ""
    excerpt: str = ""
    featured_image: str = ""
    category_id: str | None = None
    tag_ids: set[str] = Field(default_factory=set)
    published: bool = False
    was_published: bool = False
    published_at: datetime | None = None
    id: str | None = None

    @property
    def is_complete(self) -> bool:
        """True when both title and content have non-whitespace text."""
        return bool(self.title.strip() and self.content.strip())


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------


class PostSummary(BaseModel):
    """A published post as listed on the home page."""

    id: str
    title: str
    slug: str
    excerpt: str | None = None
    featured_image: str | None = None
    published_at: datetime | None = None
    created_at: datetime | None = None
    author_id: str
    author_name: str | None = None
    category: Category | None = None
    tags: list[Tag] = Field(default_factory=list)


class PostDetail(BaseModel):
    """A single published post with its body."""

    id: str
    title: str
    content: str
    excerpt: str | None = None
    featured_image: str | None = None
    published_at: datetime | None = None
    created_at: datetime | None = None
    author_id: str
    author_name: str | None = None


class DashboardPost(BaseModel):
    """One row of an author's (or the admin's) post listing."""

    id: str
    title: str
    slug: str
    published: bool = False
    published_at: datetime | None = None
    created_at: datetime | None = None
    author_id: str | None = None
    author_name: str | None = None


class SubmitOutcome(BaseModel):
    """Result of a manual submit."""

    ok: bool
    post_id: str | None = None
    created: bool = False
    error: str | None = None

    @property
    def message(self) -> str:
        if not self.ok:
            return self.error or "Save failed"
        return "Post created!" if self.created else "Post updated!"


class UserWithRoles(BaseModel):
    """A user profile with the roles it holds, for the admin panel."""

    id: str
    full_name: str | None = None
    roles: list[str] = Field(default_factory=list)

    @property
    def is_writer(self) -> bool:
        return "writer" in self.roles or "admin" in self.roles
