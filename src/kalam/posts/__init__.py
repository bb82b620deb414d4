"""Post authoring, reading and administration.

Drafts are edited in an ``AuthoringSession`` (``kalam.posts.session``),
saved periodically by autosave and explicitly by manual submit, both
through the save protocol in ``kalam.posts.services``.
"""

from kalam.posts.models import (
    AutosaveStatus,
    Category,
    DashboardPost,
    Draft,
    PostDetail,
    PostSummary,
    SubmitOutcome,
    Tag,
    UserWithRoles,
)
from kalam.posts.services import (
    DraftIdentity,
    build_post_record,
    generate_slug,
    load_draft,
    replace_post_tags,
    save_draft,
)

__all__ = [
    "AutosaveStatus",
    "Category",
    "DashboardPost",
    "Draft",
    "DraftIdentity",
    "PostDetail",
    "PostSummary",
    "SubmitOutcome",
    "Tag",
    "UserWithRoles",
    "build_post_record",
    "generate_slug",
    "load_draft",
    "replace_post_tags",
    "save_draft",
]
