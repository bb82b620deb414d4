"""Authoring session: one draft being written or edited.

Owns the draft, its identity, the externally visible address, change
tracking, the autosave controller and the manual submit handler. Both
save paths share ``save_lock`` so only one save is ever in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Any

from kalam.auth import AuthContext
from kalam.posts.autosave import DEFAULT_INTERVAL_SECONDS, AutosaveController
from kalam.posts.models import Draft
from kalam.posts.services import DraftIdentity, load_draft
from kalam.posts.submit import ManualSubmitHandler
from kalam.store.base import DataStore

logger = logging.getLogger(__name__)

# Fields whose edits count as unsaved changes. ``published`` only takes
# effect on manual submit, so toggling it does not trigger autosave.
TRACKED_FIELDS = frozenset(
    {"title", "content", "excerpt", "featured_image", "category_id", "tag_ids"}
)
EDITABLE_FIELDS = TRACKED_FIELDS | {"published"}


class AuthoringSession:
    """A single editing session for a new or existing post."""

    def __init__(
        self,
        store: DataStore,
        auth: AuthContext,
        *,
        post_id: str | None = None,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        on_identity: Callable[[str], None] | None = None,
        on_navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.store = store
        self.auth = auth
        self.draft = Draft(id=post_id)
        self.identity = DraftIdentity(post_id, on_assigned=self._identity_assigned)
        self.address = self._address_for(post_id)
        self.loading = post_id is not None
        self.save_lock = asyncio.Lock()
        self._on_identity = on_identity
        self._revision = 0
        self._saved_revision = 0
        self.autosave = AutosaveController(self, interval=interval)
        self.submitter = ManualSubmitHandler(self, on_navigate=on_navigate)

    @classmethod
    async def open(
        cls,
        store: DataStore,
        auth: AuthContext,
        *,
        post_id: str | None = None,
        **kwargs: Any,
    ) -> AuthoringSession:
        """Create a session, load the post if editing, and start autosave.

        Raises:
            PermissionDeniedError: If the user cannot write.
            PostNotFoundError: If ``post_id`` is not one of the user's posts.
        """
        auth.require_writer()
        session = cls(store, auth, post_id=post_id, **kwargs)
        await session.load()
        session.autosave.start()
        return session

    # ── Loading ──────────────────────────────────────────────────

    async def load(self) -> None:
        """Load the existing post into the draft, if there is one."""
        post_id = self.identity.post_id
        if post_id is None:
            self.loading = False
            return
        author_id = self.auth.require_writer()
        self.draft = await asyncio.to_thread(load_draft, self.store, post_id, author_id)
        self._saved_revision = self._revision
        self.loading = False
        logger.debug("Loaded post %s for editing", post_id)

    # ── Editing ──────────────────────────────────────────────────

    def edit(self, **changes: Any) -> None:
        """Apply field edits to the draft and record unsaved changes."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
        if "tag_ids" in changes:
            changes["tag_ids"] = set(changes["tag_ids"])
        for field, value in changes.items():
            setattr(self.draft, field, value)
        if TRACKED_FIELDS & set(changes):
            self._revision += 1

    def add_tag(self, tag_id: str) -> None:
        self.edit(tag_ids=self.draft.tag_ids | {tag_id})

    def remove_tag(self, tag_id: str) -> None:
        self.edit(tag_ids=self.draft.tag_ids - {tag_id})

    def set_tags(self, tag_ids: Iterable[str]) -> None:
        self.edit(tag_ids=set(tag_ids))

    @property
    def has_pending_changes(self) -> bool:
        return self._revision != self._saved_revision

    def snapshot(self) -> tuple[Draft, int]:
        """Copy of the draft plus the revision it reflects."""
        return self.draft.model_copy(deep=True), self._revision

    def mark_saved(self, revision: int) -> None:
        """Record that everything up to ``revision`` is persisted."""
        if revision > self._saved_revision:
            self._saved_revision = revision

    # ── Identity / address ───────────────────────────────────────

    @staticmethod
    def _address_for(post_id: str | None) -> str:
        return f"/write/{post_id}" if post_id else "/write"

    def _identity_assigned(self, post_id: str) -> None:
        self.draft.id = post_id
        self.address = self._address_for(post_id)
        if self._on_identity is not None:
            self._on_identity(post_id)

    # ── Teardown ─────────────────────────────────────────────────

    def close(self) -> None:
        """Stop autosave. Saves already in flight finish unobserved."""
        self.autosave.detach()
