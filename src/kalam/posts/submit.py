"""Explicit save/publish of the draft being authored."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from kalam.errors import DraftValidationError, StoreError
from kalam.posts.models import SubmitOutcome
from kalam.posts.services import save_draft

if TYPE_CHECKING:
    from kalam.posts.session import AuthoringSession

logger = logging.getLogger(__name__)

DASHBOARD_ADDRESS = "/dashboard"


class ManualSubmitHandler:
    """User-triggered save that may publish or unpublish the post.

    Always writes, whether or not anything changed since the last save.
    """

    def __init__(
        self,
        session: AuthoringSession,
        on_navigate: Callable[[str], None] | None = None,
    ) -> None:
        self.session = session
        self.on_navigate = on_navigate
        self.saving = False

    async def submit(self, now: datetime | None = None) -> SubmitOutcome:
        """Save the draft, including its publish state.

        Raises:
            PermissionDeniedError: If the user cannot write.
            DraftValidationError: If the title or content is empty.
        """
        session = self.session
        if self.saving:
            return SubmitOutcome(ok=False, error="A save is already in progress")

        author_id = session.auth.require_writer()
        if not session.draft.title.strip():
            raise DraftValidationError("Title is required")
        if not session.draft.content.strip():
            raise DraftValidationError("Content is required")

        self.saving = True
        try:
            async with session.save_lock:
                snapshot, revision = session.snapshot()
                try:
                    result = await save_draft(
                        session.store,
                        snapshot,
                        author_id,
                        session.identity,
                        manual=True,
                        now=now or datetime.now(tz=UTC),
                    )
                except StoreError as exc:
                    logger.warning("Submit of %s failed: %s", snapshot.title, exc.message)
                    return SubmitOutcome(ok=False, error=exc.message)

                session.mark_saved(revision)
                session.draft.was_published = bool(result.record.get("published"))
                published_at = result.record.get("published_at")
                session.draft.published_at = (
                    datetime.fromisoformat(published_at) if published_at else None
                )
        finally:
            self.saving = False

        outcome = SubmitOutcome(ok=True, post_id=result.post_id, created=result.created)
        logger.info("%s (%s)", outcome.message, result.post_id)
        if self.on_navigate is not None:
            self.on_navigate(DASHBOARD_ADDRESS)
        return outcome
