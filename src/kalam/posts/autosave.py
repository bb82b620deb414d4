"""Periodic autosave of the draft being authored."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from kalam.posts.models import AutosaveStatus
from kalam.posts.services import save_draft

if TYPE_CHECKING:
    from kalam.posts.session import AuthoringSession

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0


class AutosaveController:
    """Saves the session's draft on a fixed interval.

    States move ``idle → saving → saved`` or ``saving → error``. A tick
    with nothing pending drops back to ``idle``; a tick whose draft lacks
    a title or content does nothing at all. Autosave never publishes.
    """

    def __init__(
        self,
        session: AuthoringSession,
        *,
        interval: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self.session = session
        self.interval = interval
        self.status = AutosaveStatus.IDLE
        self.last_saved: datetime | None = None
        self.last_error: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._inflight: asyncio.Future[AutosaveStatus] | None = None
        self._detached = False

    # ── Lifecycle ────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def preconditions_hold(self) -> bool:
        """Signed in, allowed to write, and done loading the draft."""
        auth = self.session.auth
        return (
            not self._detached
            and auth.is_authenticated
            and auth.is_writer
            and not self.session.loading
        )

    def start(self) -> bool:
        """Start the timer. Returns False when preconditions do not hold.

        Must be called from inside a running event loop. Starting an
        already running timer is a no-op.
        """
        if self.running:
            return True
        if not self.preconditions_hold():
            return False
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="kalam-autosave"
        )
        logger.debug("Autosave timer started (every %ss)", self.interval)
        return True

    def stop(self) -> None:
        """Tear the timer down. A save already in flight is left to finish."""
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Autosave timer stopped")

    def sync(self) -> bool:
        """Start or stop the timer to match the current preconditions."""
        if self.preconditions_hold():
            return self.start()
        self.stop()
        return False

    def detach(self) -> None:
        """Stop for good; any in-flight save finishes unobserved."""
        self._detached = True
        self.stop()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            if not self.preconditions_hold():
                logger.info("Autosave stopped: session can no longer write")
                return
            self._inflight = asyncio.ensure_future(self.tick())
            await asyncio.shield(self._inflight)

    # ── Tick ─────────────────────────────────────────────────────

    async def tick(self) -> AutosaveStatus:
        """Run one autosave step and return the resulting status."""
        session = self.session
        if self._detached:
            return self.status
        if not session.draft.is_complete:
            return self.status
        if not session.has_pending_changes:
            self.status = AutosaveStatus.IDLE
            return self.status
        if session.save_lock.locked():
            logger.debug("Autosave skipped: another save is in flight")
            return self.status
        author_id = session.auth.user_id
        if author_id is None:
            return self.status

        async with session.save_lock:
            snapshot, revision = session.snapshot()
            self.status = AutosaveStatus.SAVING
            try:
                await save_draft(
                    session.store,
                    snapshot,
                    author_id,
                    session.identity,
                    manual=False,
                )
            except Exception as exc:
                if self._detached:
                    return self.status
                logger.warning("Autosave failed", exc_info=True)
                self.status = AutosaveStatus.ERROR
                self.last_error = getattr(exc, "message", None) or str(exc)
                return self.status

            if self._detached:
                return self.status
            session.mark_saved(revision)
            self.status = AutosaveStatus.SAVED
            self.last_saved = datetime.now(tz=UTC)
            self.last_error = None
            return self.status

    # ── Display ──────────────────────────────────────────────────

    def format_last_saved(self, now: datetime | None = None) -> str | None:
        """Human-readable age of the last successful autosave."""
        if self.last_saved is None:
            return None
        now = now or datetime.now(tz=UTC)
        diff = int((now - self.last_saved).total_seconds())
        if diff < 60:
            return "just now"
        if diff < 3600:
            return f"{diff // 60}m ago"
        return self.last_saved.astimezone().strftime("%H:%M:%S")
