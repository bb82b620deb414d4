"""Authenticated user context and role lookup."""

from __future__ import annotations

import logging
from enum import StrEnum

from pydantic import BaseModel, Field

from kalam.errors import PermissionDeniedError, StoreError
from kalam.posts.models import USER_ROLES
from kalam.store.base import DataStore

logger = logging.getLogger(__name__)


class Role(StrEnum):
    """Roles a user may hold."""

    READER = "reader"
    WRITER = "writer"
    ADMIN = "admin"


class AuthContext(BaseModel):
    """Who is acting, and with which roles.

    Passed explicitly to every service that needs it instead of being
    looked up from ambient state.
    """

    user_id: str | None = None
    roles: set[Role] = Field(default_factory=set)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_writer(self) -> bool:
        return Role.WRITER in self.roles or Role.ADMIN in self.roles

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    def require_writer(self) -> str:
        """Return the user id, or raise if the user cannot write."""
        if self.user_id is None or not self.is_writer:
            raise PermissionDeniedError("You need writer permissions to access this page")
        return self.user_id

    def require_admin(self) -> str:
        """Return the user id, or raise if the user is not an admin."""
        if self.user_id is None or not self.is_admin:
            raise PermissionDeniedError("Access denied. Admin only.")
        return self.user_id


def fetch_roles(store: DataStore, user_id: str) -> set[Role]:
    """Look up the roles held by ``user_id``.

    A failed lookup yields no roles rather than an error.
    """
    try:
        rows = store.select(USER_ROLES, {"user_id": user_id}, columns=["role"])
    except StoreError:
        logger.warning("Role lookup failed for %s", user_id, exc_info=True)
        return set()
    roles: set[Role] = set()
    for row in rows:
        try:
            roles.add(Role(row["role"]))
        except (KeyError, ValueError):
            logger.debug("Ignoring unknown role row %r", row)
    return roles


def load_auth_context(store: DataStore, user_id: str | None) -> AuthContext:
    """Build the auth context for ``user_id`` (anonymous when None)."""
    if user_id is None:
        return AuthContext()
    return AuthContext(user_id=user_id, roles=fetch_roles(store, user_id))
