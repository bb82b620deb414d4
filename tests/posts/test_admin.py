"""Tests for dashboard and admin services."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from helpers import AUTHOR_ID

from kalam.auth import load_auth_context
from kalam.errors import PermissionDeniedError, PostNotFoundError
from kalam.posts.admin import (
    create_category,
    create_tag,
    delete_post,
    list_all_posts,
    list_author_posts,
    list_users,
    set_post_published,
    set_writer_role,
)
from kalam.posts.models import POST_TAGS, POSTS, PROFILES, USER_ROLES


@pytest.fixture
def seeded(store):
    store.insert(PROFILES, [{"user_id": AUTHOR_ID, "full_name": "Author"}])
    store.insert(
        POSTS,
        [
            {"id": "mine-1", "title": "A", "slug": "a", "author_id": AUTHOR_ID,
             "published": False, "created_at": "2026-01-01T00:00:00+00:00"},
            {"id": "mine-2", "title": "B", "slug": "b", "author_id": AUTHOR_ID,
             "published": True, "created_at": "2026-02-01T00:00:00+00:00"},
            {"id": "theirs", "title": "C", "slug": "c", "author_id": "other",
             "published": True, "created_at": "2026-03-01T00:00:00+00:00"},
        ],
    )
    store.insert(POST_TAGS, [{"post_id": "mine-1", "tag_id": "t"}])
    return store


class TestDashboard:
    def test_lists_only_own_posts_newest_first(self, seeded, writer):
        posts = list_author_posts(seeded, writer)
        assert [p.id for p in posts] == ["mine-2", "mine-1"]

    def test_reader_denied(self, seeded, reader):
        with pytest.raises(PermissionDeniedError):
            list_author_posts(seeded, reader)

    def test_delete_own_post_and_tags(self, seeded, writer):
        delete_post(seeded, writer, "mine-1")
        assert seeded.find(POSTS, {"id": "mine-1"}) is None
        assert seeded.select(POST_TAGS, {"post_id": "mine-1"}) == []

    def test_cannot_delete_others_post(self, seeded, writer):
        with pytest.raises(PostNotFoundError):
            delete_post(seeded, writer, "theirs")
        assert seeded.find(POSTS, {"id": "theirs"}) is not None

    def test_admin_deletes_any_post(self, seeded, admin):
        delete_post(seeded, admin, "theirs")
        assert seeded.find(POSTS, {"id": "theirs"}) is None


class TestAdmin:
    def test_writer_cannot_use_admin(self, seeded, writer):
        with pytest.raises(PermissionDeniedError):
            list_all_posts(seeded, writer)

    def test_all_posts_with_author_names(self, seeded, admin):
        posts = list_all_posts(seeded, admin)
        assert [p.id for p in posts] == ["theirs", "mine-2", "mine-1"]
        assert posts[1].author_name == "Author"
        assert posts[0].author_name is None

    def test_toggle_published(self, seeded, admin):
        now = datetime(2026, 4, 1, tzinfo=UTC)
        set_post_published(seeded, admin, "mine-1", True, now=now)
        row = seeded.find(POSTS, {"id": "mine-1"})
        assert row["published"] is True
        assert row["published_at"] == now.isoformat()

        set_post_published(seeded, admin, "mine-1", False)
        row = seeded.find(POSTS, {"id": "mine-1"})
        assert row["published"] is False
        assert row["published_at"] is None

    def test_grant_and_revoke_writer(self, seeded, admin):
        set_writer_role(seeded, admin, "newbie", True)
        set_writer_role(seeded, admin, "newbie", True)
        assert len(seeded.select(USER_ROLES, {"user_id": "newbie"})) == 1
        assert load_auth_context(seeded, "newbie").is_writer

        set_writer_role(seeded, admin, "newbie", False)
        assert not load_auth_context(seeded, "newbie").is_writer

    def test_list_users_with_roles(self, seeded, admin):
        seeded.insert(USER_ROLES, [{"user_id": AUTHOR_ID, "role": "writer"}])
        [user] = list_users(seeded, admin)
        assert user.id == AUTHOR_ID
        assert user.roles == ["writer"]
        assert user.is_writer

    def test_create_taxonomy(self, store, admin):
        category = create_category(store, admin, "Short Stories")
        tag = create_tag(store, admin, "Hindi Poetry")
        assert category.slug == "short-stories"
        assert tag.slug == "hindi-poetry"
        assert category.id
