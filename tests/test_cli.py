"""Smoke tests for the CLI."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from kalam import config as config_module
from kalam.cli import app
from kalam.posts.models import POSTS, USER_ROLES
from kalam.store.json_store import JsonStore


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def store_path(tmp_path: Path, monkeypatch) -> Path:
    """A local store where user ``u1`` is a writer."""
    for var in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "KALAM_ACCESS_TOKEN", "KALAM_STORE_PATH"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "GLOBAL_CONFIG", tmp_path / "missing.toml")
    path = tmp_path / "store.json"
    JsonStore(path).insert(USER_ROLES, {"user_id": "u1", "role": "writer"})
    return path


def _invoke(runner: CliRunner, store_path: Path, *args: str):
    return runner.invoke(app, ["--store", str(store_path), "--user", "u1", *args])


class TestCLI:
    def test_version(self, runner: CliRunner):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "kalam" in result.output

    def test_help(self, runner: CliRunner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "write" in result.output

    def test_no_posts(self, runner: CliRunner, store_path: Path):
        result = _invoke(runner, store_path, "posts")
        assert result.exit_code == 0
        assert "No posts yet" in result.output

    def test_write_publish_then_read(self, runner: CliRunner, store_path: Path, tmp_path: Path):
        post = tmp_path / "post.md"
        post.write_text("# Hello World\n\nBody text\n", encoding="utf-8")

        result = _invoke(runner, store_path, "write", str(post), "--publish", "--tag", "t1")
        assert result.exit_code == 0, result.output
        assert "Post created!" in result.output

        [row] = JsonStore(store_path).select(POSTS)
        assert row["slug"] == "hello-world"
        assert row["published"] is True

        listed = _invoke(runner, store_path, "posts")
        assert "hello-world" in listed.output

        shown = _invoke(runner, store_path, "read", "hello-world")
        assert shown.exit_code == 0
        assert "Body text" in shown.output

    def test_write_draft_shows_on_dashboard(self, runner: CliRunner, store_path: Path, tmp_path: Path):
        post = tmp_path / "draft.md"
        post.write_text("Still thinking", encoding="utf-8")

        result = _invoke(runner, store_path, "write", str(post), "--title", "Draft One")
        assert result.exit_code == 0, result.output

        dashboard = _invoke(runner, store_path, "dashboard")
        assert "Draft One" in dashboard.output
        assert "Draft" in dashboard.output
        assert "hello" not in _invoke(runner, store_path, "posts").output

    def test_update_existing(self, runner: CliRunner, store_path: Path, tmp_path: Path):
        post = tmp_path / "post.md"
        post.write_text("# First\n\nBody", encoding="utf-8")
        _invoke(runner, store_path, "write", str(post))
        [row] = JsonStore(store_path).select(POSTS)

        result = _invoke(runner, store_path, "write", str(post), "--id", row["id"], "--title", "Renamed")
        assert result.exit_code == 0, result.output
        assert "Post updated!" in result.output
        [updated] = JsonStore(store_path).select(POSTS)
        assert updated["title"] == "Renamed"

    def test_read_missing(self, runner: CliRunner, store_path: Path):
        result = _invoke(runner, store_path, "read", "nope")
        assert result.exit_code == 1

    def test_reader_cannot_write(self, runner: CliRunner, store_path: Path, tmp_path: Path):
        post = tmp_path / "post.md"
        post.write_text("# T\n\nC", encoding="utf-8")
        result = runner.invoke(app, ["--store", str(store_path), "--user", "nobody", "write", str(post)])
        assert result.exit_code == 1
        assert "writer permissions" in result.output

    def test_empty_file_is_rejected(self, runner: CliRunner, store_path: Path, tmp_path: Path):
        post = tmp_path / "empty.md"
        post.write_text("", encoding="utf-8")
        result = _invoke(runner, store_path, "write", str(post))
        assert result.exit_code == 2
