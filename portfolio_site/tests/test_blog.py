from __future__ import annotations

from pathlib import Path

import pytest

from portfolio_site.services.blog import BlogRepository, PostNotFoundError, split_front_matter


@pytest.fixture
def repo(tmp_path: Path) -> BlogRepository:
    posts = tmp_path / "posts"
    posts.mkdir()
    (posts / "older.md").write_text(
        "---\ntitle: Older\ndate: 2023-05-01\ntags: python, finance\n---\nBody one.\n", encoding="utf-8"
    )
    (posts / "newer.md").write_text(
        '---\ntitle: "Newer"\ndate: "2024-01-15"\ndescription: Latest notes\ntags: [dashboards]\n---\n# Heading\n',
        encoding="utf-8",
    )
    (posts / "plain.md").write_text("No front matter here.\n", encoding="utf-8")
    (posts / "notes.txt").write_text("ignored", encoding="utf-8")
    return BlogRepository(posts)


def test_split_front_matter() -> None:
    meta, body = split_front_matter("---\ntitle: Hi\n---\nText")
    assert meta == {"title": "Hi"}
    assert body == "Text"
    assert split_front_matter("Just text") == ({}, "Just text")


def test_posts_sorted_newest_first(repo: BlogRepository) -> None:
    posts = repo.get_sorted_posts()
    assert [p.id for p in posts] == ["newer", "older", "plain"]
    assert posts[0].description == "Latest notes"
    assert posts[0].tags == ["dashboards"]
    assert posts[1].date == "2023-05-01"
    assert posts[1].tags == ["python", "finance"]
    assert all(p.content is None for p in posts)


def test_post_ids_only_cover_markdown(repo: BlogRepository) -> None:
    assert repo.get_all_post_ids() == ["newer", "older", "plain"]


def test_get_post_returns_markdown_body(repo: BlogRepository) -> None:
    post = repo.get_post("newer")
    assert post.title == "Newer"
    assert post.content == "# Heading"
    assert repo.get_post("plain").content == "No front matter here."


@pytest.mark.parametrize("post_id", ["missing", "../secrets", ""])
def test_unknown_post_raises(repo: BlogRepository, post_id: str) -> None:
    with pytest.raises(PostNotFoundError):
        repo.get_post(post_id)


def test_missing_posts_dir_is_empty(tmp_path: Path) -> None:
    repo = BlogRepository(tmp_path / "nope")
    assert repo.get_sorted_posts() == []
    assert repo.get_all_post_ids() == []
