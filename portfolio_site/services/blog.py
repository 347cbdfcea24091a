from __future__ import annotations

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import yaml

from portfolio_site.core.models import BlogPost

logger = logging.getLogger(__name__)

POST_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-]*$")
_FRONT_MATTER_RE = re.compile(r"\A---\s*\r?\n(.*?)\r?\n---\s*(?:\r?\n|\Z)", re.DOTALL)


class PostNotFoundError(LookupError):
    pass


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Return ``(metadata, body)`` for a markdown document with optional YAML front matter."""
    m = _FRONT_MATTER_RE.match(text)
    if not m:
        return {}, text
    try:
        meta = yaml.safe_load(m.group(1)) or {}
    except yaml.YAMLError as exc:
        logger.warning("Invalid front matter: %s", exc)
        meta = {}
    if not isinstance(meta, dict):
        meta = {}
    return meta, text[m.end():]


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def _tags(value: Any) -> list[str]:
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    if isinstance(value, list):
        return [str(t) for t in value]
    return []


class BlogRepository:
    def __init__(self, posts_dir: Path):
        self.posts_dir = Path(posts_dir)

    def _post_files(self) -> list[Path]:
        if not self.posts_dir.is_dir():
            return []
        return sorted(p for p in self.posts_dir.iterdir() if p.is_file() and p.suffix == ".md")

    def _build(self, post_id: str, text: str, with_content: bool) -> BlogPost:
        meta, body = split_front_matter(text)
        return BlogPost(
            id=post_id,
            title=_as_text(meta.get("title")),
            date=_as_text(meta.get("date")),
            description=_as_text(meta.get("description")),
            tags=_tags(meta.get("tags")),
            content=body.strip() if with_content else None,
        )

    def get_sorted_posts(self) -> list[BlogPost]:
        """Post metadata, newest first."""
        posts = [
            self._build(path.stem, path.read_text(encoding="utf-8"), with_content=False)
            for path in self._post_files()
        ]
        return sorted(posts, key=lambda p: p.date or "", reverse=True)

    def get_all_post_ids(self) -> list[str]:
        return [path.stem for path in self._post_files()]

    def get_post(self, post_id: str) -> BlogPost:
        if not POST_ID_RE.match(post_id):
            raise PostNotFoundError(post_id)
        path = self.posts_dir / f"{post_id}.md"
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise PostNotFoundError(post_id) from exc
        return self._build(post_id, text, with_content=True)
