from __future__ import annotations
import os
import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from domain.dtos import BlogContent, BlogMetadata

_NON_SLUG = re.compile(r"[^a-z0-9]+")

class DraftValidationError(ValueError):
    pass

def slugify(title: str) -> str:
    return _NON_SLUG.sub("-", title.lower()).strip("-")

def render_frontmatter(meta: BlogMetadata) -> str:
    fields: Dict[str, Any] = {
        "title": meta.title,
        "description": meta.description,
        "publishDate": meta.publish_date,
    }
    if meta.updated_date:
        fields["updatedDate"] = meta.updated_date
    if meta.hero_image:
        fields["heroImage"] = meta.hero_image
    if meta.tags:
        fields["tags"] = list(meta.tags)
    fields["draft"] = bool(meta.draft)
    body = yaml.safe_dump(fields, sort_keys=False, allow_unicode=True)
    return f"---\n{body}---"

def validate_blog_draft(payload: Mapping[str, Any]) -> None:
    """Raise DraftValidationError unless title, description and body are present."""
    meta = payload.get("metadata") or {}
    if not str(meta.get("title", "")).strip():
        raise DraftValidationError("Title is required")
    if not str(meta.get("description", "")).strip():
        raise DraftValidationError("Description is required")
    if not str(payload.get("content", "")).strip():
        raise DraftValidationError("Content is required")

def _as_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))

def blog_content_from_dict(payload: Mapping[str, Any]) -> BlogContent:
    """Build BlogContent from the JSON-shaped draft the editor autosaves."""
    validate_blog_draft(payload)
    meta = payload["metadata"]
    try:
        metadata = BlogMetadata(
            title=str(meta["title"]),
            description=str(meta["description"]),
            publish_date=_as_date(meta.get("publishDate")) or date.today(),
            updated_date=_as_date(meta.get("updatedDate")),
            hero_image=meta.get("heroImage") or None,
            tags=[str(t) for t in meta.get("tags", [])],
            draft=bool(meta.get("draft", True)),
        )
    except ValueError as e:
        raise DraftValidationError(f"Invalid date: {e}") from e
    return BlogContent(metadata=metadata, content=str(payload["content"]))

def blog_content_to_dict(post: BlogContent) -> Dict[str, Any]:
    m = post.metadata
    return {
        "metadata": {
            "title": m.title,
            "description": m.description,
            "publishDate": m.publish_date.isoformat(),
            "updatedDate": m.updated_date.isoformat() if m.updated_date else None,
            "heroImage": m.hero_image,
            "tags": list(m.tags),
            "draft": m.draft,
        },
        "content": post.content,
    }

class MarkdownPostWriter:
    """Writes posts as ``<slug>.md`` files with frontmatter into a content collection."""

    def __init__(self, content_dir: Union[str, Path]) -> None:
        self.content_dir = Path(content_dir)

    def save(self, post: BlogContent) -> Path:
        slug = slugify(post.metadata.title)
        if not slug:
            raise DraftValidationError("Title must contain letters or digits")
        if post.metadata.updated_date is None:
            post.metadata.updated_date = date.today()
        self.content_dir.mkdir(parents=True, exist_ok=True)
        path = self.content_dir / f"{slug}.md"
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(f"{render_frontmatter(post.metadata)}\n\n{post.content}", encoding="utf-8")
        os.replace(tmp, path)
        return path

    async def save_draft(self, payload: Mapping[str, Any]) -> Path:
        return self.save(blog_content_from_dict(payload))
