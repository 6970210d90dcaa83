from __future__ import annotations

import asyncio
from datetime import date

import pytest
import yaml

from domain.dtos import BlogContent, BlogMetadata
from services.blog_posts import (
    DraftValidationError,
    MarkdownPostWriter,
    blog_content_from_dict,
    blog_content_to_dict,
    render_frontmatter,
    slugify,
)


def test_slugify() -> None:
    assert slugify("React vs Vue: A Comparison") == "react-vs-vue-a-comparison"
    assert slugify("  Spaces  Everywhere  ") == "spaces-everywhere"
    assert slugify("C++ & Rust!!") == "c-rust"
    assert slugify("???") == ""


def test_frontmatter() -> None:
    meta = BlogMetadata(
        title='Say "hi"',
        description="Intro",
        publish_date=date(2024, 1, 1),
        tags=["python", "web"],
        draft=False,
        hero_image="/images/hero.png",
    )
    text = render_frontmatter(meta)
    assert text.startswith("---\ntitle: ")
    assert text.endswith("\n---")
    assert yaml.safe_load(text.strip("-")) == {
        "title": 'Say "hi"',
        "description": "Intro",
        "publishDate": date(2024, 1, 1),
        "heroImage": "/images/hero.png",
        "tags": ["python", "web"],
        "draft": False,
    }
    assert list(yaml.safe_load(text.strip("-"))) == ["title", "description", "publishDate", "heroImage", "tags", "draft"]


def test_frontmatter_keeps_backslashes_and_newlines() -> None:
    meta = BlogMetadata(
        title="Paths like C:\\new\\x",
        description="line one\nline two",
        publish_date=date(2024, 1, 1),
        updated_date=date(2024, 2, 1),
        tags=["back\\slash", "multi\nline"],
        hero_image="C:\\images\\hero.png",
    )
    doc = yaml.safe_load(render_frontmatter(meta).strip("-"))
    assert doc["title"] == "Paths like C:\\new\\x"
    assert doc["description"] == "line one\nline two"
    assert doc["heroImage"] == "C:\\images\\hero.png"
    assert doc["tags"] == ["back\\slash", "multi\nline"]
    assert doc["updatedDate"] == date(2024, 2, 1)
    assert doc["draft"] is True


def test_writer_creates_markdown_file(tmp_path) -> None:
    writer = MarkdownPostWriter(tmp_path / "blog")
    post = BlogContent(
        metadata=BlogMetadata(title="React vs Vue: A Comparison", description="d", publish_date=date(2024, 2, 3)),
        content="# Heading\n\nText",
    )
    path = writer.save(post)
    assert path == tmp_path / "blog" / "react-vs-vue-a-comparison.md"
    text = path.read_text(encoding="utf-8")
    front, body = text.split("\n---\n\n", 1)
    doc = yaml.safe_load(front.lstrip("-"))
    assert doc["title"] == "React vs Vue: A Comparison"
    assert doc["updatedDate"] == date.today()
    assert body == "# Heading\n\nText"
    assert text.endswith("---\n\n# Heading\n\nText")


def test_writer_rejects_unsluggable_title(tmp_path) -> None:
    post = BlogContent(metadata=BlogMetadata(title="!!!", description="d", publish_date=date(2024, 1, 1)), content="x")
    with pytest.raises(DraftValidationError):
        MarkdownPostWriter(tmp_path).save(post)


def test_dict_conversion_round_trip() -> None:
    payload = {
        "metadata": {
            "title": "T",
            "description": "D",
            "publishDate": "2024-05-06",
            "updatedDate": None,
            "heroImage": None,
            "tags": ["a"],
            "draft": True,
        },
        "content": "body",
    }
    post = blog_content_from_dict(payload)
    assert post.metadata.publish_date == date(2024, 5, 6)
    assert blog_content_to_dict(post) == payload


def test_bad_date_is_a_validation_error() -> None:
    payload = {"metadata": {"title": "T", "description": "D", "publishDate": "yesterday"}, "content": "x"}
    with pytest.raises(DraftValidationError):
        blog_content_from_dict(payload)


def test_save_draft_from_payload(tmp_path) -> None:
    writer = MarkdownPostWriter(tmp_path)
    payload = {"metadata": {"title": "Hello World", "description": "D", "tags": []}, "content": "hi"}
    path = asyncio.run(writer.save_draft(payload))
    assert path.name == "hello-world.md"
    with pytest.raises(DraftValidationError, match="Content is required"):
        asyncio.run(writer.save_draft({"metadata": {"title": "x", "description": "y"}, "content": " "}))
