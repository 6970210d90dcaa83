from __future__ import annotations

import asyncio

import cv2
import numpy as np

from app import StudioApp
from config import Settings
from domain.dtos import DEFAULT_ACCENT_PALETTE
from services.color_analyzer import contrast_ratio


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        store_backend="memory",
        theme_css_path=str(tmp_path / "theme.css"),
        content_dir=str(tmp_path / "blog"),
        theme_transition_ms=0,
    )
    values.update(overrides)
    return Settings(**values)


def test_theme_from_file_writes_stylesheet(tmp_path) -> None:
    img = np.full((120, 120, 3), 255, dtype=np.uint8)
    img[20:100, 20:100] = (40, 40, 220)  # BGR red
    path = tmp_path / "hero.png"
    ok, buf = cv2.imencode(".png", img)
    assert ok
    path.write_bytes(buf.tobytes())

    studio = StudioApp(make_settings(tmp_path))
    palette = asyncio.run(studio.theme_from_file(str(path)))
    assert palette != DEFAULT_ACCENT_PALETTE
    assert contrast_ratio(palette.primary, "#ffffff") >= 4.5
    assert palette.primary in (tmp_path / "theme.css").read_text(encoding="utf-8")


def test_unreadable_theme_source_keeps_default(tmp_path) -> None:
    bad = tmp_path / "broken.png"
    bad.write_bytes(b"\x00\x01")
    studio = StudioApp(make_settings(tmp_path))
    assert asyncio.run(studio.theme_from_file(str(bad))) == DEFAULT_ACCENT_PALETTE


def test_blog_editor_commits_to_content_dir(tmp_path) -> None:
    studio = StudioApp(make_settings(tmp_path))
    editor = studio.blog_editor()
    payload = {"metadata": {"title": "First Post", "description": "D", "tags": ["x"]}, "content": "Hello"}

    async def scenario():
        editor.notify_change(payload)
        editor.flush()
        return await editor.commit(studio.writer.save_draft, payload)

    path = asyncio.run(scenario())
    assert path == tmp_path / "blog" / "first-post.md"
    assert studio.persistence.list_autosaves() == []


def test_run_cleans_up_then_loops(tmp_path) -> None:
    studio = StudioApp(make_settings(tmp_path))
    studio.persistence.store.set(
        "blog-editor-autosave",
        '{"data": 1, "timestamp": "2000-01-01T00:00:00+00:00", "version": "1.0.0"}',
    )

    async def scenario() -> None:
        task = asyncio.ensure_future(studio.run(cleanup_interval=3600))
        await asyncio.sleep(0.01)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    asyncio.run(scenario())
    assert studio.persistence.store.keys() == []
