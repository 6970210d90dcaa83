# app.py

import asyncio
import logging
from datetime import timedelta
from pathlib import Path
from typing import Optional

from config import Settings
from domain.dtos import AccentPalette
from services.blog_posts import MarkdownPostWriter, validate_blog_draft
from services.color_analyzer import ColorAnalyzer
from services.content_persistence import ContentPersistence, run_cleanup_loop
from services.editor_session import DraftEditor
from services.image_utils import load_rgba
from services.storage import StoreFactory
from services.theme_manager import CssVariableSink, ThemeManager

log = logging.getLogger("app")


class StudioApp:
    """Composition root. Wires storage, autosave, theming and the post writer."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.store = StoreFactory.create(settings)
        self.persistence = ContentPersistence(
            self.store, max_age=timedelta(hours=settings.autosave_max_age_hours)
        )
        self.sink = CssVariableSink(settings.theme_css_path or None)
        self.themes = ThemeManager(
            self.sink,
            ColorAnalyzer(k=5, max_size=settings.theme_max_image_size),
            transition_seconds=settings.theme_transition_ms / 1000,
        )
        self.writer = MarkdownPostWriter(settings.content_dir)

    def blog_editor(self, key: str = "blog-editor-autosave") -> DraftEditor:
        return DraftEditor(
            self.persistence,
            key=key,
            debounce_seconds=self.settings.autosave_debounce_seconds,
            validate=validate_blog_draft,
        )

    def project_editor(self, key: str = "project-editor-autosave") -> DraftEditor:
        return DraftEditor(self.persistence, key=key, debounce_seconds=self.settings.autosave_debounce_seconds)

    async def theme_from_file(self, path: str) -> AccentPalette:
        try:
            image = load_rgba(path)
        except ValueError:
            log.exception("Theme source %s unreadable, keeping default theme", path)
            await self.themes.reset_to_default_theme()
            return self.themes.get_state().accent_colors
        return await self.themes.analyze_and_apply_theme(image, source_id=str(Path(path).resolve()))

    async def run(self, cleanup_interval: Optional[float] = None) -> None:
        if self.settings.theme_source_image:
            palette = await self.theme_from_file(self.settings.theme_source_image)
            log.info("Theme applied: primary=%s secondary=%s", palette.primary, palette.secondary)
        for key in self.persistence.list_autosaves():
            age = self.persistence.get_age(key)
            if age is not None:
                log.info("Found autosave %s (%.0f min old)", key, age)
        interval = cleanup_interval or self.settings.cleanup_interval_seconds
        await run_cleanup_loop(self.persistence, interval)


def main() -> None:
    settings = Settings()
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    studio = StudioApp(settings)
    log.info("Studio started")
    asyncio.run(studio.run())


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        pass
