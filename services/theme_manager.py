"""Dynamic accent theming driven by image color analysis.

The manager is an explicitly constructed object owned by its caller. It writes
CSS custom properties into a ``ThemeSink`` and never raises on extraction
problems: any failure leaves the default palette in place.
"""
from __future__ import annotations
import asyncio
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Hashable, Optional, Protocol, Tuple, Union

import numpy as np

from domain.dtos import DEFAULT_ACCENT_PALETTE, AccentPalette, ThemeState
from domain.enums import ThemeStatus
from services.color_analyzer import ColorAnalyzer

log = logging.getLogger(__name__)

def palette_variables(palette: AccentPalette) -> Dict[str, str]:
    return {
        "--color-accent-primary": palette.primary,
        "--color-accent-secondary": palette.secondary,
        "--color-accent-light": palette.light,
        "--color-accent-hover": palette.hover,
        "--color-accent-contrast": palette.contrast,
        # kept for stylesheets that predate the accent variables
        "--color-primary": palette.primary,
        "--color-primary-hover": palette.hover,
        "--color-primary-light": palette.light,
    }

def render_css(variables: Dict[str, str], selector: str = ":root") -> str:
    body = "\n".join(f"  {name}: {value};" for name, value in variables.items())
    return f"{selector} {{\n{body}\n}}\n"

class ThemeSink(Protocol):
    def set_property(self, name: str, value: str) -> None:
        ...

    def begin_transition(self) -> None:
        ...

    def end_transition(self) -> None:
        ...

    def flush(self) -> None:
        ...

class CssVariableSink(ThemeSink):
    """Holds the flat variable mapping; optionally mirrors it to a stylesheet on disk."""

    def __init__(self, css_path: Union[str, Path, None] = None) -> None:
        self.css_path = Path(css_path) if css_path else None
        self.variables: Dict[str, str] = palette_variables(DEFAULT_ACCENT_PALETTE)
        self.transitioning = False

    def set_property(self, name: str, value: str) -> None:
        self.variables[name] = value

    def begin_transition(self) -> None:
        self.transitioning = True

    def end_transition(self) -> None:
        self.transitioning = False

    def to_css(self) -> str:
        return render_css(self.variables)

    def flush(self) -> None:
        if self.css_path is None:
            return
        self.css_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.css_path.with_name(self.css_path.name + ".tmp")
        tmp.write_text(self.to_css(), encoding="utf-8")
        os.replace(tmp, self.css_path)

class ThemeManager:
    def __init__(
        self,
        sink: ThemeSink,
        analyzer: Optional[ColorAnalyzer] = None,
        transition_seconds: float = 0.3,
    ) -> None:
        self.sink = sink
        self.analyzer = analyzer or ColorAnalyzer()
        self.transition_seconds = transition_seconds
        self._state = ThemeState()
        self._last_token = 0
        self._applied_token = 0
        self._active = 0
        self._in_flight: Dict[Hashable, asyncio.Task] = {}
        self._transition: Optional[asyncio.Task] = None
        self._pending: Optional[Tuple[AccentPalette, bool]] = None

    async def analyze_and_apply_theme(self, image_rgba: np.ndarray, source_id: Optional[Hashable] = None) -> AccentPalette:
        """Extract a palette from ``image_rgba`` and apply it.

        Concurrent calls for the same ``source_id`` share one extraction. Across
        sources the most recently started extraction wins.
        """
        key = source_id if source_id is not None else id(image_rgba)
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._extract_and_apply(image_rgba))
            self._in_flight[key] = task

            def _forget(t: asyncio.Task, key: Hashable = key) -> None:
                if self._in_flight.get(key) is t:
                    del self._in_flight[key]

            task.add_done_callback(_forget)
        return await asyncio.shield(task)

    async def _extract_and_apply(self, image_rgba: np.ndarray) -> AccentPalette:
        self._last_token += 1
        token = self._last_token
        self._active += 1
        self._state.status = ThemeStatus.extracting
        try:
            await self._apply_extracted(image_rgba, token)
        finally:
            self._active -= 1
            # another extraction may still be running
            self._state.status = ThemeStatus.idle if self._active == 0 else ThemeStatus.extracting
        return self._state.accent_colors

    async def _apply_extracted(self, image_rgba: np.ndarray, token: int) -> None:
        try:
            palette = await asyncio.to_thread(self.analyzer.extract_accent_palette, image_rgba)
        except Exception:
            log.exception("Failed to analyze image for theme")
            palette = None

        if token < self._applied_token:
            log.debug("Discarding theme result %d, %d already applied", token, self._applied_token)
            return
        self._applied_token = token

        if palette is None or palette == DEFAULT_ACCENT_PALETTE:
            self._state.status = ThemeStatus.fallback
            await self.apply_theme(DEFAULT_ACCENT_PALETTE, image_influence=False)
        else:
            self._state.status = ThemeStatus.applying
            await self.apply_theme(palette, image_influence=True)

    async def apply_theme(self, palette: AccentPalette, with_transition: bool = True, image_influence: bool = False) -> None:
        if self._transition is not None and not self._transition.done():
            # batched: the last palette queued during the window is written when it closes
            self._pending = (palette, image_influence)
            await asyncio.shield(self._transition)
            return
        self._write(palette, image_influence)
        if with_transition and self.transition_seconds > 0:
            self.sink.begin_transition()
            self._transition = asyncio.ensure_future(self._close_transition())
            await asyncio.shield(self._transition)

    async def _close_transition(self) -> None:
        try:
            await asyncio.sleep(self.transition_seconds)
            while self._pending is not None:
                palette, influence = self._pending
                self._pending = None
                self._write(palette, influence)
        finally:
            self.sink.end_transition()

    def _write(self, palette: AccentPalette, image_influence: bool) -> None:
        for name, value in palette_variables(palette).items():
            self.sink.set_property(name, value)
        try:
            self.sink.flush()
        except OSError:
            log.exception("Failed to write theme stylesheet")
        self._state.accent_colors = palette
        self._state.image_influence = image_influence
        self._state.last_updated = datetime.now(timezone.utc)

    async def reset_to_default_theme(self) -> None:
        await self.apply_theme(DEFAULT_ACCENT_PALETTE, image_influence=False)

    def get_state(self) -> ThemeState:
        s = self._state
        return ThemeState(
            accent_colors=s.accent_colors,
            image_influence=s.image_influence,
            status=s.status,
            base_theme=s.base_theme,
            last_updated=s.last_updated,
        )
