from __future__ import annotations
import colorsys
import logging
import re
from typing import List, Sequence

import cv2
import numpy as np

from domain.dtos import DEFAULT_ACCENT_PALETTE, HSL, RGB, AccentPalette, ColorPalette, ColorSample
from domain.enums import ContrastLevel
from services.image_utils import as_rgba

log = logging.getLogger(__name__)

WHITE = "#ffffff"
NEAR_BLACK = "#111827"
_HEX_RE = re.compile(r"^#?([a-f\d]{2})([a-f\d]{2})([a-f\d]{2})$", re.IGNORECASE)

def _round(x: float) -> int:
    # half-up, matches how browsers round channel values
    return int(np.floor(x + 0.5))

def rgb_to_hex(rgb: RGB) -> str:
    r, g, b = (min(255, max(0, _round(c))) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"

def hex_to_rgb(hex_color: str) -> RGB:
    m = _HEX_RE.match(hex_color.strip())
    if not m:
        raise ValueError(f"Invalid hex color: {hex_color}")
    return int(m.group(1), 16), int(m.group(2), 16), int(m.group(3), 16)

def rgb_to_hsl(rgb: RGB) -> HSL:
    h, l, s = colorsys.rgb_to_hls(*(c / 255 for c in rgb))
    return HSL(h=h * 360, s=s, l=l)

def hsl_to_hex(hsl: HSL) -> str:
    r, g, b = colorsys.hls_to_rgb((hsl.h / 360) % 1.0, hsl.l, hsl.s)
    return rgb_to_hex((r * 255, g * 255, b * 255))

def relative_luminance(rgb: RGB) -> float:
    def channel(c: int) -> float:
        c = c / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4
    r, g, b = (channel(c) for c in rgb)
    return 0.2126 * r + 0.7152 * g + 0.0722 * b

def contrast_ratio(color1: str, color2: str) -> float:
    l1 = relative_luminance(hex_to_rgb(color1))
    l2 = relative_luminance(hex_to_rgb(color2))
    lighter, darker = max(l1, l2), min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)

def meets_accessibility_standards(foreground: str, background: str, level: ContrastLevel = ContrastLevel.AA) -> bool:
    return contrast_ratio(foreground, background) >= level.min_ratio

def vibrancy(hsl: HSL) -> float:
    # saturated, mid-lightness colors win over very light/dark saturated ones
    return hsl.s * (1 - abs(hsl.l - 0.5))

def find_most_vibrant(colors: Sequence[str]) -> str:
    best = colors[0]
    best_score = 0.0
    for c in colors:
        score = vibrancy(rgb_to_hsl(hex_to_rgb(c)))
        if score > best_score:
            best_score, best = score, c
    return best

def adjust_for_contrast(color: str, background: str = WHITE, max_attempts: int = 20) -> str:
    """Darken ``color`` in 5% lightness steps until it passes AA against ``background``."""
    hsl = rgb_to_hsl(hex_to_rgb(color))
    adjusted = hsl_to_hex(hsl)
    attempts = 0
    while not meets_accessibility_standards(adjusted, background) and attempts < max_attempts:
        hsl = HSL(hsl.h, hsl.s, max(0.1, hsl.l - 0.05))
        adjusted = hsl_to_hex(hsl)
        attempts += 1
    return adjusted

def lighten(color: str) -> str:
    hsl = rgb_to_hsl(hex_to_rgb(color))
    return hsl_to_hex(HSL(hsl.h, max(0.2, hsl.s - 0.3), min(0.95, hsl.l + 0.3)))

def darken(color: str) -> str:
    hsl = rgb_to_hsl(hex_to_rgb(color))
    return hsl_to_hex(HSL(hsl.h, min(1.0, hsl.s + 0.05), max(0.1, hsl.l - 0.1)))

def pick_contrast(primary: str) -> str:
    if contrast_ratio(WHITE, primary) >= contrast_ratio(NEAR_BLACK, primary):
        return WHITE
    return NEAR_BLACK

def generate_accent_palette(colors: Sequence[str]) -> AccentPalette:
    """Build an accessible accent palette from candidate colors.

    Falls back to ``DEFAULT_ACCENT_PALETTE`` when there is nothing to work with
    or the primary cannot be brought to WCAG AA against white.
    """
    valid: List[str] = []
    for c in colors:
        try:
            valid.append(rgb_to_hex(hex_to_rgb(c)))
        except ValueError:
            log.warning("Ignoring invalid color %r", c)
    if not valid:
        return DEFAULT_ACCENT_PALETTE

    base = find_most_vibrant(valid)
    base_hsl = rgb_to_hsl(hex_to_rgb(base))

    primary = base
    if not meets_accessibility_standards(primary, WHITE):
        primary = adjust_for_contrast(primary, WHITE)
        if not meets_accessibility_standards(primary, WHITE):
            log.info("No accessible primary derivable from %s, using default palette", base)
            return DEFAULT_ACCENT_PALETTE

    secondary = hsl_to_hex(HSL(
        (base_hsl.h + 15) % 360,
        max(0.4, base_hsl.s - 0.1),
        min(0.6, base_hsl.l + 0.1),
    ))
    if not meets_accessibility_standards(secondary, WHITE):
        secondary = adjust_for_contrast(secondary, WHITE)
        if not meets_accessibility_standards(secondary, WHITE):
            secondary = DEFAULT_ACCENT_PALETTE.secondary

    light = hsl_to_hex(HSL(base_hsl.h, max(0.3, base_hsl.s - 0.2), 0.95))
    if contrast_ratio(light, WHITE) > 1.5:
        light = lighten(light)

    contrast = pick_contrast(primary)
    if not meets_accessibility_standards(contrast, primary):
        return DEFAULT_ACCENT_PALETTE

    return AccentPalette(
        primary=primary,
        secondary=secondary,
        light=light,
        hover=darken(primary),
        contrast=contrast,
    )

class ColorAnalyzer:
    def __init__(
        self,
        k: int = 5,
        max_size: int = 100,
        sample_step: int = 4,
        quantize_step: int = 32,
        vibrant_threshold: float = 0.4,
    ) -> None:
        self.k = k
        self.max_size = max_size
        self.sample_step = sample_step
        self.quantize_step = quantize_step
        self.vibrant_threshold = vibrant_threshold

    def extract_samples(self, image_rgba: np.ndarray) -> List[ColorSample]:
        img = as_rgba(image_rgba)
        # Downscale so pixel analysis cost does not depend on source resolution
        h, w = img.shape[:2]
        scale = self.max_size / max(h, w)
        if scale < 1:
            size = (max(1, _round(w * scale)), max(1, _round(h * scale)))
            img = cv2.resize(img, size, interpolation=cv2.INTER_AREA)
        pixels = img.reshape(-1, 4)[::self.sample_step].astype(np.int32)
        brightness = pixels[:, :3].sum(axis=1) / 3
        keep = (pixels[:, 3] >= 128) & (brightness <= 240) & (brightness >= 15)
        rgb = pixels[keep, :3]
        if rgb.size == 0:
            return []
        step = self.quantize_step
        quantized = np.minimum(np.floor(rgb / step + 0.5) * step, 255).astype(np.int32)
        buckets, first_seen, counts = np.unique(quantized, axis=0, return_index=True, return_counts=True)
        # most frequent first, ties in first-seen order
        order = np.lexsort((first_seen, -counts))[:self.k]
        return [ColorSample(rgb=tuple(int(v) for v in buckets[i]), count=int(counts[i])) for i in order]

    def categorize(self, samples: Sequence[ColorSample]) -> ColorPalette:
        palette = ColorPalette()
        for sample in samples:
            hex_color = rgb_to_hex(sample.rgb)
            palette.dominant.append(hex_color)
            if rgb_to_hsl(sample.rgb).s > self.vibrant_threshold:
                palette.vibrant.append(hex_color)
            else:
                palette.muted.append(hex_color)
        palette.dominant = palette.dominant[:5]
        palette.vibrant = palette.vibrant[:3]
        palette.muted = palette.muted[:3]
        return palette

    def extract_dominant_colors(self, image_rgba: np.ndarray) -> ColorPalette:
        return self.categorize(self.extract_samples(image_rgba))

    def extract_accent_palette(self, image_rgba: np.ndarray) -> AccentPalette:
        palette = self.extract_dominant_colors(image_rgba)
        return generate_accent_palette(palette.vibrant or palette.dominant)
