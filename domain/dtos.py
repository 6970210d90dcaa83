from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, List, Optional, Tuple
from domain.enums import ThemeStatus

RGB = Tuple[int, int, int]

@dataclass(frozen=True)
class HSL:
    h: float  # degrees [0, 360)
    s: float  # [0, 1]
    l: float  # [0, 1]

@dataclass(frozen=True)
class ColorSample:
    rgb: RGB
    count: int

@dataclass
class ColorPalette:
    dominant: List[str] = field(default_factory=list)
    vibrant: List[str] = field(default_factory=list)
    muted: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class AccentPalette:
    primary: str
    secondary: str
    light: str
    hover: str
    contrast: str

DEFAULT_ACCENT_PALETTE = AccentPalette(
    primary="#2563eb",
    secondary="#3b82f6",
    light="#eff6ff",
    hover="#1d4ed8",
    contrast="#ffffff",
)

@dataclass
class ThemeState:
    accent_colors: AccentPalette = DEFAULT_ACCENT_PALETTE
    image_influence: bool = False
    status: ThemeStatus = ThemeStatus.idle
    base_theme: str = "light"
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

@dataclass
class AutoSaveRecord:
    data: Any
    saved_at: datetime
    version: str

@dataclass
class RecoveredDraft:
    data: Any
    age_minutes: float

@dataclass
class BlogMetadata:
    title: str
    description: str
    publish_date: date
    tags: List[str] = field(default_factory=list)
    draft: bool = True
    updated_date: Optional[date] = None
    hero_image: Optional[str] = None

@dataclass
class BlogContent:
    metadata: BlogMetadata
    content: str  # raw markdown body
