from __future__ import annotations
from enum import Enum

class ThemeStatus(str, Enum):
    idle = "idle"
    extracting = "extracting"
    applying = "applying"
    fallback = "fallback"

class AutoSaveStatus(str, Enum):
    saved = "saved"
    saving = "saving"
    unsaved = "unsaved"

class ContrastLevel(str, Enum):
    AA = "AA"     # normal text
    AAA = "AAA"

    @property
    def min_ratio(self) -> float:
        return 7.0 if self is ContrastLevel.AAA else 4.5

class StoreBackend(str, Enum):
    sqlite = "sqlite"
    memory = "memory"

    @staticmethod
    def parse(value: str) -> "StoreBackend":
        v = (value or "sqlite").strip().lower()
        if v == "memory":
            return StoreBackend.memory
        return StoreBackend.sqlite
