# scripts/extract_palettes.py

from __future__ import annotations

from dataclasses import asdict
import json
from pathlib import Path
import sys

# --- Add the project root to sys.path when the script is run directly ---
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
# -------------------------------------------------------------------------

from config import Settings
from services.color_analyzer import ColorAnalyzer, generate_accent_palette
from services.image_utils import ImageDecodeError, load_rgba

SUPPORTED_EXTS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")


def extract_folder(base: Path) -> dict:
    settings = Settings()
    colors = ColorAnalyzer(k=5, max_size=settings.theme_max_image_size)

    out = {}
    if not base.is_dir():
        return out
    for file in sorted(base.rglob("*")):
        if not file.is_file() or file.suffix.lower() not in SUPPORTED_EXTS:
            continue
        try:
            img = load_rgba(file)
        except ImageDecodeError as e:
            out[str(file)] = {"error": str(e)}
            continue
        palette = colors.extract_dominant_colors(img)
        accent = generate_accent_palette(palette.vibrant or palette.dominant)
        out[str(file)] = {"colors": asdict(palette), "accent": asdict(accent)}
    return out


if __name__ == "__main__":
    folder = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("public/images")
    result = extract_folder(folder)
    print(json.dumps(result, indent=2))
    print(f"Analyzed {len(result)} files.", file=sys.stderr)
