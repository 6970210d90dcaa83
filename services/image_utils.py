from __future__ import annotations
from pathlib import Path
from typing import Union

import cv2
import numpy as np

class ImageDecodeError(ValueError):
    pass

def as_rgba(img: np.ndarray) -> np.ndarray:
    """Normalize an RGB/RGBA/gray uint8 array to H x W x 4 RGBA."""
    arr = np.asarray(img)
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4) or arr.shape[0] == 0 or arr.shape[1] == 0:
        raise ImageDecodeError(f"Unsupported pixel buffer shape {arr.shape}")
    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)
    if arr.shape[2] == 3:
        alpha = np.full(arr.shape[:2] + (1,), 255, dtype=np.uint8)
        arr = np.concatenate([arr, alpha], axis=-1)
    return arr

def bytes_to_rgba(b: bytes) -> np.ndarray:
    arr = np.asarray(bytearray(b), dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED) if arr.size else None
    if img is None:
        raise ImageDecodeError("Image data could not be decoded")
    if img.dtype != np.uint8:
        # 16-bit PNG/TIFF
        img = (img / 257).astype(np.uint8)
    if img.ndim == 2:
        return as_rgba(img)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    return as_rgba(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))

def load_rgba(path: Union[str, Path]) -> np.ndarray:
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise ImageDecodeError(f"Cannot read image {path}: {e}") from e
    return bytes_to_rgba(data)
