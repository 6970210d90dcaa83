from __future__ import annotations

import cv2
import numpy as np
import pytest

from services.image_utils import ImageDecodeError, as_rgba, bytes_to_rgba, load_rgba


def test_png_decodes_to_rgba(tmp_path) -> None:
    bgr = np.zeros((4, 6, 3), dtype=np.uint8)
    bgr[:, :] = (255, 0, 0)  # blue in OpenCV channel order
    ok, buf = cv2.imencode(".png", bgr)
    assert ok
    rgba = bytes_to_rgba(buf.tobytes())
    assert rgba.shape == (4, 6, 4)
    assert tuple(rgba[0, 0]) == (0, 0, 255, 255)

    path = tmp_path / "blue.png"
    path.write_bytes(buf.tobytes())
    assert np.array_equal(load_rgba(path), rgba)


def test_png_alpha_is_kept() -> None:
    bgra = np.zeros((2, 2, 4), dtype=np.uint8)
    bgra[:, :] = (0, 0, 255, 10)
    ok, buf = cv2.imencode(".png", bgra)
    assert ok
    assert tuple(bytes_to_rgba(buf.tobytes())[1, 1]) == (255, 0, 0, 10)


def test_garbage_raises() -> None:
    with pytest.raises(ImageDecodeError):
        bytes_to_rgba(b"definitely not an image")
    with pytest.raises(ImageDecodeError):
        bytes_to_rgba(b"")


def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(ImageDecodeError):
        load_rgba(tmp_path / "nope.png")


def test_as_rgba_normalizes_shapes() -> None:
    gray = np.full((3, 3), 7, dtype=np.uint8)
    assert as_rgba(gray).shape == (3, 3, 4)
    rgb = np.zeros((3, 3, 3), dtype=np.uint8)
    assert (as_rgba(rgb)[:, :, 3] == 255).all()
    with pytest.raises(ImageDecodeError):
        as_rgba(np.zeros((0, 3, 3), dtype=np.uint8))
    with pytest.raises(ImageDecodeError):
        as_rgba(np.zeros((3, 3, 2), dtype=np.uint8))
