"""Thin wrappers around Pillow loading utilities."""

from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image

SkeletonSource = Path | str | Image.Image | np.ndarray


def load_image(source: Image.Image | str | Path, *, mode: str | None = None) -> Image.Image:
    """Load an image from ``source`` (path or Image) and optionally convert modes."""

    if isinstance(source, Image.Image):
        image = source.copy()
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Image {path} was not found.")
        with Image.open(path) as opened:
            image = opened.copy()
    if mode is not None:
        image = image.convert(mode)
    return image


def load_binary_mask(source: SkeletonSource) -> np.ndarray:
    """Return ``source`` as a boolean 2-D array (non-zero pixels are foreground).

    The returned array is always a fresh copy so callers can never mutate the
    caller's skeleton by accident.
    """

    if isinstance(source, np.ndarray):
        if source.ndim != 2:
            raise ValueError("Expected a 2D array for the skeleton mask.")
        return source.astype(bool, copy=True)
    image = load_image(source, mode="L")
    return np.asarray(image) > 0


def mask_to_image(mask: np.ndarray) -> Image.Image:
    """Convert a boolean mask into a Pillow grayscale image."""

    return Image.fromarray(np.asarray(mask, dtype=np.uint8) * 255)


def save_png(image: Image.Image, destination: Path, *, mode: str | None = None) -> Path:
    """Persist ``image`` as PNG at ``destination``."""

    destination = destination.expanduser()
    destination.parent.mkdir(parents=True, exist_ok=True)
    target = image.convert(mode) if mode is not None else image
    target.save(destination, format="PNG")
    return destination


__all__ = ["SkeletonSource", "load_image", "load_binary_mask", "mask_to_image", "save_png"]
