"""Lightweight shared helpers for the models layer."""

from .image_io import SkeletonSource, load_binary_mask, load_image, mask_to_image, save_png
from .naming import (
    STAGE_PREFIXES,
    apply_stage_prefix,
    prefixed_name,
    stage_spec,
    strip_prefix,
)

__all__ = [
    "STAGE_PREFIXES",
    "apply_stage_prefix",
    "prefixed_name",
    "stage_spec",
    "strip_prefix",
    "SkeletonSource",
    "load_binary_mask",
    "load_image",
    "mask_to_image",
    "save_png",
]
