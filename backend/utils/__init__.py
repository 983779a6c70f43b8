"""Utility modules."""

from .image_processing import (
    MAX_IMAGE_BYTES,
    MAX_DIMENSION,
    FALLBACK_DIMENSION,
    MAX_IMAGE_PIXELS,
    UploadedImage,
    NormalizedImage,
    MaskImage,
    load_image_from_bytes,
    to_standard_rgb,
    resize_image,
    shrink_for_processing,
    encode_png,
    normalize_image,
    create_edit_mask,
)

__all__ = [
    "MAX_IMAGE_BYTES",
    "MAX_DIMENSION",
    "FALLBACK_DIMENSION",
    "MAX_IMAGE_PIXELS",
    "UploadedImage",
    "NormalizedImage",
    "MaskImage",
    "load_image_from_bytes",
    "to_standard_rgb",
    "resize_image",
    "shrink_for_processing",
    "encode_png",
    "normalize_image",
    "create_edit_mask",
]
