"""
Image processing utilities using Pillow.

Turns arbitrary uploads into PNGs the upstream vision/edit API accepts,
and synthesizes the transparent masks used for whole-image edits.
"""

import io
import base64
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageCms, UnidentifiedImageError

from errors import ImageProcessingError


MAX_IMAGE_BYTES = 4 * 1024 * 1024
MAX_DIMENSION = 1024
FALLBACK_DIMENSION = 768
FALLBACK_COLORS = 256
# Decoded size ceiling, checked from the header before any pixel data is read
MAX_IMAGE_PIXELS = 64_000_000

_ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")
_HIGH_DEPTH_MODES = ("I", "I;16", "I;16B", "I;16L", "I;16N")
_REDUCIBLE_MODES = ("L", "LA", "RGB", "RGBA", "CMYK", "I", "F")
_NEAREST_MODES = ("P", "1")


@dataclass
class UploadedImage:
    """Raw upload, alive for one request only."""
    data: bytes
    content_type: Optional[str] = None
    filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class NormalizedImage:
    """PNG-encoded image within the upstream size and dimension limits."""
    data: bytes
    width: int
    height: int
    mode: str
    media_type: str = "image/png"

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_uri(self) -> str:
        return f"data:{self.media_type};base64,{self.to_base64()}"


@dataclass
class MaskImage:
    """Fully transparent PNG marking the whole image as editable."""
    data: bytes
    width: int
    height: int


def load_image_from_bytes(
    image_bytes: bytes,
    max_pixels: int = MAX_IMAGE_PIXELS,
    draft_size: Optional[int] = None,
) -> Image.Image:
    """
    Decode image bytes with Pillow.

    Args:
        image_bytes: Raw upload bytes
        max_pixels: Reject images whose header declares more pixels than this
        draft_size: Let JPEG decode at a reduced scale that still covers this side length

    Raises ImageProcessingError (400) when the bytes are empty, not a
    decodable image, or too large to decode, since that is a fault of the
    upload itself.
    """
    if not image_bytes:
        raise ImageProcessingError("Failed to process image: empty image upload", status_code=400)

    try:
        image = Image.open(io.BytesIO(image_bytes))
        width, height = image.size
        if width * height > max_pixels:
            raise ImageProcessingError(
                f"Failed to process image: {width}x{height} exceeds the {max_pixels} pixel limit",
                status_code=400,
            )
        if draft_size and image.format == "JPEG":
            image.draft(image.mode, (draft_size, draft_size))
        image.load()
    except UnidentifiedImageError:
        raise ImageProcessingError(
            "Failed to process image: unsupported or corrupt image file",
            status_code=400,
        )
    except (Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise ImageProcessingError(f"Failed to process image: {e}", status_code=400)

    return image


def has_alpha(image: Image.Image) -> bool:
    """Check whether the image carries transparency in any form."""
    if image.mode in _ALPHA_MODES:
        return True
    return "transparency" in image.info


def to_standard_rgb(image: Image.Image, keep_alpha: bool = True) -> Image.Image:
    """
    Convert an image to standard RGB (or RGBA when it has transparency).

    Embedded ICC profiles are converted to sRGB; palette, greyscale and CMYK
    modes are converted directly.
    """
    target_mode = "RGBA" if keep_alpha and has_alpha(image) else "RGB"

    if image.mode in _HIGH_DEPTH_MODES:
        # 16-bit greyscale: scale down to 8 bits, convert() alone would clip
        image = image.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    elif image.mode == "F":
        image = image.convert("L")

    icc_profile = image.info.get("icc_profile")
    if icc_profile and image.mode in ("RGB", "RGBA", "CMYK"):
        output_mode = target_mode if image.mode != "CMYK" else "RGB"
        try:
            source_profile = ImageCms.ImageCmsProfile(io.BytesIO(icc_profile))
            srgb_profile = ImageCms.createProfile("sRGB")
            image = ImageCms.profileToProfile(
                image, source_profile, srgb_profile, outputMode=output_mode
            )
        except (ImageCms.PyCMSError, OSError) as e:
            print(f"[WARN] ICC profile conversion failed, converting without it: {e}")

    if image.mode != target_mode:
        image = image.convert(target_mode)

    return image


def resize_image(image: Image.Image, max_size: int = MAX_DIMENSION) -> Image.Image:
    """
    Resize image maintaining aspect ratio so both sides fit in max_size.
    Never upscales.
    """
    w, h = image.size

    if max(w, h) <= max_size:
        return image

    if h > w:
        new_h = max_size
        new_w = max(1, round(w * (max_size / h)))
    else:
        new_w = max_size
        new_h = max(1, round(h * (max_size / w)))

    return image.resize((new_w, new_h), Image.Resampling.LANCZOS)


def shrink_for_processing(image: Image.Image, max_size: int = MAX_DIMENSION) -> Image.Image:
    """
    Cheaply downscale by an integer box factor so the longest side stays
    >= max_size. Colour conversion then runs on the smaller image, and the
    final LANCZOS resize still has enough pixels to work with.
    """
    factor = max(image.size) // max_size
    if factor < 2:
        return image
    if image.mode in _REDUCIBLE_MODES:
        return image.reduce(factor)
    if image.mode in _NEAREST_MODES:
        # averaging palette indices is meaningless
        w, h = image.size
        return image.resize((-(-w // factor), -(-h // factor)), Image.Resampling.NEAREST)
    return image


def encode_png(image: Image.Image) -> bytes:
    """Encode to PNG with maximum zlib compression and no ICC chunk."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", compress_level=9, icc_profile=None)
    return buffer.getvalue()


def _reduce_colors(image: Image.Image) -> Image.Image:
    # Fewer distinct colours compress far better; mode is restored afterwards.
    mode = image.mode
    quantized = image.quantize(colors=FALLBACK_COLORS, method=Image.Quantize.FASTOCTREE)
    return quantized.convert(mode)


def normalize_image(
    image_bytes: bytes,
    content_type: Optional[str] = None,
    with_alpha: bool = False,
    max_dimension: int = MAX_DIMENSION,
    fallback_dimension: int = FALLBACK_DIMENSION,
    max_bytes: int = MAX_IMAGE_BYTES,
    max_pixels: int = MAX_IMAGE_PIXELS,
) -> NormalizedImage:
    """
    Normalize an uploaded image for the upstream API.

    Steps:
    1. Decode and read intrinsic dimensions (rejecting anything over max_pixels)
    2. Box-reduce very large sources close to max_dimension
    3. Convert to standard RGB (alpha kept if present)
    4. Fit within max_dimension without upscaling
    5. Force an alpha channel when with_alpha is set (edit pipeline)
    6. Encode PNG at compression level 9
    7. If still over max_bytes, retry at fallback_dimension with reduced colours

    Args:
        image_bytes: Raw upload bytes (JPEG, PNG, WEBP, ...)
        content_type: Declared media type, used for logging only
        with_alpha: Guarantee an RGBA result
        max_dimension: Max side length for the first pass
        fallback_dimension: Max side length for the second pass
        max_bytes: Max encoded size
        max_pixels: Max decoded pixel count (width * height)

    Returns:
        NormalizedImage

    Raises:
        ImageProcessingError: 400 for undecodable or oversized input, 500 for later failures
    """
    source = load_image_from_bytes(image_bytes, max_pixels=max_pixels, draft_size=max_dimension)
    source_format = source.format or content_type or "unknown"
    source_size = source.size

    try:
        rgb = to_standard_rgb(shrink_for_processing(source, max_dimension))
        if with_alpha and rgb.mode != "RGBA":
            rgb = rgb.convert("RGBA")

        processed = resize_image(rgb, max_dimension)
        png_bytes = encode_png(processed)

        if len(png_bytes) > max_bytes:
            print(
                f"[WARN] PNG is {len(png_bytes) / 1024 / 1024:.2f}MB after first pass, "
                f"retrying at {fallback_dimension}px"
            )
            processed = _reduce_colors(resize_image(rgb, fallback_dimension))
            png_bytes = encode_png(processed)
    except ImageProcessingError:
        raise
    except Exception as e:
        raise ImageProcessingError(f"Failed to process image: {e}")

    if len(png_bytes) > max_bytes:
        raise ImageProcessingError(
            f"Failed to process image: result is {len(png_bytes)} bytes, limit is {max_bytes}"
        )

    width, height = processed.size
    print(
        f"[INFO] Processed image: {source_format} {source_size[0]}x{source_size[1]} -> "
        f"PNG {width}x{height} {processed.mode} {len(png_bytes) / 1024 / 1024:.2f}MB"
    )

    return NormalizedImage(
        data=png_bytes,
        width=width,
        height=height,
        mode=processed.mode,
    )


def create_edit_mask(width: int, height: int) -> MaskImage:
    """
    Create a mask that is completely transparent (alpha=0) everywhere.

    The edit endpoint treats transparent mask pixels as editable, so this
    mask marks the entire image for editing.
    """
    if width <= 0 or height <= 0:
        raise ImageProcessingError(f"Invalid mask dimensions: {width}x{height}")

    mask = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    return MaskImage(data=encode_png(mask), width=width, height=height)
