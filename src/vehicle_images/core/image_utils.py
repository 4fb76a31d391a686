"""Image processing utilities for the vehicle image pipeline."""

import io
from typing import Optional, Tuple

from PIL import Image, ImageOps

Size = Tuple[int, int]


def decode_image(data: bytes) -> Image.Image:
    """
    Decode raw bytes into a fully loaded, upright PIL Image.

    EXIF orientation is applied so that camera photos are not stored sideways.

    Args:
        data: Encoded image bytes (JPEG, PNG, ...)

    Returns:
        Loaded PIL Image

    Raises:
        PIL.UnidentifiedImageError: If the bytes are not a recognised image
        OSError: If the image data is truncated or corrupt
    """
    image = Image.open(io.BytesIO(data))
    image.load()
    return ImageOps.exif_transpose(image)


def cover_fit(img: Image.Image, size: Size) -> Image.Image:
    """
    Scale and crop an image to exactly ``size``.

    The aspect ratio is preserved, the image fills the whole box and the
    overflow is cropped around the centre.

    Args:
        img: PIL Image to resize
        size: Target (width, height)

    Returns:
        RGB PIL Image of exactly ``size``
    """
    if img.mode != "RGB":
        img = img.convert("RGB")
    return ImageOps.fit(
        img, size, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5)
    )


def scale_watermark(logo: Image.Image, target_width: int) -> Image.Image:
    """
    Resize a watermark proportionally to ``target_width``, never enlarging it.

    Args:
        logo: Watermark image
        target_width: Maximum width in pixels

    Returns:
        RGBA PIL Image no wider than ``target_width``
    """
    if logo.mode != "RGBA":
        logo = logo.convert("RGBA")
    if logo.width <= target_width:
        return logo.copy()
    height = max(1, round(logo.height * target_width / logo.width))
    return logo.resize((target_width, height), Image.Resampling.LANCZOS)


def watermark_position(
    canvas_size: Size,
    watermark_size: Tuple[Optional[int], Optional[int]],
    margin: int,
    fallback: int,
) -> Tuple[int, int]:
    """
    Compute the top-left paste position that keeps a watermark ``margin``
    pixels away from the right and bottom edges of the canvas.

    Unknown watermark dimensions are replaced by ``fallback``.
    """
    canvas_width, canvas_height = canvas_size
    wm_width, wm_height = watermark_size
    left = canvas_width - (wm_width or fallback) - margin
    top = canvas_height - (wm_height or fallback) - margin
    return left, top


def composite_watermark(
    canvas: Image.Image, watermark: Image.Image, position: Tuple[int, int]
) -> Image.Image:
    """
    Alpha-blend a watermark over a canvas ("over" compositing).

    Args:
        canvas: Base RGB image
        watermark: RGBA watermark, transparent pixels let the canvas through
        position: Top-left corner of the watermark on the canvas

    Returns:
        New RGB PIL Image; the input canvas is not modified
    """
    if watermark.mode != "RGBA":
        watermark = watermark.convert("RGBA")
    result = canvas.copy()
    result.paste(watermark, position, mask=watermark)
    return result


def encode_jpeg(img: Image.Image, quality: int) -> bytes:
    """Encode an image as RGB JPEG bytes."""
    if img.mode != "RGB":
        img = img.convert("RGB")
    output_stream = io.BytesIO()
    img.save(output_stream, format="JPEG", quality=quality)
    return output_stream.getvalue()
