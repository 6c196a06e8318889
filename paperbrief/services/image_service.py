"""Image normalization before images are sent to the model."""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from paperbrief.errors import BadInput

JPEG_MIME = "image/jpeg"


def normalize_pil_image(img: Image.Image, max_width: int = 1400, quality: int = 80) -> Tuple[str, bytes]:
    img = ImageOps.exif_transpose(img)
    if img.mode != "RGB":
        img = img.convert("RGB")
    if img.width > max_width:
        height = max(1, round(img.height * max_width / img.width))
        img = img.resize((max_width, height), Image.LANCZOS)
    out = io.BytesIO()
    img.save(out, format="JPEG", quality=quality)
    return JPEG_MIME, out.getvalue()


def normalize_image(data: bytes, max_width: int = 1400, quality: int = 80) -> Tuple[str, bytes]:
    """Rotate per EXIF, shrink to ``max_width`` (never enlarge) and re-encode as JPEG."""
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise BadInput(f"Unsupported or corrupt image: {e}") from e
    return normalize_pil_image(img, max_width=max_width, quality=quality)
