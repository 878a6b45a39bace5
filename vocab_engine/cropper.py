from __future__ import annotations

from io import BytesIO
from typing import Sequence

from PIL import Image

from .box_mapper import map_box, to_crop_box
from .errors import CropError, EncodeError, InvalidBoxError, LoadError
from .types import CropFailure, CropOutcome, CropSuccess, CroppedImage, DetectedItem

DEFAULT_JPEG_QUALITY = 90


def crop_image(source: bytes, box_2d: Sequence[float], *, quality: int = DEFAULT_JPEG_QUALITY) -> CroppedImage:
    """Crop one normalized box out of an encoded source image.

    The decoded source is scoped to this call and released on every exit path.
    The crop is drawn 1:1 (no scaling) and encoded as JPEG.

    Raises:
    - LoadError: source cannot be decoded
    - EncodeError: the crop cannot be encoded or yields no bytes
    - CropError: box is inverted or non-finite
    """
    try:
        src = Image.open(BytesIO(source))
    except Exception as e:
        raise LoadError(f"failed to decode source image: {e}") from e

    try:
        try:
            src.load()
        except Exception as e:
            raise LoadError(f"failed to decode source image: {e}") from e
        try:
            rect = map_box(box_2d, width=src.width, height=src.height)
        except InvalidBoxError as e:
            raise CropError(str(e)) from e
        region = src.crop(to_crop_box(rect)).convert("RGB")
    finally:
        src.close()

    buf = BytesIO()
    try:
        region.save(buf, format="JPEG", quality=int(quality))
    except Exception as e:
        region.close()
        raise EncodeError(f"failed to encode crop: {e}") from e

    payload = buf.getvalue()
    if not payload:
        region.close()
        raise EncodeError("encoder produced no data")
    return CroppedImage(image=region, payload=payload)


def try_crop(
    index: int,
    item: DetectedItem,
    source: bytes,
    *,
    quality: int = DEFAULT_JPEG_QUALITY,
) -> CropOutcome:
    """Value-returning wrapper around crop_image for per-item batch loops."""
    try:
        crop = crop_image(source, item.box_2d, quality=quality)
    except CropError as e:
        return CropFailure(index=index, item=item, reason=f"{type(e).__name__}: {e}")
    return CropSuccess(index=index, item=item, crop=crop)
