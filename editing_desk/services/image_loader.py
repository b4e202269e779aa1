from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from editing_desk.services.errors import FileConversionFailure

SUPPORTED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp"}

# Pillow format name -> mime type sent to the model
_FORMAT_MIME = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp"}


@dataclass(frozen=True)
class ImageInput:
    data: bytes
    mime_type: str
    filename: str = ""


def _declared_mime(filename: str, content_type: str | None) -> str:
    ct = (content_type or "").split(";")[0].strip().lower()
    if ct and ct != "application/octet-stream":
        return ct
    guessed, _ = mimetypes.guess_type(filename or "")
    return (guessed or "").lower()


def load_image_upload(
    filename: str,
    content_type: str | None,
    data: bytes,
    max_bytes: int = 10 * 1024 * 1024,
) -> ImageInput:
    """
    Validate an uploaded photo of an article and return it ready for the model.
    Raises FileConversionFailure for anything that is not a readable jpeg/png/webp image.
    """
    if not data:
        raise FileConversionFailure("the file is empty")

    if len(data) > max_bytes:
        raise FileConversionFailure(f"the file is larger than {max_bytes // (1024 * 1024)} MB")

    declared = _declared_mime(filename, content_type)
    if declared and declared not in SUPPORTED_MIME_TYPES:
        raise FileConversionFailure(f"unsupported file type: {declared}")

    try:
        with Image.open(BytesIO(data)) as img:
            fmt = (img.format or "").upper()
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise FileConversionFailure(f"not a readable image ({type(e).__name__})") from e

    mime = _FORMAT_MIME.get(fmt)
    if mime is None:
        raise FileConversionFailure(f"unsupported image format: {fmt or 'unknown'}")

    return ImageInput(data=data, mime_type=mime, filename=filename or "upload")
