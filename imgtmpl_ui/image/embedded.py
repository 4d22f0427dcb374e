from __future__ import annotations

import base64
import binascii

from PIL import Image, UnidentifiedImageError

from imgtmpl_core.core.errors import TemplateLoadError
from imgtmpl_core.core.image_cache import decode_image

DATA_URL_PREFIX = b"data:image/"


def decode_embedded_image(content: bytes, label: str) -> Image.Image:
    """Decode a resource that is either raw image bytes or a `data:image/<fmt>;base64,` URL."""
    try:
        if content.startswith(DATA_URL_PREFIX):
            return decode_image(_data_url_payload(content, label))
        return decode_image(content)
    except (OSError, UnidentifiedImageError) as exc:
        raise TemplateLoadError(f"cannot decode image resource `{label}`: {exc}") from exc


def _data_url_payload(content: bytes, label: str) -> bytes:
    header, sep, payload = content.partition(b",")
    if not sep or not header.endswith(b";base64"):
        raise TemplateLoadError(f"image resource `{label}` is not a base64 data URL")
    try:
        return base64.b64decode(payload.strip(), validate=False)
    except (binascii.Error, ValueError) as exc:
        raise TemplateLoadError(f"image resource `{label}` has invalid base64 payload: {exc}") from exc
