from __future__ import annotations

from grvthumb.core.decode import decode_array
from grvthumb.io.imageio import data_url, image_bytes

_MIME = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "JPG": "image/jpeg",
    "WEBP": "image/webp",
}


def to_preview_image_bytes(
    data: bytes,
    width: int | None = None,
    height: int | None = None,
    image_format: str = "PNG",
) -> bytes:
    return image_bytes(decode_array(data, width, height), image_format=image_format)


def to_data_url(
    data: bytes,
    width: int | None = None,
    height: int | None = None,
    image_format: str = "PNG",
) -> str:
    """``data:image/png;base64,...`` URL of the decoded preview."""
    fmt = image_format.upper()
    if fmt not in _MIME:
        raise ValueError(f"unsupported preview format: {image_format}")
    return data_url(
        to_preview_image_bytes(data, width, height, image_format=fmt), mime=_MIME[fmt]
    )
