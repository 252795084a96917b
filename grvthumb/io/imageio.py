from __future__ import annotations

import base64
import io
from pathlib import Path

import numpy as np
from numpy.typing import NDArray
from PIL import Image, ImageOps, UnidentifiedImageError

from grvthumb.core.types import MAX_SIDE


class NotAnImage(ValueError):
    pass


def _resample() -> int:
    return (
        Image.Resampling.LANCZOS if hasattr(Image, "Resampling") else Image.LANCZOS
    )


def fit_size(w: int, h: int, max_size: int) -> tuple[int, int]:
    """Largest (w, h) within max_size x max_size keeping the aspect ratio.

    Images that already fit are left alone.
    """
    if max_size <= 0:
        raise ValueError("max_size must be positive")
    if max(w, h) <= max_size:
        return w, h
    if w >= h:
        return max_size, max(1, int(round(h * (max_size / float(w)))))
    return max(1, int(round(w * (max_size / float(h))))), max_size


def raster_from_image(img: Image.Image, max_size: int = MAX_SIDE) -> NDArray[np.uint8]:
    img = ImageOps.exif_transpose(img)
    img = img.convert("RGBA")
    size = fit_size(img.size[0], img.size[1], max_size)
    if size != img.size:
        img = img.resize(size, resample=_resample())
    return np.asarray(img, dtype=np.uint8).copy()


def load_raster(path: Path, max_size: int = MAX_SIDE) -> NDArray[np.uint8]:
    """HxWx4 uint8 RGBA raster of an image file, shrunk to fit max_size."""
    try:
        with Image.open(path) as img:
            return raster_from_image(img, max_size=max_size)
    except UnidentifiedImageError as e:
        raise NotAnImage(f"not an image: {path}") from e
    except Image.DecompressionBombError as e:
        raise NotAnImage(f"image too large to decode: {path}") from e


def is_image(path: Path) -> bool:
    try:
        with Image.open(path) as img:
            img.verify()
    except Image.DecompressionBombError:
        # an image, just not one load_raster will accept
        return True
    except (UnidentifiedImageError, OSError, SyntaxError):
        return False
    return True


def image_bytes(rgba: NDArray[np.uint8], image_format: str = "PNG") -> bytes:
    x = np.asarray(rgba, dtype=np.uint8)
    if x.ndim != 3 or x.shape[2] != 4:
        raise ValueError("unsupported image shape")
    img = Image.fromarray(x)
    fmt = image_format.upper()
    if fmt in ("JPG", "JPEG"):
        fmt = "JPEG"
        img = img.convert("RGB")
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def data_url(payload: bytes, mime: str = "image/png") -> str:
    return f"data:{mime};base64," + base64.b64encode(payload).decode("ascii")


def save_image(path: Path, rgba: NDArray[np.uint8]) -> None:
    x = np.asarray(rgba, dtype=np.uint8)
    if x.ndim != 3 or x.shape[2] != 4:
        raise ValueError("unsupported image shape")
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.fromarray(x)
    if path.suffix.lower() in (".jpg", ".jpeg"):
        img = img.convert("RGB")
    img.save(path)
