from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from grvthumb.core.basis import project, triangle_indices
from grvthumb.core.types import (
    A_GRID,
    L_LIMIT,
    L_LIMIT_ALPHA,
    MAX_SIDE,
    PQ_GRID,
    InvalidDimensions,
    ThumbHashCode,
)
from grvthumb.io.hashcodec import dump_code
from grvthumb.io.imageio import load_raster

RGBALike = bytes | bytearray | memoryview | Sequence[int] | NDArray[np.uint8]


def _round(x: float) -> int:
    # half-up, not round-half-even
    return int(np.floor(x + 0.5))


def _quant(x: float, levels: int) -> int:
    return int(np.clip(_round(x * levels), 0, levels))


def _quant_signed(x: float) -> int:
    return int(np.clip(_round(31.5 + 31.5 * x), 0, 63))


def _quant_ac(ac: NDArray[np.float64]) -> NDArray[np.uint8]:
    q = np.floor(ac * 15.0 + 0.5)
    return np.clip(q, 0, 15).astype(np.uint8)


def _encode_channel(
    ch: NDArray[np.float64], nx: int, ny: int
) -> tuple[float, NDArray[np.float64], float]:
    """
    Project one channel onto the first nx-by-ny cosine terms.
    Returns (dc, ac normalised to [0, 1], scale).
    """
    f = project(ch, nx, ny)
    cy, cx = triangle_indices(nx, ny)
    ac = f[cy, cx]
    scale = float(np.abs(ac).max()) if ac.size else 0.0
    if scale > 0.0:
        ac = 0.5 + 0.5 / scale * ac
    return float(f[0, 0]), ac, scale


def _as_pixels(arr: NDArray[np.generic]) -> NDArray[np.uint8]:
    if arr.dtype == np.uint8:
        return arr
    if arr.size and not np.issubdtype(arr.dtype, np.integer):
        raise ValueError(f"pixel values must be integers, got {arr.dtype}")
    if arr.size and (arr.min() < 0 or arr.max() > 255):
        raise ValueError("pixel values must be in 0..255")
    return arr.astype(np.uint8)


def _as_raster(w: int, h: int, rgba: RGBALike) -> NDArray[np.uint8]:
    if not isinstance(w, (int, np.integer)) or not isinstance(h, (int, np.integer)):
        raise InvalidDimensions("width and height must be integers")
    w = int(w)
    h = int(h)
    if not (1 <= w <= MAX_SIDE and 1 <= h <= MAX_SIDE):
        raise InvalidDimensions(f"{w}x{h} does not fit in {MAX_SIDE}x{MAX_SIDE}")

    if isinstance(rgba, (bytes, bytearray, memoryview)):
        buf = np.frombuffer(bytes(rgba), dtype=np.uint8)
    else:
        buf = _as_pixels(np.asarray(rgba)).reshape(-1)

    if buf.shape[0] != w * h * 4:
        raise InvalidDimensions(
            f"buffer holds {buf.shape[0]} values, expected {w * h * 4} for {w}x{h} RGBA"
        )
    return buf.reshape(h, w, 4)


def encode_code(img: NDArray[np.uint8]) -> ThumbHashCode:
    if img.ndim != 3 or img.shape[2] != 4:
        raise InvalidDimensions("img must be HxWx4 RGBA")
    h = int(img.shape[0])
    w = int(img.shape[1])
    if not (1 <= w <= MAX_SIDE and 1 <= h <= MAX_SIDE):
        raise InvalidDimensions(f"{w}x{h} does not fit in {MAX_SIDE}x{MAX_SIDE}")
    img = _as_pixels(img)

    x = img.astype(np.float64) / 255.0
    rgb = x[:, :, :3]
    alpha = x[:, :, 3]

    # alpha-weighted average colour; transparent pixels blend towards it
    total_a = float(alpha.sum())
    avg = np.zeros((3,), dtype=np.float64)
    if total_a > 0.0:
        avg = (rgb * alpha[:, :, None]).sum(axis=(0, 1)) / total_a
    has_alpha = bool((img[:, :, 3] < 255).any())

    a3 = alpha[:, :, None]
    rgb = avg[None, None, :] * (1.0 - a3) + a3 * rgb
    r = rgb[:, :, 0]
    g = rgb[:, :, 1]
    b = rgb[:, :, 2]

    l_chan = (r + g + b) / 3.0
    p_chan = (r + g) / 2.0 - b
    q_chan = r - g

    limit = L_LIMIT_ALPHA if has_alpha else L_LIMIT
    side = max(w, h)
    lx = max(1, _round(limit * w / side))
    ly = max(1, _round(limit * h / side))

    l_dc, l_ac, l_scale = _encode_channel(l_chan, max(PQ_GRID, lx), max(PQ_GRID, ly))
    p_dc, p_ac, p_scale = _encode_channel(p_chan, PQ_GRID, PQ_GRID)
    q_dc, q_ac, q_scale = _encode_channel(q_chan, PQ_GRID, PQ_GRID)

    acs = [l_ac, p_ac, q_ac]
    a_dc, a_scale = 1.0, 1.0
    if has_alpha:
        a_dc, a_ac, a_scale = _encode_channel(alpha, A_GRID, A_GRID)
        acs.append(a_ac)

    is_landscape = w > h
    return ThumbHashCode(
        l_dc=_quant(l_dc, 63),
        p_dc=_quant_signed(p_dc),
        q_dc=_quant_signed(q_dc),
        l_scale=_quant(l_scale, 31),
        has_alpha=has_alpha,
        axis=ly if is_landscape else lx,
        p_scale=_quant(p_scale, 63),
        q_scale=_quant(q_scale, 63),
        is_landscape=is_landscape,
        a_dc=_quant(a_dc, 15),
        a_scale=_quant(a_scale, 15),
        ac=_quant_ac(np.concatenate(acs)),
    )


def encode_array(img: NDArray[np.uint8]) -> bytes:
    """Hash of an HxWx4 uint8 RGBA raster (each side 1..100)."""
    return dump_code(encode_code(np.asarray(img)))


def encode(w: int, h: int, rgba: RGBALike) -> bytes:
    """Hash of a row-major RGBA buffer of ``w * h * 4`` values."""
    return encode_array(_as_raster(w, h, rgba))


def encode_file(input_path: Path, max_size: int = MAX_SIDE) -> bytes:
    """
    File pipeline:
      - load_raster(Path) -> RGBA uint8 raster shrunk to fit max_size
      - encode_array -> hash bytes
    """
    return encode_array(load_raster(input_path, max_size=max_size))


def encode_to_file(input_path: Path, output_path: Path, max_size: int = MAX_SIDE) -> None:
    output_path.write_bytes(encode_file(input_path, max_size=max_size))
