from __future__ import annotations

from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from grvthumb.core.basis import reconstruct
from grvthumb.core.types import A_GRID, PQ_GRID, ThumbHashCode
from grvthumb.io.hashcodec import ac_counts, load_code_bytes
from grvthumb.io.imageio import save_image

# P and Q lose saturation to quantization; scale their AC terms back up
PQ_BOOST = 1.25
DEFAULT_BASE_SIZE = 32


def dequant_l_dc(q: int) -> float:
    return float(q) / 63.0


def dequant_pq_dc(q: int) -> float:
    return float(q) / 31.5 - 1.0


def dequant_ac(nib: NDArray[np.uint8], scale: float) -> NDArray[np.float64]:
    return (nib.astype(np.float64) / 7.5 - 1.0) * float(scale)


def _as_code(data: bytes | ThumbHashCode) -> ThumbHashCode:
    if isinstance(data, ThumbHashCode):
        return data
    return load_code_bytes(bytes(data))


def _to_u8(x: NDArray[np.float64]) -> NDArray[np.uint8]:
    return np.rint(np.clip(x, 0.0, 1.0) * 255.0).astype(np.uint8)


def lpq_to_rgb(
    l: NDArray[np.float64] | float,  # noqa: E741
    p: NDArray[np.float64] | float,
    q: NDArray[np.float64] | float,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    b = np.asarray(l - 2.0 / 3.0 * p, dtype=np.float64)
    r = np.asarray((3.0 * l - b + q) / 2.0, dtype=np.float64)
    g = r - q
    return r, g, b


def approximate_aspect_ratio(data: bytes | ThumbHashCode) -> float:
    """Width / height of the source image, as far as the header records it."""
    return _as_code(data).aspect_ratio


def approximate_size(
    data: bytes | ThumbHashCode, base: int = DEFAULT_BASE_SIZE
) -> tuple[int, int]:
    """(width, height) with the longer side equal to ``base``."""
    if base <= 0:
        raise ValueError("base must be positive")
    ratio = approximate_aspect_ratio(data)
    if ratio > 1.0:
        return base, max(1, int(round(base / ratio)))
    return max(1, int(round(base * ratio))), base


def _resolve_size(
    code: ThumbHashCode, width: int | None, height: int | None
) -> tuple[int, int]:
    if width is None and height is None:
        return approximate_size(code)
    ratio = code.aspect_ratio
    if width is None:
        width = max(1, int(round(int(height) * ratio)))  # type: ignore[arg-type]
    if height is None:
        height = max(1, int(round(int(width) / ratio)))
    if int(width) <= 0 or int(height) <= 0:
        raise ValueError("output size must be positive")
    return int(width), int(height)


def decode_channels(
    code: ThumbHashCode, width: int, height: int
) -> tuple[NDArray[np.float64], ...]:
    """Reconstructed (L, P, Q, A) planes of shape (height, width)."""
    n_l, n_pq, n_a = ac_counts(code)
    ac = code.ac
    l_ac = dequant_ac(ac[:n_l], code.l_scale / 31.0)
    p_ac = dequant_ac(ac[n_l : n_l + n_pq], code.p_scale / 63.0 * PQ_BOOST)
    q_ac = dequant_ac(ac[n_l + n_pq : n_l + 2 * n_pq], code.q_scale / 63.0 * PQ_BOOST)
    w, h = width, height

    l_plane = reconstruct(dequant_l_dc(code.l_dc), l_ac, code.lx, code.ly, w, h)
    p_plane = reconstruct(dequant_pq_dc(code.p_dc), p_ac, PQ_GRID, PQ_GRID, w, h)
    q_plane = reconstruct(dequant_pq_dc(code.q_dc), q_ac, PQ_GRID, PQ_GRID, w, h)

    if code.has_alpha:
        start = n_l + 2 * n_pq
        a_ac = dequant_ac(ac[start : start + n_a], code.a_scale / 15.0)
        a_plane = reconstruct(code.a_dc / 15.0, a_ac, A_GRID, A_GRID, w, h)
    else:
        a_plane = np.ones((h, w), dtype=np.float64)

    return l_plane, p_plane, q_plane, a_plane


def decode_array(
    data: bytes | ThumbHashCode, width: int | None = None, height: int | None = None
) -> NDArray[np.uint8]:
    """
    Decode a hash to an HxWx4 uint8 RGBA raster.
    Omitted sides are derived from the aspect ratio in the header.
    """
    code = _as_code(data)
    w, h = _resolve_size(code, width, height)
    l_plane, p_plane, q_plane, a_plane = decode_channels(code, w, h)
    r, g, b = lpq_to_rgb(l_plane, p_plane, q_plane)

    out = np.empty((h, w, 4), dtype=np.uint8)
    out[:, :, 0] = _to_u8(r)
    out[:, :, 1] = _to_u8(g)
    out[:, :, 2] = _to_u8(b)
    out[:, :, 3] = _to_u8(a_plane)
    return out


def decode(data: bytes, width: int, height: int) -> bytes:
    """Row-major RGBA bytes of length ``width * height * 4``."""
    return decode_array(data, int(width), int(height)).tobytes()


def average_rgba(data: bytes | ThumbHashCode) -> tuple[int, int, int, int]:
    code = _as_code(data)
    r, g, b = lpq_to_rgb(
        dequant_l_dc(code.l_dc), dequant_pq_dc(code.p_dc), dequant_pq_dc(code.q_dc)
    )
    a = code.a_dc / 15.0 if code.has_alpha else 1.0
    px = _to_u8(np.asarray([r, g, b, a], dtype=np.float64))
    return int(px[0]), int(px[1]), int(px[2]), int(px[3])


def decode_to_file(
    data: bytes, output_path: Path, width: int | None = None, height: int | None = None
) -> None:
    save_image(output_path, decode_array(data, width, height))
