from __future__ import annotations

from functools import lru_cache

import numpy as np
from numpy.typing import NDArray


@lru_cache(maxsize=64)
def _triangle(nx: int, ny: int) -> tuple[tuple[int, ...], tuple[int, ...]]:
    cys: list[int] = []
    cxs: list[int] = []
    for cy in range(ny):
        cx = 1 if cy == 0 else 0
        while cx * ny < nx * (ny - cy):
            cys.append(cy)
            cxs.append(cx)
            cx += 1
    return tuple(cys), tuple(cxs)


def triangle_indices(nx: int, ny: int) -> tuple[NDArray[np.intp], NDArray[np.intp]]:
    """(cy, cx) of the AC terms kept for an nx-by-ny grid, in packing order.

    A term is kept when ``cx * ny < nx * (ny - cy)``; the DC term (0, 0) is
    not part of the result.
    """
    if nx <= 0 or ny <= 0:
        raise ValueError("grid must be positive")
    cys, cxs = _triangle(int(nx), int(ny))
    return np.asarray(cys, dtype=np.intp), np.asarray(cxs, dtype=np.intp)


def ac_count(nx: int, ny: int) -> int:
    return len(_triangle(int(nx), int(ny))[0])


def cosines(n_samples: int, n_freq: int) -> NDArray[np.float64]:
    """Matrix of shape (n_samples, n_freq) with cos(pi / n * k * (i + 0.5))."""
    if n_samples <= 0:
        raise ValueError("n_samples must be positive")
    pos = np.arange(n_samples, dtype=np.float64) + 0.5
    freq = np.arange(n_freq, dtype=np.float64)
    return np.cos(np.pi / float(n_samples) * pos[:, None] * freq[None, :])


def project(ch: NDArray[np.float64], nx: int, ny: int) -> NDArray[np.float64]:
    """Low-frequency projection of one channel, shape (ny, nx).

    Frequencies the source grid cannot represent (cx >= width or cy >= height)
    are zeroed: on so few samples they only alias lower terms.
    """
    h, w = ch.shape
    fx = cosines(w, nx)
    fy = cosines(h, ny)
    f = (fy.T @ ch @ fx) / float(w * h)
    # rasters narrower or shorter than the grid therefore hash differently
    # from other ThumbHash encoders, which keep the aliased terms
    f[:, w:] = 0.0
    f[h:, :] = 0.0
    return f


def reconstruct(
    dc: float,
    ac: NDArray[np.float64],
    nx: int,
    ny: int,
    width: int,
    height: int,
) -> NDArray[np.float64]:
    """Evaluate ``dc + sum(ac * 2 * cos_x * cos_y)`` at every pixel centre."""
    cy, cx = triangle_indices(nx, ny)
    if ac.shape[0] != cy.shape[0]:
        raise ValueError("ac length does not match grid")
    fx = cosines(width, nx)[:, cx]
    fy = cosines(height, ny)[:, cy]
    out = (fy * (2.0 * ac)[None, :]) @ fx.T
    return out + float(dc)
