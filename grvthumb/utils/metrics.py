from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def box_downsample(img: NDArray[np.uint8], factor: int) -> NDArray[np.float64]:
    """Mean over factor x factor blocks; H and W must be multiples of factor."""
    if factor <= 0:
        raise ValueError("factor must be positive")
    h, w = int(img.shape[0]), int(img.shape[1])
    if h % factor or w % factor:
        raise ValueError("image size must be a multiple of factor")
    x = img.astype(np.float64)
    return x.reshape(h // factor, factor, w // factor, factor, -1).mean(axis=(1, 3))


def max_channel_error(a: NDArray[np.generic], b: NDArray[np.generic]) -> float:
    d = np.abs(a.astype(np.float64) - b.astype(np.float64))
    return float(d.max()) if d.size else 0.0


def mse(a: NDArray[np.generic], b: NDArray[np.generic]) -> float:
    d = a.astype(np.float64) - b.astype(np.float64)
    return float(np.mean(d * d))


def psnr(a: NDArray[np.uint8], b: NDArray[np.uint8]) -> float:
    v = mse(a, b)
    if v <= 0.0:
        return 99.0
    return float(10.0 * np.log10(255.0 * 255.0 / v))
