from __future__ import annotations

from dataclasses import dataclass
from typing import Final

import numpy as np
from numpy.typing import NDArray

MAX_SIDE: Final[int] = 100

L_LIMIT: Final[int] = 7
L_LIMIT_ALPHA: Final[int] = 5
PQ_GRID: Final[int] = 3
A_GRID: Final[int] = 5


class CodecError(ValueError):
    pass


class InvalidDimensions(CodecError):
    pass


class MalformedHash(CodecError):
    pass


@dataclass(frozen=True, slots=True)
class ThumbHashCode:
    """Quantized contents of a hash, one field per bit group of the layout.

    ``axis`` is the luminance coefficient count stored in the header for the
    shorter side (``ly`` when landscape, ``lx`` otherwise). ``ac`` holds every
    4-bit AC value in packing order: L, then P, then Q, then A.
    """

    l_dc: int
    p_dc: int
    q_dc: int
    l_scale: int
    has_alpha: bool

    axis: int
    p_scale: int
    q_scale: int
    is_landscape: bool

    a_dc: int
    a_scale: int

    ac: NDArray[np.uint8]

    @property
    def limit(self) -> int:
        return L_LIMIT_ALPHA if self.has_alpha else L_LIMIT

    @property
    def lx(self) -> int:
        return max(PQ_GRID, self.limit if self.is_landscape else self.axis)

    @property
    def ly(self) -> int:
        return max(PQ_GRID, self.axis if self.is_landscape else self.limit)

    @property
    def aspect_ratio(self) -> float:
        lx = self.limit if self.is_landscape else self.axis
        ly = self.axis if self.is_landscape else self.limit
        return float(lx) / float(ly)
