from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pytest
from numpy.typing import NDArray


@dataclass(frozen=True, slots=True)
class ImageSpec:
    name: str
    width: int
    height: int
    alpha: bool
    seed: int


IMAGES: tuple[ImageSpec, ...] = (
    ImageSpec("square_opaque", 100, 100, False, 0),
    ImageSpec("square_alpha", 100, 100, True, 1),
    ImageSpec("landscape", 100, 56, False, 2),
    ImageSpec("portrait", 56, 100, False, 3),
    ImageSpec("tiny", 8, 8, False, 4),
)


def pytest_addoption(parser: pytest.Parser) -> None:
    g = parser.getgroup("bench")
    g.addoption("--bench-rounds", action="store", type=int, default=20)
    g.addoption("--bench-warmup-rounds", action="store", type=int, default=3)
    g.addoption(
        "--bench-decode-size",
        action="store",
        type=int,
        default=32,
        help="Longer side of decoded previews.",
    )


def make_image(spec: ImageSpec) -> NDArray[np.uint8]:
    rng = np.random.default_rng(spec.seed)
    yy, xx = np.mgrid[0 : spec.height, 0 : spec.width]
    img = np.empty((spec.height, spec.width, 4), dtype=np.uint8)
    img[:, :, 0] = (255 * xx / max(1, spec.width - 1)).astype(np.uint8)
    img[:, :, 1] = (255 * yy / max(1, spec.height - 1)).astype(np.uint8)
    img[:, :, 2] = rng.integers(0, 256, size=(spec.height, spec.width), dtype=np.uint8)
    img[:, :, 3] = 255
    if spec.alpha:
        img[: spec.height // 3, :, 3] = 0
    return img


@pytest.fixture(params=IMAGES, ids=lambda s: s.name)
def image_spec(request: pytest.FixtureRequest) -> ImageSpec:
    return request.param


@pytest.fixture(scope="session")
def bench_rounds(pytestconfig: pytest.Config) -> int:
    return int(pytestconfig.getoption("--bench-rounds", default=20))


@pytest.fixture(scope="session")
def bench_warmup_rounds(pytestconfig: pytest.Config) -> int:
    return int(pytestconfig.getoption("--bench-warmup-rounds", default=3))


@pytest.fixture(scope="session")
def bench_decode_size(pytestconfig: pytest.Config) -> int:
    return int(pytestconfig.getoption("--bench-decode-size", default=32))
