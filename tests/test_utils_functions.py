import base64
import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from grvthumb.core.encode import encode_array, encode_file
from grvthumb.core.preview import to_data_url, to_preview_image_bytes
from grvthumb.io import imageio
from grvthumb.utils import metrics
from grvthumb.utils.logger import NULL_LOGGER, Logger


def _make_png(p: Path, size=(10, 10), colour=(255, 0, 0, 255)) -> Path:
    Image.new("RGBA", size, colour).save(p, "PNG")
    return p


def _sample_hash() -> bytes:
    img = np.zeros((20, 40, 4), dtype=np.uint8)
    img[:, :20] = (255, 0, 0, 255)
    img[:, 20:] = (0, 0, 255, 255)
    return encode_array(img)


def test_logger_emits():
    out = []
    log = Logger(out.append)
    log.info("hello")
    log.error("boom")
    assert out == ["hello", "error: boom"]


def test_logger_prefix_and_null():
    out = []
    Logger(out.append, prefix="x: ").info("hi")
    assert out == ["x: hi"]
    NULL_LOGGER.info("dropped")
    NULL_LOGGER.error("dropped")


def test_box_downsample_mean():
    x = np.arange(16, dtype=np.uint8).reshape(4, 4)
    y = metrics.box_downsample(x, 2)
    assert y.shape == (2, 2, 1)
    assert y[0, 0, 0] == pytest.approx((0 + 1 + 4 + 5) / 4)
    with pytest.raises(ValueError):
        metrics.box_downsample(x, 3)


def test_error_metrics():
    a = np.zeros((2, 2, 4), dtype=np.uint8)
    b = a.copy()
    assert metrics.mse(a, b) == 0.0
    assert metrics.psnr(a, b) == 99.0
    b[0, 0, 0] = 16
    assert metrics.max_channel_error(a, b) == 16.0
    assert metrics.mse(a, b) == pytest.approx(256.0 / 16)
    assert metrics.psnr(a, b) < 99.0


@pytest.mark.parametrize(
    "w,h,limit,expected",
    [
        (50, 20, 100, (50, 20)),
        (400, 200, 100, (100, 50)),
        (200, 400, 100, (50, 100)),
        (1000, 3, 100, (100, 1)),
        (100, 100, 100, (100, 100)),
    ],
)
def test_fit_size(w, h, limit, expected):
    assert imageio.fit_size(w, h, limit) == expected


def test_load_raster_shrinks_to_fit(tmp_path: Path):
    p = _make_png(tmp_path / "big.png", size=(300, 150), colour=(10, 20, 30, 255))
    x = imageio.load_raster(p)
    assert x.shape == (50, 100, 4)
    assert x.dtype == np.uint8
    assert tuple(x[25, 50]) == (10, 20, 30, 255)


def test_load_raster_never_enlarges_and_converts_to_rgba(tmp_path: Path):
    p = tmp_path / "small.png"
    Image.new("L", (7, 5), 128).save(p, "PNG")
    x = imageio.load_raster(p)
    assert x.shape == (5, 7, 4)
    assert tuple(x[0, 0]) == (128, 128, 128, 255)


def test_load_raster_rejects_non_images(tmp_path: Path):
    p = tmp_path / "notes.txt"
    p.write_text("not an image", encoding="utf-8")
    assert not imageio.is_image(p)
    with pytest.raises(imageio.NotAnImage):
        imageio.load_raster(p)


def test_encode_file_matches_array(tmp_path: Path):
    p = _make_png(tmp_path / "in.png", size=(12, 8), colour=(0, 128, 255, 200))
    assert imageio.is_image(p)
    assert encode_file(p) == encode_array(imageio.load_raster(p))


def test_save_image_png_and_jpeg(tmp_path: Path):
    rgba = np.full((3, 5, 4), 100, dtype=np.uint8)
    png = tmp_path / "out" / "a.png"
    jpg = tmp_path / "out" / "a.jpg"
    imageio.save_image(png, rgba)
    imageio.save_image(jpg, rgba)
    assert Image.open(png).mode == "RGBA"
    assert Image.open(jpg).mode == "RGB"
    assert Image.open(jpg).size == (5, 3)
    with pytest.raises(ValueError):
        imageio.save_image(png, np.zeros((3, 5), dtype=np.uint8))


def test_preview_png_bytes():
    payload = to_preview_image_bytes(_sample_hash(), 16, 8)
    img = Image.open(io.BytesIO(payload))
    assert img.format == "PNG"
    assert img.size == (16, 8)
    assert img.mode == "RGBA"


def test_preview_jpeg_bytes():
    payload = to_preview_image_bytes(_sample_hash(), 8, 8, image_format="jpeg")
    assert Image.open(io.BytesIO(payload)).format == "JPEG"


def test_data_url_is_decodable_png():
    url = to_data_url(_sample_hash())
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    img = Image.open(io.BytesIO(base64.b64decode(url[len(prefix) :])))
    assert img.size == (32, 18)
    px = np.asarray(img.convert("RGBA"))
    assert px[9, 2, 0] > px[9, 2, 2]
    assert px[9, 29, 2] > px[9, 29, 0]


def test_data_url_rejects_unknown_format():
    with pytest.raises(ValueError):
        to_data_url(_sample_hash(), image_format="tiff")


def test_load_raster_rejects_oversized_images(tmp_path: Path, monkeypatch):
    p = _make_png(tmp_path / "huge.png", size=(100, 100))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    assert imageio.is_image(p)
    with pytest.raises(imageio.NotAnImage):
        imageio.load_raster(p)
