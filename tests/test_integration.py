from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from grvthumb.__main__ import main
from grvthumb.core.decode import average_rgba
from grvthumb.io.hashcodec import string_to_hash


def _photo(p: Path, size=(160, 90)) -> Path:
    w, h = size
    yy, xx = np.mgrid[0:h, 0:w]
    img = np.zeros((h, w, 3), dtype=np.uint8)
    img[:, :, 0] = (255 * xx / (w - 1)).astype(np.uint8)
    img[:, :, 1] = (255 * yy / (h - 1)).astype(np.uint8)
    img[:, :, 2] = 90
    Image.fromarray(img).save(p, "PNG")
    return p


def test_cli_encode_prints_hash(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    src = _photo(tmp_path / "photo.png")
    assert main(["encode", str(src), "--preview"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    data = string_to_hash(lines[0])
    assert 5 <= len(data) <= 25
    assert lines[1].startswith("data:image/png;base64,")


def test_cli_encode_missing_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["encode", str(tmp_path / "nope.png")]) == 1
    assert "grvthumb:" in capsys.readouterr().err


def test_cli_decode_writes_image(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    src = _photo(tmp_path / "photo.png")
    main(["encode", str(src)])
    text = capsys.readouterr().out.strip()

    out = tmp_path / "preview.png"
    assert main(["decode", text, str(out), "--width", "20", "--height", "12"]) == 0
    assert Image.open(out).size == (20, 12)

    out2 = tmp_path / "default.png"
    assert main(["decode", text, str(out2), "--base-size", "64"]) == 0
    w, h = Image.open(out2).size
    assert w == 64
    assert h < w


def test_cli_decode_rejects_bad_hash(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["decode", "AAAA", str(tmp_path / "x.png")]) == 1
    assert "grvthumb:" in capsys.readouterr().err
    assert not (tmp_path / "x.png").exists()


def test_cli_average(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    src = tmp_path / "flat.png"
    Image.new("RGB", (30, 30), (50, 100, 150)).save(src, "PNG")
    main(["encode", str(src)])
    text = capsys.readouterr().out.strip()

    assert main(["average", text]) == 0
    vals = [int(v) for v in capsys.readouterr().out.split()]
    assert vals == list(average_rgba(string_to_hash(text)))
    assert abs(vals[0] - 50) <= 8 and abs(vals[1] - 100) <= 8 and abs(vals[2] - 150) <= 8


def test_cli_config_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    src = _photo(tmp_path / "photo.png")
    cfg = tmp_path / "grvthumb.yml"
    cfg.write_text("encode:\n  max_size: 20\n  urlsafe: true\n", encoding="utf-8")

    assert main(["encode", str(src), "--config", str(cfg)]) == 0
    text = capsys.readouterr().out.strip()
    assert "+" not in text and "/" not in text
    assert string_to_hash(text)


def test_cli_bad_config_exits(tmp_path: Path) -> None:
    cfg = tmp_path / "bad.yml"
    cfg.write_text("  nope: 1\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        main(["encode", str(tmp_path / "x.png"), "--config", str(cfg)])


def test_cli_process(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    a = _photo(tmp_path / "a.png")
    b = tmp_path / "b.txt"
    b.write_text("not an image", encoding="utf-8")
    store = tmp_path / "store.json"

    assert main(["process", str(a), str(b), "--store", str(store)]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("a\tok\t")
    assert out[1] == "b\tskipped"

    meta = json.loads(store.read_text(encoding="utf-8"))
    assert set(meta) == {"a"}
    assert meta["a"]["thumbhash"] == out[0].split("\t")[2]


def test_cli_process_reports_failures(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    store = tmp_path / "store.json"
    missing = tmp_path / "missing.png"
    assert main(["process", str(missing), "--store", str(store), "--id", "42"]) == 1
    out = capsys.readouterr().out
    assert out.startswith("42\terror\t")
    assert "thumbhash_error" in json.loads(store.read_text(encoding="utf-8"))["42"]


def test_cli_process_requires_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GRVTHUMB_CONFIG", raising=False)
    with pytest.raises(SystemExit):
        main(["process", str(tmp_path / "a.png")])
