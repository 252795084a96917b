from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from grvthumb.core.decode import (
    DEFAULT_BASE_SIZE,
    approximate_size,
    average_rgba,
    decode_to_file,
)
from grvthumb.core.encode import encode_file
from grvthumb.core.preview import to_data_url
from grvthumb.core.types import MAX_SIDE
from grvthumb.io.config import (
    get_section,
    load_config,
    pick_bool,
    pick_int,
    pick_opt_int,
    pick_str,
)
from grvthumb.io.hashcodec import hash_to_string, string_to_hash
from grvthumb.pipeline import MetadataStore, process_new_image
from grvthumb.utils.logger import stderr_logger


def _bool_flag(p: argparse.ArgumentParser, name: str) -> None:
    dest = name.replace("-", "_")
    g = p.add_mutually_exclusive_group()
    g.add_argument(f"--{name}", dest=dest, action="store_const", const=True, default=None)
    g.add_argument(f"--no-{name}", dest=dest, action="store_const", const=False)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="grvthumb")
    sp = p.add_subparsers(dest="cmd", required=True)

    pe = sp.add_parser("encode", help="print the thumbhash of an image file")
    pe.add_argument("input", type=Path)
    pe.add_argument("--config", type=Path, default=None)
    pe.add_argument("--max-size", type=int, default=None)
    _bool_flag(pe, "urlsafe")
    pe.add_argument("--preview", action="store_true")

    pd = sp.add_parser("decode", help="render a thumbhash to an image file")
    pd.add_argument("hash")
    pd.add_argument("output", type=Path)
    pd.add_argument("--config", type=Path, default=None)
    pd.add_argument("--width", type=int, default=None)
    pd.add_argument("--height", type=int, default=None)
    pd.add_argument("--base-size", type=int, default=None)

    pa = sp.add_parser("average", help="print the average colour as 'r g b a'")
    pa.add_argument("hash")

    pp = sp.add_parser("process", help="hash images into a metadata store")
    pp.add_argument("input", type=Path, nargs="+")
    pp.add_argument("--config", type=Path, default=None)
    pp.add_argument("--store", type=Path, default=None)
    pp.add_argument("--id", dest="attachment_id", default=None)
    pp.add_argument("--max-size", type=int, default=None)
    _bool_flag(pp, "urlsafe")

    return p


def main(argv: Sequence[str] | None = None) -> int:
    p = build_parser()
    a = p.parse_args(argv)

    try:
        cfg_all = load_config(getattr(a, "config", None))
    except (OSError, ValueError) as e:
        p.error(f"config: {e}")

    try:
        if a.cmd == "encode":
            cfg = get_section(cfg_all, "encode")
            max_size = pick_int(cfg, "max_size", a.max_size, MAX_SIDE)
            urlsafe = pick_bool(cfg, "urlsafe", a.urlsafe, False)
            data = encode_file(a.input, max_size=max_size)
            print(hash_to_string(data, urlsafe=urlsafe))
            if a.preview:
                print(to_data_url(data))
            return 0

        if a.cmd == "decode":
            cfg = get_section(cfg_all, "decode")
            width = pick_opt_int(cfg, "width", a.width, None)
            height = pick_opt_int(cfg, "height", a.height, None)
            base = pick_int(cfg, "base_size", a.base_size, DEFAULT_BASE_SIZE)
            data = string_to_hash(a.hash)
            if width is None and height is None:
                width, height = approximate_size(data, base=base)
            decode_to_file(data, a.output, width=width, height=height)
            return 0

        if a.cmd == "average":
            r, g, b, alpha = average_rgba(string_to_hash(a.hash))
            print(f"{r} {g} {b} {alpha}")
            return 0

        return _process(p, a, get_section(cfg_all, "process"))
    except (ValueError, OSError) as e:
        print(f"grvthumb: {e}", file=sys.stderr)
        return 1


def _process(
    p: argparse.ArgumentParser, a: argparse.Namespace, cfg: dict[str, object]
) -> int:
    store_arg = None if a.store is None else str(a.store)
    store_path = pick_str(cfg, "store", store_arg, "")
    if store_path == "":
        p.error("process: --store is required (or process.store in the config)")
    if a.attachment_id is not None and len(a.input) != 1:
        p.error("process: --id needs exactly one input")

    store = MetadataStore(Path(store_path))
    logger = stderr_logger()
    max_size = pick_int(cfg, "max_size", a.max_size, MAX_SIDE)
    urlsafe = pick_bool(cfg, "urlsafe", a.urlsafe, False)

    failed = 0
    for path in a.input:
        attachment_id = a.attachment_id if a.attachment_id is not None else path.stem
        rec = process_new_image(
            attachment_id,
            path,
            store,
            max_size=max_size,
            urlsafe=urlsafe,
            logger=logger,
        )
        if rec is None:
            print(f"{attachment_id}\tskipped")
        elif rec.error is not None:
            failed += 1
            print(f"{attachment_id}\terror\t{rec.error}")
        else:
            print(f"{attachment_id}\tok\t{rec.thumbhash}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
