from __future__ import annotations

import os
from pathlib import Path

CONFIG_ENV = "GRVTHUMB_CONFIG"

_NULLS = ("null", "Null", "NULL", "none", "None", "NONE", "~")
_TRUES = ("true", "True", "TRUE", "yes", "Yes", "YES", "on", "On", "ON")
_FALSES = ("false", "False", "FALSE", "no", "No", "NO", "off", "Off", "OFF")


def _parse_scalar(s: str) -> object:
    t = s.strip()
    if t == "":
        return ""
    if t in _NULLS:
        return None
    if t in _TRUES:
        return True
    if t in _FALSES:
        return False
    if len(t) >= 2 and t[0] == t[-1] and t[0] in ("'", '"'):
        return t[1:-1]
    try:
        return int(t)
    except ValueError:
        pass
    try:
        return float(t)
    except ValueError:
        return t


def _strip_comment(line: str) -> str:
    quote = ""
    for i, ch in enumerate(line):
        if quote:
            if ch == quote:
                quote = ""
        elif ch in ("'", '"'):
            quote = ch
        elif ch == "#" and (i == 0 or line[i - 1] in " \t"):
            return line[:i]
    return line


def parse_yaml(text: str) -> dict[str, object]:
    """
    Parse the two-level YAML subset used by config files:
    top-level keys holding scalars or one mapping of scalars.
    """
    root: dict[str, object] = {}
    section: dict[str, object] | None = None

    for lineno, raw in enumerate(text.splitlines(), start=1):
        s = _strip_comment(raw).rstrip()
        if s.strip() == "":
            continue
        if "\t" in s[: len(s) - len(s.lstrip())]:
            raise ValueError(f"line {lineno}: tabs are not allowed for indentation")
        indent = len(s) - len(s.lstrip(" "))
        body = s.strip()
        if ":" not in body:
            raise ValueError(f"line {lineno}: expected 'key: value'")
        key, rest = body.split(":", 1)
        k = key.strip()
        v = rest.strip()
        if k == "":
            raise ValueError(f"line {lineno}: empty key")

        if indent == 0:
            if v == "":
                section = {}
                root[k] = section
            else:
                section = None
                root[k] = _parse_scalar(v)
            continue

        if section is None:
            raise ValueError(f"line {lineno}: unexpected indentation")
        if v == "":
            raise ValueError(f"line {lineno}: nesting deeper than one section")
        section[k] = _parse_scalar(v)

    return root


def load_yaml(path: Path) -> dict[str, object]:
    return parse_yaml(path.read_text(encoding="utf-8"))


def load_config(path: Path | None) -> dict[str, object]:
    """Config from ``path``, else from $GRVTHUMB_CONFIG, else empty."""
    if path is None:
        env = os.getenv(CONFIG_ENV)
        if env is None or env.strip() == "":
            return {}
        path = Path(env.strip())
    return load_yaml(path)


def get_section(cfg: dict[str, object], name: str) -> dict[str, object]:
    v = cfg.get(name)
    if v is None:
        return {}
    if not isinstance(v, dict):
        raise ValueError(f"config section {name!r} must be a mapping")
    return v


def pick_bool(cfg: dict[str, object], key: str, cli: bool | None, default: bool) -> bool:
    if cli is not None:
        return bool(cli)
    v = cfg.get(key)
    if v is None:
        return default
    if isinstance(v, bool):
        return v
    if isinstance(v, int) and v in (0, 1):
        return bool(v)
    raise ValueError(f"invalid bool for {key!r} in config")


def pick_int(cfg: dict[str, object], key: str, cli: int | None, default: int) -> int:
    if cli is not None:
        return int(cli)
    v = cfg.get(key)
    if v is None:
        return default
    if isinstance(v, bool):
        raise ValueError(f"invalid int for {key!r} in config")
    if isinstance(v, int):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    raise ValueError(f"invalid int for {key!r} in config")


def pick_opt_int(
    cfg: dict[str, object], key: str, cli: int | None, default: int | None
) -> int | None:
    """Like pick_int, but zero or negative means "not set"."""
    if cli is not None:
        return None if int(cli) <= 0 else int(cli)
    if cfg.get(key) is None:
        return default
    v = pick_int(cfg, key, None, 0)
    return None if v <= 0 else v


def pick_str(cfg: dict[str, object], key: str, cli: str | None, default: str) -> str:
    if cli is not None:
        return str(cli)
    v = cfg.get(key)
    if v is None:
        return default
    if isinstance(v, str):
        return v
    raise ValueError(f"invalid str for {key!r} in config")
