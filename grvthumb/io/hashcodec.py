from __future__ import annotations

import base64
import binascii
import struct

import numpy as np

from grvthumb.core.basis import ac_count
from grvthumb.core.types import (
    A_GRID,
    L_LIMIT,
    L_LIMIT_ALPHA,
    PQ_GRID,
    MalformedHash,
    ThumbHashCode,
)

_HDR = "<BBBH"
_HDR_SZ = struct.calcsize(_HDR)


def _split_header(data: bytes) -> tuple[int, int]:
    if len(data) < _HDR_SZ:
        raise MalformedHash(f"hash too short: {len(data)} bytes")
    b0, b1, b2, header16 = struct.unpack_from(_HDR, data, 0)
    return b0 | (b1 << 8) | (b2 << 16), header16


def ac_counts(code: ThumbHashCode) -> tuple[int, int, int]:
    """Number of AC nibbles for (L, P/Q each, A)."""
    n_l = ac_count(code.lx, code.ly)
    n_pq = ac_count(PQ_GRID, PQ_GRID)
    n_a = ac_count(A_GRID, A_GRID) if code.has_alpha else 0
    return n_l, n_pq, n_a


def _layout(has_alpha: bool, is_landscape: bool, axis: int) -> tuple[int, int]:
    limit = L_LIMIT_ALPHA if has_alpha else L_LIMIT
    if axis < 1 or axis > limit:
        raise MalformedHash(f"axis count {axis} outside 1..{limit}")
    lx = max(PQ_GRID, limit if is_landscape else axis)
    ly = max(PQ_GRID, axis if is_landscape else limit)
    n = ac_count(lx, ly) + 2 * ac_count(PQ_GRID, PQ_GRID)
    if has_alpha:
        n += ac_count(A_GRID, A_GRID)
    prefix = _HDR_SZ + (1 if has_alpha else 0)
    return prefix, n


def expected_length(data: bytes) -> int:
    """Total byte length a hash must have, read from its 5 header bytes."""
    header24, header16 = _split_header(data)
    has_alpha = bool(header24 >> 23)
    is_landscape = bool(header16 >> 15)
    prefix, n = _layout(has_alpha, is_landscape, header16 & 7)
    return prefix + (n + 1) // 2


def dump_code(code: ThumbHashCode) -> bytes:
    header24 = (
        (code.l_dc & 63)
        | ((code.p_dc & 63) << 6)
        | ((code.q_dc & 63) << 12)
        | ((code.l_scale & 31) << 18)
        | (int(code.has_alpha) << 23)
    )
    header16 = (
        (code.axis & 7)
        | ((code.p_scale & 63) << 3)
        | ((code.q_scale & 63) << 9)
        | (int(code.is_landscape) << 15)
    )
    _, n = _layout(code.has_alpha, code.is_landscape, code.axis)
    nib = np.asarray(code.ac, dtype=np.uint8).reshape(-1)
    if nib.shape[0] != n:
        raise ValueError(f"expected {n} AC values, got {nib.shape[0]}")
    if nib.shape[0] % 2:
        nib = np.concatenate([nib, np.zeros((1,), dtype=np.uint8)])
    packed = (nib[0::2] & 15) | ((nib[1::2] & 15) << 4)

    chunks: list[bytes] = [
        struct.pack(_HDR, header24 & 255, (header24 >> 8) & 255, header24 >> 16, header16)
    ]
    if code.has_alpha:
        chunks.append(bytes([(code.a_dc & 15) | ((code.a_scale & 15) << 4)]))
    chunks.append(packed.astype(np.uint8, copy=False).tobytes())
    return b"".join(chunks)


def load_code_bytes(data: bytes) -> ThumbHashCode:
    data = bytes(data)
    want = expected_length(data)
    if len(data) != want:
        raise MalformedHash(f"hash length {len(data)} does not match header ({want})")

    header24, header16 = _split_header(data)
    has_alpha = bool(header24 >> 23)
    is_landscape = bool(header16 >> 15)
    prefix, n = _layout(has_alpha, is_landscape, header16 & 7)

    a_dc, a_scale = 15, 15
    if has_alpha:
        a_dc = data[_HDR_SZ] & 15
        a_scale = data[_HDR_SZ] >> 4

    raw = np.frombuffer(data, dtype=np.uint8, offset=prefix)
    nib = np.empty((raw.shape[0] * 2,), dtype=np.uint8)
    nib[0::2] = raw & 15
    nib[1::2] = raw >> 4

    return ThumbHashCode(
        l_dc=header24 & 63,
        p_dc=(header24 >> 6) & 63,
        q_dc=(header24 >> 12) & 63,
        l_scale=(header24 >> 18) & 31,
        has_alpha=has_alpha,
        axis=header16 & 7,
        p_scale=(header16 >> 3) & 63,
        q_scale=(header16 >> 9) & 63,
        is_landscape=is_landscape,
        a_dc=a_dc,
        a_scale=a_scale,
        ac=nib[:n].copy(),
    )


def hash_to_string(data: bytes, urlsafe: bool = False) -> str:
    """Unpadded base64 text form of a hash."""
    enc = base64.urlsafe_b64encode if urlsafe else base64.b64encode
    return enc(bytes(data)).decode("ascii").rstrip("=")


def string_to_hash(text: str) -> bytes:
    """Inverse of ``hash_to_string``; accepts either alphabet, padded or not."""
    t = text.strip().replace("-", "+").replace("_", "/").rstrip("=")
    if t == "":
        raise MalformedHash("empty hash string")
    t += "=" * (-len(t) % 4)
    try:
        data = base64.b64decode(t, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedHash(f"invalid base64 hash: {text!r}") from e
    load_code_bytes(data)
    return data
