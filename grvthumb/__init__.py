from __future__ import annotations

from grvthumb.core.decode import (
    approximate_aspect_ratio,
    approximate_size,
    average_rgba,
    decode,
    decode_array,
)
from grvthumb.core.encode import encode, encode_array
from grvthumb.core.preview import to_data_url, to_preview_image_bytes
from grvthumb.core.types import CodecError, InvalidDimensions, MalformedHash
from grvthumb.io.hashcodec import expected_length, hash_to_string, string_to_hash

__all__ = [
    "CodecError",
    "InvalidDimensions",
    "MalformedHash",
    "approximate_aspect_ratio",
    "approximate_size",
    "average_rgba",
    "decode",
    "decode_array",
    "encode",
    "encode_array",
    "expected_length",
    "hash_to_string",
    "string_to_hash",
    "to_data_url",
    "to_preview_image_bytes",
]
