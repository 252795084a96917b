from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from grvthumb.core.encode import encode_array
from grvthumb.core.preview import to_data_url
from grvthumb.core.types import MAX_SIDE, CodecError
from grvthumb.io.hashcodec import hash_to_string
from grvthumb.io.imageio import NotAnImage, is_image, load_raster
from grvthumb.utils.logger import NULL_LOGGER, Logger

META_HASH = "thumbhash"
META_PREVIEW = "thumbhash_preview"
META_ERROR = "thumbhash_error"


@dataclass(frozen=True, slots=True)
class ThumbHashRecord:
    thumbhash: str | None
    preview: str | None
    error: str | None


class MetadataStore:
    """
    Per-attachment key/value metadata.
    Kept in memory; written through to a JSON file when ``path`` is given.
    Not safe for concurrent writers.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._data: dict[str, dict[str, str]] = {}
        if path is not None and path.exists():
            raw = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError(f"metadata store {path} must hold a JSON object")
            self._data = {str(k): dict(v) for k, v in raw.items()}

    def get(self, attachment_id: str | int, key: str) -> str | None:
        return self._data.get(str(attachment_id), {}).get(key)

    def update(self, attachment_id: str | int, key: str, value: str) -> None:
        self._data.setdefault(str(attachment_id), {})[key] = value
        self._flush()

    def delete(self, attachment_id: str | int, key: str) -> None:
        meta = self._data.get(str(attachment_id))
        if meta is None or key not in meta:
            return
        del meta[key]
        if not meta:
            del self._data[str(attachment_id)]
        self._flush()

    def ids(self) -> list[str]:
        return sorted(self._data)

    def record(self, attachment_id: str | int) -> ThumbHashRecord:
        return ThumbHashRecord(
            thumbhash=self.get(attachment_id, META_HASH),
            preview=self.get(attachment_id, META_PREVIEW),
            error=self.get(attachment_id, META_ERROR),
        )

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        tmp.replace(self.path)


def process_new_image(
    attachment_id: str | int,
    image_path: Path,
    store: MetadataStore,
    *,
    max_size: int = MAX_SIDE,
    urlsafe: bool = False,
    logger: Logger = NULL_LOGGER,
) -> ThumbHashRecord | None:
    """
    Hash a newly uploaded image and record the result against its id.

    Returns None (and stores nothing) when the file is not an image.
    Failures are logged and kept under ``thumbhash_error`` instead of raised.
    """
    logger.info(f"processing attachment {attachment_id}: {image_path}")

    try:
        if not image_path.is_file():
            raise FileNotFoundError(f"file not found: {image_path}")
        if not is_image(image_path):
            logger.info(f"attachment {attachment_id} is not an image, skipping")
            return None

        raster = load_raster(image_path, max_size=max_size)
        data = encode_array(raster)
        text = hash_to_string(data, urlsafe=urlsafe)
        preview = to_data_url(data)
    except (CodecError, NotAnImage, OSError) as e:
        logger.error(f"thumbhash failed for attachment {attachment_id}: {e}")
        store.update(attachment_id, META_ERROR, str(e))
        return store.record(attachment_id)

    logger.info(f"attachment {attachment_id} thumbhash {text}")
    store.update(attachment_id, META_HASH, text)
    store.update(attachment_id, META_PREVIEW, preview)
    store.delete(attachment_id, META_ERROR)
    return store.record(attachment_id)
