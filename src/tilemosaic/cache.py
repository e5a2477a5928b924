"""Disk-backed tile cache addressed by tile key."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from .errors import CacheWriteError
from .types import ImageFormat, TileKey
from .typing import PathLike

logger = logging.getLogger(__name__)

__all__ = ["FileCache"]


class FileCache:
    """Stores raw tile bytes at ``<root>/<level>/<col>/<row>.<ext>``.

    Entries are immutable once written. Writes go through a temporary file in
    the target directory followed by an atomic rename, so readers never see a
    partial tile. Two writers racing on the same key both succeed and the last
    rename wins; content per key is deterministic, so either copy is correct.
    """

    def __init__(self, root: PathLike, image_format: Union[str, ImageFormat]) -> None:
        self.root = Path(root)
        self.format = ImageFormat.parse(image_format)

    def __repr__(self) -> str:
        return f"FileCache(root={str(self.root)!r}, format={self.format.value!r})"

    def file_name(self, key: TileKey) -> Path:
        """Path of the cached raster for ``key``. Performs no I/O."""
        return self.root / str(key.level) / str(key.col) / f"{key.row}.{self.format.value}"

    def world_file_name(self, key: TileKey) -> Path:
        return self.file_name(key).with_suffix(f".{self.format.world_file_extension}")

    def aux_file_name(self, key: TileKey) -> Path:
        path = self.file_name(key)
        return path.with_name(path.name + ".aux.xml")

    def exists(self, key: TileKey) -> bool:
        path = self.file_name(key)
        try:
            return path.is_file() and path.stat().st_size > 0
        except OSError:
            return False

    def get(self, key: TileKey) -> Optional[bytes]:
        path = self.file_name(key)
        return path.read_bytes() if self.exists(key) else None

    def add(self, key: TileKey, data: bytes) -> Path:
        """
        Store ``data`` for ``key``.

        Returns:
            Path of the cached raster

        Raises:
            CacheWriteError: On any I/O failure (disk full, permission denied, ...)
        """
        path = self.file_name(key)
        tmp_name: Optional[str] = None
        try:
            if self.get(key) == data:
                logger.debug("Tile %s already cached with identical content", key)
                return path

            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key.row}.", suffix=".part", dir=path.parent)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise CacheWriteError(f"Failed to cache tile {key} at {path}: {exc}", cause=exc) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        logger.debug("Cached tile %s at %s", key, path)
        return path
