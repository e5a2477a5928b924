"""Runtime configuration for mosaic rendering."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Union

from pydantic import BaseModel, Field, field_validator

from .._version import __version__
from ..cache import FileCache
from ..core import TieBreak
from ..types import ImageFormat
from ..typing import PathLike


class MosaicConfig(BaseModel):
    """Serializable configuration shared by every render call of a ``TileMosaic``."""

    cache_dir: Path = Field(..., description="Root directory of the tile cache")
    max_workers: int = Field(default=4, ge=1, description="Concurrent tile acquisitions per render")
    max_retries: int = Field(default=3, ge=0, description="Retries for transient fetch failures")
    retry_backoff: float = Field(
        default=0.5, ge=0, description="Seconds to wait before a retry, multiplied by the attempt number"
    )
    timeout: float = Field(default=30.0, gt=0, description="Per-request network timeout in seconds")
    headers: Dict[str, str] = Field(
        default_factory=lambda: {"User-Agent": f"tilemosaic/{__version__}"},
        description="HTTP headers sent with every tile request",
    )
    tie_break: TieBreak = Field(
        default=TieBreak.COARSER, description="Level chosen when two resolutions are equally near"
    )

    @field_validator("cache_dir", mode="before")
    @classmethod
    def resolve_cache_dir(cls, value: PathLike) -> Path:
        return Path(value).expanduser().resolve()

    # ------------------------------------------------------------------
    # Helper accessors
    # ------------------------------------------------------------------
    def fetcher_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments used when instantiating the tile fetcher."""

        return {"timeout": self.timeout, "headers": dict(self.headers)}

    def cache_for(self, layer: str, image_format: Union[str, ImageFormat]) -> FileCache:
        """Cache rooted in the layer's own subdirectory."""

        return FileCache(self.cache_dir / layer, image_format)
