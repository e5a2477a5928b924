"""Type aliases and protocols for TileMosaic collaborators."""

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Protocol, Tuple, TypeAlias, Union

# Type aliases for better user experience
PathLike: TypeAlias = Union[str, Path]
CoordinateTuple: TypeAlias = Tuple[float, float]  # (x, y)


class Resampling(str, Enum):
    """Resampling methods understood by raster reprojectors."""
    NEAREST = "nearest"
    BILINEAR = "bilinear"
    CUBIC = "cubic"


# Protocols for external collaborators
class SchemaProvider(Protocol):
    """Resolves a layer identifier into its tiling schema and request builder."""

    def get_config(self, layer: str) -> "LayerConfig":
        ...


class ReprojectionService(Protocol):
    """Opaque coordinate reprojection engine."""

    def project(
        self,
        extent: "Extent",
        source: "SpatialReference",
        target: "SpatialReference",
    ) -> "Extent":
        """Return ``extent`` expressed in ``target``."""
        ...


class RasterReprojector(Protocol):
    """Resamples a decoded raster into another spatial reference, in place."""

    def reproject_raster(
        self,
        spatial_reference: "SpatialReference",
        resampling: Resampling,
        raster: Any,
    ) -> None:
        ...


class Renderer(Protocol):
    """Rendering surface that paints cached tile rasters."""

    def draw_raster(
        self,
        file_path: Path,
        spatial_reference: "SpatialReference",
        need_reproject: bool,
    ) -> None:
        ...


class SpatialReferenceStamper(Protocol):
    """Declares the spatial reference of a cached raster.

    Returns the path of the artifact written, or None when nothing was written.
    """

    def stamp(self, file_path: Path, spatial_reference: "SpatialReference") -> Optional[Path]:
        ...

    def is_stamped(self, file_path: Path, spatial_reference: "SpatialReference") -> bool:
        """True if ``stamp`` has nothing left to do for this raster."""
        ...


# Import types that are used in protocols
if TYPE_CHECKING:
    from .service.base import LayerConfig
    from .types import Extent, SpatialReference
