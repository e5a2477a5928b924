"""
Data model for tile-based mosaics: extents, spatial references, tile keys and tiling schemas.
"""

import math
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pyproj import CRS as PyprojCRS

from .typing import CoordinateTuple

BBoxTuple = Tuple[float, float, float, float]


class Extent(BaseModel):
    """Ground-space rectangle in the units of some spatial reference."""

    min_x: float = Field(..., description="Minimum X coordinate")
    min_y: float = Field(..., description="Minimum Y coordinate")
    max_x: float = Field(..., description="Maximum X coordinate")
    max_y: float = Field(..., description="Maximum Y coordinate")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_coordinates(self):
        """Validate that min coordinates are less than max coordinates."""
        if self.min_x >= self.max_x:
            raise ValueError('min_x must be less than max_x')
        if self.min_y >= self.max_y:
            raise ValueError('min_y must be less than max_y')
        return self

    @classmethod
    def from_tuple(cls, bbox: BBoxTuple) -> "Extent":
        """Create Extent from (min_x, min_y, max_x, max_y)."""
        return cls(min_x=bbox[0], min_y=bbox[1], max_x=bbox[2], max_y=bbox[3])

    def to_tuple(self) -> BBoxTuple:
        return (self.min_x, self.min_y, self.max_x, self.max_y)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center(self) -> CoordinateTuple:
        return (self.min_x + self.width / 2, self.min_y + self.height / 2)

    def intersects(self, other: "Extent") -> bool:
        """Check if the two extents share a region of positive area."""
        return self.min_x < other.max_x and self.max_x > other.min_x and self.min_y < other.max_y and self.max_y > other.min_y

    def intersection(self, other: "Extent") -> Optional["Extent"]:
        """Overlapping region of the two extents, or None when they only touch or are disjoint."""
        if not self.intersects(other):
            return None
        return Extent(
            min_x=max(self.min_x, other.min_x),
            min_y=max(self.min_y, other.min_y),
            max_x=min(self.max_x, other.max_x),
            max_y=min(self.max_y, other.max_y),
        )


class SpatialReference(BaseModel):
    """Coordinate reference system identified by an authority code.

    Two references are considered the same when their codes match, regardless
    of how they were spelled on input.
    """

    authority: str = Field(default="EPSG", description="Code authority, e.g. EPSG or ESRI")
    code: int = Field(..., description="Authority code (factory code)")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_string(cls, srs: str) -> "SpatialReference":
        """Create from an ``AUTHORITY:CODE`` string."""
        authority, sep, code = srs.partition(":")
        if not sep or not code.strip().isdigit():
            raise ValueError(f"Invalid spatial reference: {srs}. Expected 'AUTHORITY:CODE'")
        return cls(authority=authority.strip().upper(), code=int(code))

    @classmethod
    def from_epsg(cls, srs: Union[str, int]) -> "SpatialReference":
        """
        Create from an EPSG code.

        Args:
            srs: EPSG code as string or integer
             - string: "EPSG:4326"
             - integer: 4326

        Returns:
            SpatialReference
        """
        return cls.from_string(srs) if isinstance(srs, str) else cls(code=srs)

    @property
    def srs(self) -> str:
        return f"{self.authority}:{self.code}"

    def same_as(self, other: "SpatialReference") -> bool:
        return self.code == other.code

    def to_pyproj(self) -> PyprojCRS:
        return PyprojCRS.from_user_input(self.srs)


WGS84 = SpatialReference(code=4326)
WEB_MERCATOR = SpatialReference(code=3857)


class ImageFormat(str, Enum):
    """Raster formats a tile service may deliver."""
    JPG = "jpg"
    PNG = "png"
    TIF = "tif"

    @classmethod
    def parse(cls, value: Union[str, "ImageFormat"]) -> "ImageFormat":
        """Resolve a format name, file extension or MIME type."""
        if isinstance(value, ImageFormat):
            return value
        normalized = value.strip().lower().lstrip(".")
        try:
            return cls(_FORMAT_ALIASES.get(normalized, normalized))
        except ValueError as exc:
            raise ValueError(f"Unsupported image format: {value}") from exc

    @property
    def world_file_extension(self) -> str:
        return _WORLD_FILE_EXTENSIONS[self]

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]


_FORMAT_ALIASES: Dict[str, str] = {
    "jpeg": "jpg",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "tiff": "tif",
    "geotiff": "tif",
    "image/tiff": "tif",
}

_WORLD_FILE_EXTENSIONS: Dict[ImageFormat, str] = {
    ImageFormat.JPG: "jgw",
    ImageFormat.PNG: "pgw",
    ImageFormat.TIF: "tfw",
}

_MIME_TYPES: Dict[ImageFormat, str] = {
    ImageFormat.JPG: "image/jpeg",
    ImageFormat.PNG: "image/png",
    ImageFormat.TIF: "image/tiff",
}


def world_file_extension_for(fmt: Union[str, ImageFormat]) -> str:
    """World-file extension for a format, or an empty string when it has none."""
    try:
        return ImageFormat.parse(fmt).world_file_extension
    except ValueError:
        return ""


class AxisDirection(str, Enum):
    """Direction in which tile rows are counted from the schema origin."""
    TOP_DOWN = "top_down"
    BOTTOM_UP = "bottom_up"


class TileKey(BaseModel):
    """Unique address of a tile within a schema: (level, col, row)."""
    level: int = Field(..., ge=0)
    col: int = Field(..., ge=0)
    row: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.level}/{self.col}/{self.row}"


class TileInfo(BaseModel):
    """A tile key together with its ground extent in the schema's spatial reference."""
    key: TileKey
    extent: Extent

    model_config = ConfigDict(frozen=True)


class TilingSchema(BaseModel):
    """Immutable description of a tiled imagery pyramid."""

    name: str = Field(default="", description="Human readable schema name")
    resolutions: Tuple[float, ...] = Field(..., description="Ground units per pixel, one per level")
    tile_width: int = Field(default=256, gt=0, description="Tile width in pixels")
    tile_height: int = Field(default=256, gt=0, description="Tile height in pixels")
    format: ImageFormat = Field(default=ImageFormat.PNG, description="Image format of the tiles")
    spatial_reference: SpatialReference = Field(default=WEB_MERCATOR, description="Native spatial reference")
    origin_x: float = Field(default=0.0, description="X of the grid origin")
    origin_y: float = Field(default=0.0, description="Y of the grid origin")
    axis_direction: AxisDirection = Field(default=AxisDirection.TOP_DOWN)
    extent: Optional[Extent] = Field(default=None, description="Area covered by the tiles, unbounded if omitted")

    model_config = ConfigDict(frozen=True)

    @field_validator("format", mode="before")
    @classmethod
    def parse_format(cls, value):
        return ImageFormat.parse(value) if isinstance(value, str) else value

    @field_validator("resolutions")
    @classmethod
    def validate_resolutions(cls, resolutions: Tuple[float, ...]) -> Tuple[float, ...]:
        if not resolutions:
            raise ValueError("resolutions must not be empty")
        if any(not math.isfinite(r) or r <= 0 for r in resolutions):
            raise ValueError("resolutions must be positive finite numbers")
        pairs = list(zip(resolutions, resolutions[1:]))
        ascending = all(a < b for a, b in pairs)
        descending = all(a > b for a, b in pairs)
        if not (ascending or descending):
            raise ValueError("resolutions must be strictly monotonic")
        return resolutions

    def tile_span(self, level: int) -> Tuple[float, float]:
        """Ground width and height of a single tile at ``level``."""
        resolution = self.resolutions[level]
        return self.tile_width * resolution, self.tile_height * resolution

    def tile_extent(self, key: TileKey) -> Extent:
        span_x, span_y = self.tile_span(key.level)
        min_x = self.origin_x + key.col * span_x
        if self.axis_direction is AxisDirection.TOP_DOWN:
            max_y = self.origin_y - key.row * span_y
            min_y = max_y - span_y
        else:
            min_y = self.origin_y + key.row * span_y
            max_y = min_y + span_y
        return Extent(min_x=min_x, min_y=min_y, max_x=min_x + span_x, max_y=max_y)

    def tile_info(self, key: TileKey) -> TileInfo:
        return TileInfo(key=key, extent=self.tile_extent(key))


# Half the circumference of the WGS84 sphere used by Web Mercator, in metres.
_MERCATOR_HALF_WORLD = 20037508.342789244


def global_mercator_schema(
    levels: int = 19,
    tile_size: int = 256,
    image_format: Union[str, ImageFormat] = ImageFormat.PNG,
    name: str = "GlobalMercator",
) -> TilingSchema:
    """Standard XYZ Web Mercator pyramid with the origin at the top-left corner."""
    base = 2 * _MERCATOR_HALF_WORLD / tile_size
    return TilingSchema(
        name=name,
        resolutions=tuple(base / 2 ** z for z in range(levels)),
        tile_width=tile_size,
        tile_height=tile_size,
        format=ImageFormat.parse(image_format),
        spatial_reference=WEB_MERCATOR,
        origin_x=-_MERCATOR_HALF_WORLD,
        origin_y=_MERCATOR_HALF_WORLD,
        axis_direction=AxisDirection.TOP_DOWN,
        extent=Extent(
            min_x=-_MERCATOR_HALF_WORLD,
            min_y=-_MERCATOR_HALF_WORLD,
            max_x=_MERCATOR_HALF_WORLD,
            max_y=_MERCATOR_HALF_WORLD,
        ),
    )
