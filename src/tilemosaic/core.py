"""
Core tiling math: view transforms, zoom level selection and tile enumeration.
"""

import logging
import math
from enum import Enum
from typing import List, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .errors import NoLevelsAvailable
from .types import AxisDirection, Extent, TileInfo, TileKey, TilingSchema
from .typing import CoordinateTuple

logger = logging.getLogger(__name__)


class TieBreak(str, Enum):
    """Which of two equally near resolutions wins during level selection."""
    COARSER = "coarser"
    FINER = "finer"


class ViewTransform(BaseModel):
    """Ground extent seen by a view of ``width`` x ``height`` pixels around ``center``."""

    center: CoordinateTuple
    resolution: float = Field(..., gt=0, description="Ground units per pixel")
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    model_config = ConfigDict(frozen=True)

    @property
    def extent(self) -> Extent:
        half_x = self.resolution * self.width / 2
        half_y = self.resolution * self.height / 2
        cx, cy = self.center
        return Extent(min_x=cx - half_x, min_y=cy - half_y, max_x=cx + half_x, max_y=cy + half_y)


def get_map_resolution(extent: Extent, map_width: int) -> float:
    """Ground units per screen pixel along the X axis."""
    if map_width <= 0:
        raise ValueError("map_width must be positive")
    return extent.width / map_width


def get_center_point(extent: Extent) -> CoordinateTuple:
    return extent.center


# Level Selection


def select_level(
    resolutions: Sequence[float],
    target_resolution: float,
    tie_break: TieBreak = TieBreak.COARSER,
) -> int:
    """
    Pick the zoom level whose resolution is nearest to ``target_resolution``.

    Args:
        resolutions: Ground resolution of every level, monotonic
        target_resolution: Desired ground units per pixel
        tie_break: Which candidate wins when two levels are equally near

    Returns:
        Index into ``resolutions``

    Raises:
        NoLevelsAvailable: If ``resolutions`` is empty
    """
    if not resolutions:
        raise NoLevelsAvailable("Tiling schema defines no resolutions")

    best = 0
    best_distance = abs(resolutions[0] - target_resolution)
    for index in range(1, len(resolutions)):
        distance = abs(resolutions[index] - target_resolution)
        if distance < best_distance:
            best, best_distance = index, distance
        elif distance == best_distance:
            coarser = resolutions[index] > resolutions[best]
            if coarser == (tie_break is TieBreak.COARSER):
                best = index
    return best


# Tile Enumeration


def tiles_in_view(extent: Extent, level: int, schema: TilingSchema) -> List[TileInfo]:
    """
    List the tiles of ``level`` that intersect ``extent``.

    Tiles are ordered top row first and left to right within a row, regardless
    of the schema's axis direction, so draw order is reproducible.

    Args:
        extent: Requested area in the schema's spatial reference
        level: Zoom level index
        schema: Tiling schema

    Returns:
        Ordered tiles; empty if the extent lies outside the schema coverage
    """
    if not 0 <= level < len(schema.resolutions):
        raise IndexError(f"Level {level} is outside the schema's {len(schema.resolutions)} levels")

    bounds = extent.intersection(schema.extent) if schema.extent is not None else extent
    if bounds is None:
        logger.debug("Extent %s lies outside schema coverage", extent.to_tuple())
        return []

    span_x, span_y = schema.tile_span(level)
    col_start = max(0, math.floor((bounds.min_x - schema.origin_x) / span_x))
    col_stop = math.ceil((bounds.max_x - schema.origin_x) / span_x)

    if schema.axis_direction is AxisDirection.TOP_DOWN:
        row_start = max(0, math.floor((schema.origin_y - bounds.max_y) / span_y))
        row_stop = math.ceil((schema.origin_y - bounds.min_y) / span_y)
        rows = range(row_start, row_stop)
    else:
        row_start = max(0, math.floor((bounds.min_y - schema.origin_y) / span_y))
        row_stop = math.ceil((bounds.max_y - schema.origin_y) / span_y)
        rows = range(row_stop - 1, row_start - 1, -1)

    tiles: List[TileInfo] = []
    for row in rows:
        for col in range(col_start, col_stop):
            tile = schema.tile_info(TileKey(level=level, col=col, row=row))
            # floor/ceil can admit a neighbour that only touches the extent after rounding
            if tile.extent.intersects(bounds):
                tiles.append(tile)
    return tiles
