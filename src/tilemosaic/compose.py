# pyright: reportUnknownMemberType=false, reportUnknownArgumentType=false

"""In-memory compositing of georeferenced tile rasters into a single array."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import xarray as xr
from numpy.typing import NDArray
from PIL import Image

from .georef import WorldFile, read_world_file, world_file_path
from .types import Extent, SpatialReference
from .typing import PathLike, RasterReprojector, Resampling

logger = logging.getLogger(__name__)

_MODES: Dict[int, str] = {1: "L", 3: "RGB", 4: "RGBA"}


@dataclass
class RasterTile:
    """Decoded raster handed to a ``RasterReprojector``, which may replace both fields."""

    data: NDArray[np.uint8]  # (band, row, col)
    world: WorldFile


def load_raster(path: PathLike, bands: int = 4) -> RasterTile:
    """Decode a cached tile together with its world file."""
    path = Path(path)
    if bands not in _MODES:
        raise ValueError(f"bands must be one of {sorted(_MODES)}")

    world_path = world_file_path(path, path.suffix)
    if world_path is None or not world_path.is_file():
        raise ValueError(f"Raster {path} has no world file")

    with Image.open(path) as img:
        pixels = np.asarray(img.convert(_MODES[bands]), dtype=np.uint8)
    if pixels.ndim == 2:
        pixels = pixels[np.newaxis, ...]
    else:
        pixels = np.moveaxis(pixels, -1, 0)
    return RasterTile(data=pixels, world=read_world_file(world_path))


def _resize(data: NDArray[np.uint8], width: int, height: int) -> NDArray[np.uint8]:
    return np.stack(
        [np.asarray(Image.fromarray(band).resize((width, height), Image.Resampling.NEAREST)) for band in data]
    )


class ArrayCompositor:
    """
    Rendering surface that pastes tiles into a numpy canvas.

    The canvas covers ``extent`` at ``width`` x ``height`` pixels. Each raster
    is placed by its world file and resampled to the canvas resolution; later
    draws overwrite earlier ones where they overlap.
    """

    def __init__(
        self,
        extent: Extent,
        width: int,
        height: int,
        bands: int = 4,
        spatial_reference: Optional[SpatialReference] = None,
        reprojector: Optional[RasterReprojector] = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("canvas dimensions must be positive")
        if bands not in _MODES:
            raise ValueError(f"bands must be one of {sorted(_MODES)}")
        self.extent = extent
        self.width = width
        self.height = height
        self.bands = bands
        self.spatial_reference = spatial_reference
        self.reprojector = reprojector
        self.res_x = extent.width / width
        self.res_y = extent.height / height
        self.canvas: NDArray[np.uint8] = np.zeros((bands, height, width), dtype=np.uint8)
        self.drawn: List[Path] = []
        self._warned_reproject = False

    def draw_raster(self, file_path: Path, spatial_reference: SpatialReference, need_reproject: bool) -> None:
        raster = load_raster(file_path, self.bands)
        if need_reproject:
            if self.reprojector is not None:
                self.reprojector.reproject_raster(spatial_reference, Resampling.NEAREST, raster)
            elif not self._warned_reproject:
                logger.warning(
                    "Tiles need reprojection to %s but no reprojector is configured; compositing in native coordinates",
                    spatial_reference.srs,
                )
                self._warned_reproject = True
        self.paste(raster)
        self.drawn.append(Path(file_path))

    def paste(self, raster: RasterTile) -> None:
        world = raster.world
        data = raster.data
        rows, cols = data.shape[1], data.shape[2]

        target_w = max(1, round(cols * world.pixel_size_x / self.res_x))
        target_h = max(1, round(rows * -world.pixel_size_y / self.res_y))
        if (target_w, target_h) != (cols, rows):
            data = _resize(data, target_w, target_h)

        col_off = round((world.origin_x - self.extent.min_x) / self.res_x)
        row_off = round((self.extent.max_y - world.origin_y) / self.res_y)

        c0, c1 = max(col_off, 0), min(col_off + target_w, self.width)
        r0, r1 = max(row_off, 0), min(row_off + target_h, self.height)
        if c0 >= c1 or r0 >= r1:
            logger.debug("Raster at (%s, %s) lies outside the canvas", world.origin_x, world.origin_y)
            return

        self.canvas[:, r0:r1, c0:c1] = data[:, r0 - row_off:r1 - row_off, c0 - col_off:c1 - col_off]

    def to_dataarray(self) -> xr.DataArray:
        """Canvas as a DataArray with pixel-centre coordinates."""
        x_coords = self.extent.min_x + (np.arange(self.width) + 0.5) * self.res_x
        y_coords = self.extent.max_y - (np.arange(self.height) + 0.5) * self.res_y
        attrs: Dict[str, Any] = {
            "transform": (self.res_x, 0.0, self.extent.min_x, 0.0, -self.res_y, self.extent.max_y),
        }
        if self.spatial_reference is not None:
            attrs["crs"] = self.spatial_reference.srs
        return xr.DataArray(
            self.canvas.copy(),
            coords={"band": np.arange(1, self.bands + 1), "y": y_coords, "x": x_coords},
            dims=("band", "y", "x"),
            attrs=attrs,
        )
