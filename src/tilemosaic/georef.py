"""
Georeferencing sidecars for cached tiles: world files and spatial-reference declarations.

A world file holds the six affine coefficients mapping pixel (col, row) to
ground (x, y), one per line, in the order::

    pixel size X
    rotation about Y
    rotation about X
    pixel size Y (negative, rows run downward)
    X of the upper-left corner
    Y of the upper-left corner

Tiles are always north-up, so both rotation terms are zero.
"""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, NamedTuple, Optional, Union

from .types import Extent, ImageFormat, SpatialReference, TilingSchema, world_file_extension_for
from .typing import PathLike

logger = logging.getLogger(__name__)


class WorldFile(NamedTuple):
    pixel_size_x: float
    rotation_y: float
    rotation_x: float
    pixel_size_y: float
    origin_x: float
    origin_y: float


def world_file_values(extent: Extent, schema: TilingSchema) -> WorldFile:
    """Affine coefficients placing a tile of ``schema`` over ``extent``."""
    res_x = (extent.max_x - extent.min_x) / schema.tile_width
    res_y = (extent.max_y - extent.min_y) / schema.tile_height
    return WorldFile(res_x, 0.0, 0.0, -res_y, extent.min_x, extent.max_y)


def _format_value(value: float) -> str:
    if value == 0:
        return "0"
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def world_file_path(image_path: PathLike, image_format: Union[str, ImageFormat]) -> Optional[Path]:
    """Sibling world-file path for a raster, or None if the format has no world file."""
    extension = world_file_extension_for(image_format)
    if not extension:
        return None
    return Path(image_path).with_suffix(f".{extension}")


def write_world_file(path: PathLike, extent: Extent, schema: TilingSchema) -> Path:
    """
    Write the world file for a tile.

    Args:
        path: Destination world-file path
        extent: Ground extent of the tile
        schema: Tiling schema supplying the tile pixel size

    Returns:
        The path written
    """
    path = Path(path)
    values = world_file_values(extent, schema)
    path.write_text("\n".join(_format_value(v) for v in values) + "\n", encoding="ascii")
    logger.debug("Wrote world file %s", path)
    return path


def read_world_file(path: PathLike) -> WorldFile:
    lines = [line.strip() for line in Path(path).read_text(encoding="ascii").splitlines() if line.strip()]
    if len(lines) != 6:
        raise ValueError(f"World file {path} has {len(lines)} values, expected 6")
    return WorldFile(*(float(line) for line in lines))


# Spatial-reference declarations


_WGS84_WKT = (
    'GEOGCS["GCS_WGS_1984",DATUM["D_WGS_1984",SPHEROID["WGS_1984",6378137.0,298.257223563]],'
    'PRIMEM["Greenwich",0.0],UNIT["Degree",0.0174532925199433]]'
)

_WEB_MERCATOR_WKT = (
    'PROJCS["WGS_1984_Web_Mercator_Auxiliary_Sphere",'
    'GEOGCS["GCS_WGS_1984",DATUM["D_WGS_1984",SPHEROID["WGS_1984",6378137.0,298.257223563]],'
    'PRIMEM["Greenwich",0.0],UNIT["Degree",0.0174532925199433]],'
    'PROJECTION["Mercator_Auxiliary_Sphere"],PARAMETER["False_Easting",0.0],'
    'PARAMETER["False_Northing",0.0],PARAMETER["Central_Meridian",0.0],'
    'PARAMETER["Standard_Parallel_1",0.0],PARAMETER["Auxiliary_Sphere_Type",0.0],UNIT["Meter",1.0]]'
)

_RD_NEW_WKT = (
    'PROJCS["RD_New",GEOGCS["GCS_Amersfoort",DATUM["D_Amersfoort",'
    'SPHEROID["Bessel_1841",6377397.155,299.1528128]],PRIMEM["Greenwich",0.0],'
    'UNIT["Degree",0.0174532925199433]],PROJECTION["Double_Stereographic"],'
    'PARAMETER["False_Easting",155000.0],PARAMETER["False_Northing",463000.0],'
    'PARAMETER["Central_Meridian",5.38763888888889],PARAMETER["Scale_Factor",0.9999079],'
    'PARAMETER["Latitude_Of_Origin",52.15616055555555],UNIT["Meter",1.0]]'
)

KNOWN_WKT: Dict[int, str] = {
    4326: _WGS84_WKT,
    3857: _WEB_MERCATOR_WKT,
    102100: _WEB_MERCATOR_WKT,
    102113: _WEB_MERCATOR_WKT,
    28992: _RD_NEW_WKT,
}


def aux_file_path(image_path: PathLike) -> Path:
    image_path = Path(image_path)
    return image_path.with_name(image_path.name + ".aux.xml")


def write_spatial_reference_sidecar(
    path: PathLike,
    spatial_reference: SpatialReference,
) -> Optional[Path]:
    """
    Write a ``.aux.xml`` sidecar declaring the raster's spatial reference.

    Only references with a known WKT template are written; for any other code
    this is a no-op and None is returned.

    Args:
        path: Raster path; the sidecar is written next to it
        spatial_reference: Reference to declare

    Returns:
        Sidecar path, or None if nothing was written
    """
    wkt = KNOWN_WKT.get(spatial_reference.code)
    if wkt is None:
        logger.debug("No WKT template for %s, skipping sidecar", spatial_reference.srs)
        return None

    root = ET.Element("PAMDataset")
    ET.SubElement(root, "SRS").text = wkt
    aux_path = aux_file_path(path)
    aux_path.write_text(ET.tostring(root, encoding="unicode") + "\n", encoding="utf-8")
    logger.debug("Wrote spatial reference sidecar %s", aux_path)
    return aux_path


class AuxXmlStamper:
    """Declares spatial references through PAM ``.aux.xml`` sidecar files.

    An alternative stamper could write the reference into the raster dataset
    itself through a raster library's schema-edit API. That is more expensive
    per tile, and any such implementation plugs in through the same ``stamp``
    signature.
    """

    def stamp(self, file_path: Path, spatial_reference: SpatialReference) -> Optional[Path]:
        return write_spatial_reference_sidecar(file_path, spatial_reference)

    def is_stamped(self, file_path: Path, spatial_reference: SpatialReference) -> bool:
        """True when a sidecar exists or none would be written for this reference."""
        return spatial_reference.code not in KNOWN_WKT or aux_file_path(file_path).is_file()
