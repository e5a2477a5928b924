"""TileMosaic - tiled imagery acquisition, caching and georeferencing for map views."""

from ._version import __version__

from .cache import FileCache
from .compose import ArrayCompositor
from .core import TieBreak, ViewTransform, select_level, tiles_in_view
from .errors import (
    CacheWriteError,
    ConfigurationError,
    FetchError,
    NoLevelsAvailable,
    ProjectionError,
    TileMosaicError,
)
from .georef import AuxXmlStamper, write_spatial_reference_sidecar, write_world_file
from .mosaic import MapView, RenderResult, RenderSession, TileMosaic
from .projection import ExtentProjector, PyprojReprojectionService
from .service import (
    LayerConfig,
    LayerRegistry,
    MosaicConfig,
    QuadKeyRequestBuilder,
    RequestBuilder,
    WMTSRequestBuilder,
    XYZRequestBuilder,
    get_config,
    register_layer,
)
from .tiles import TileFetcher, fetch_tile
from .types import (
    WEB_MERCATOR,
    WGS84,
    AxisDirection,
    Extent,
    ImageFormat,
    SpatialReference,
    TileInfo,
    TileKey,
    TilingSchema,
    global_mercator_schema,
)

__all__ = [
    "__version__",
    "FileCache",
    "ArrayCompositor",
    "TieBreak",
    "ViewTransform",
    "select_level",
    "tiles_in_view",
    "CacheWriteError",
    "ConfigurationError",
    "FetchError",
    "NoLevelsAvailable",
    "ProjectionError",
    "TileMosaicError",
    "AuxXmlStamper",
    "write_spatial_reference_sidecar",
    "write_world_file",
    "MapView",
    "RenderResult",
    "RenderSession",
    "TileMosaic",
    "ExtentProjector",
    "PyprojReprojectionService",
    "LayerConfig",
    "LayerRegistry",
    "MosaicConfig",
    "QuadKeyRequestBuilder",
    "RequestBuilder",
    "WMTSRequestBuilder",
    "XYZRequestBuilder",
    "get_config",
    "register_layer",
    "TileFetcher",
    "fetch_tile",
    "WEB_MERCATOR",
    "WGS84",
    "AxisDirection",
    "Extent",
    "ImageFormat",
    "SpatialReference",
    "TileInfo",
    "TileKey",
    "TilingSchema",
    "global_mercator_schema",
]
