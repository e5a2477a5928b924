"""Layer configuration and request builders for tile services."""

from .base import LayerConfig, LayerRegistry, RequestBuilder, default_registry, get_config, register_layer
from .config import MosaicConfig
from .wmts import WMTSRequestBuilder
from .xyz import QuadKeyRequestBuilder, XYZRequestBuilder, tile_to_quadkey

__all__ = [
    "LayerConfig",
    "LayerRegistry",
    "RequestBuilder",
    "default_registry",
    "get_config",
    "register_layer",
    "MosaicConfig",
    "WMTSRequestBuilder",
    "QuadKeyRequestBuilder",
    "XYZRequestBuilder",
    "tile_to_quadkey",
]
