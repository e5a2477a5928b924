"""Request builder abstractions and the layer registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List

from ..errors import ConfigurationError
from ..types import TileInfo, TilingSchema

__all__ = [
    "RequestBuilder",
    "LayerConfig",
    "LayerRegistry",
    "default_registry",
    "register_layer",
    "get_config",
]


class RequestBuilder(ABC):
    """Abstract base class for turning tiles into fetch addresses."""

    @abstractmethod
    def get_address(self, tile: TileInfo) -> str:
        """Return the URL of ``tile``. Must be a pure function of the tile."""


@dataclass(frozen=True)
class LayerConfig:
    """Everything needed to fetch one tiled layer."""

    schema: TilingSchema
    request_builder: RequestBuilder


# ----------------------------------------------------------------------
# Layer registry utilities
# ----------------------------------------------------------------------


class LayerRegistry:
    """In-memory schema provider keyed by layer identifier."""

    def __init__(self) -> None:
        self._layers: Dict[str, LayerConfig] = {}

    def register(self, layer: str, schema: TilingSchema, request_builder: RequestBuilder) -> LayerConfig:
        config = LayerConfig(schema=schema, request_builder=request_builder)
        self._layers[layer] = config
        return config

    def get_config(self, layer: str) -> LayerConfig:
        try:
            return self._layers[layer]
        except KeyError as exc:
            raise ConfigurationError(f"No layer registered as '{layer}'", cause=exc) from exc

    def names(self) -> List[str]:
        return sorted(self._layers)

    def __contains__(self, layer: object) -> bool:
        return layer in self._layers


default_registry = LayerRegistry()


def register_layer(layer: str, schema: TilingSchema, request_builder: RequestBuilder) -> LayerConfig:
    """Register a layer with the default registry."""

    return default_registry.register(layer, schema, request_builder)


def get_config(layer: str) -> LayerConfig:
    """Look up a layer in the default registry."""

    return default_registry.get_config(layer)
