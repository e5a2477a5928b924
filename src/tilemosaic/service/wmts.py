"""
WMTS (Web Map Tile Service) tile request functionality.
"""

from typing import Any, Dict, Optional, Sequence, Union
from urllib.parse import urlencode

from ..types import ImageFormat, TileInfo
from .base import RequestBuilder


class WMTSRequestBuilder(RequestBuilder):
    """Builds KVP GetTile requests for a WMTS layer."""

    def __init__(
        self,
        base_url: str,
        layer: str,
        tile_matrix_set: str,
        output_format: Union[str, ImageFormat] = ImageFormat.PNG,
        tile_matrices: Optional[Sequence[str]] = None,
        style: str = "default",
        **params: Any,
    ) -> None:
        """
        Args:
            base_url: WMTS service base URL
            layer: Layer identifier
            tile_matrix_set: Tile matrix set identifier
            output_format: Output format
            tile_matrices: Tile matrix identifier per level; level index is used if omitted
            style: Style identifier
            **params: Additional WMTS parameters
        """
        self.base_url = base_url.rstrip("/?")
        self.layer = layer
        self.tile_matrix_set = tile_matrix_set
        self.output_format = ImageFormat.parse(output_format)
        self.tile_matrices = list(tile_matrices) if tile_matrices is not None else None
        self.style = style
        self.params = params

    def tile_matrix(self, level: int) -> str:
        if self.tile_matrices is None:
            return str(level)
        try:
            return self.tile_matrices[level]
        except IndexError as exc:
            raise ValueError(f"No tile matrix identifier for level {level}") from exc

    def get_address(self, tile: TileInfo) -> str:
        params: Dict[str, Any] = {
            'service': 'WMTS',
            'version': self.params.get('version', '1.0.0'),
            'request': 'GetTile',
            'layer': self.layer,
            'style': self.style,
            'tilematrixset': self.tile_matrix_set,
            'tilematrix': self.tile_matrix(tile.key.level),
            'tilerow': tile.key.row,
            'tilecol': tile.key.col,
            'format': self.output_format.mime_type,
        }

        # Add any additional WMTS parameters
        params.update(self.params)

        return f"{self.base_url}?{urlencode(params)}"
