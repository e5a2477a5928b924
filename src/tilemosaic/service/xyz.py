"""
URL-template request builders for XYZ, TMS and quadkey tile services.
"""

from typing import Sequence

from ..types import TileInfo, TileKey
from .base import RequestBuilder


def tile_to_quadkey(key: TileKey) -> str:
    """Bing-style quadkey of a tile; level 0 maps to the empty string."""
    digits = []
    for i in range(key.level, 0, -1):
        mask = 1 << (i - 1)
        digit = 0
        if key.col & mask:
            digit += 1
        if key.row & mask:
            digit += 2
        digits.append(str(digit))
    return "".join(digits)


class XYZRequestBuilder(RequestBuilder):
    """
    Builds addresses from a template such as ``https://{s}.tile.example.org/{z}/{x}/{y}.png``.

    Placeholders:
        {z}: zoom level
        {x}: column
        {y}: row
        {-y}: row counted from the bottom (TMS)
        {s}: subdomain, rotated across tiles
    """

    def __init__(self, template: str, subdomains: Sequence[str] = ()) -> None:
        if "{s}" in template and not subdomains:
            raise ValueError("Template uses {s} but no subdomains were given")
        self.template = template
        self.subdomains = tuple(subdomains)

    def _subdomain(self, key: TileKey) -> str:
        if not self.subdomains:
            return ""
        return self.subdomains[(key.col + key.row) % len(self.subdomains)]

    def get_address(self, tile: TileInfo) -> str:
        key = tile.key
        flipped = (1 << key.level) - 1 - key.row
        return (
            self.template.replace("{z}", str(key.level))
            .replace("{x}", str(key.col))
            .replace("{-y}", str(flipped))
            .replace("{y}", str(key.row))
            .replace("{s}", self._subdomain(key))
        )


class QuadKeyRequestBuilder(XYZRequestBuilder):
    """Template builder that also fills ``{quadkey}``."""

    def get_address(self, tile: TileInfo) -> str:
        address = super().get_address(tile)
        return address.replace("{quadkey}", tile_to_quadkey(tile.key))
