"""Extent projection between spatial references."""

from __future__ import annotations

import logging
import math
from typing import Optional

from pyproj.exceptions import CRSError, ProjError
from pyproj.transformer import Transformer

from .errors import ProjectionError
from .types import Extent, SpatialReference
from .typing import ReprojectionService

logger = logging.getLogger(__name__)

__all__ = ["ExtentProjector", "PyprojReprojectionService", "transform_extent"]


def transform_extent(
    extent: Extent,
    source: SpatialReference,
    target: SpatialReference,
    densify_pts: int = 21,
) -> Extent:
    """
    Transform an extent from one spatial reference to another.

    Edges are densified so curved boundaries in the target reference are
    enclosed by the returned rectangle.

    Args:
        extent: Extent in ``source``
        source: Source spatial reference
        target: Destination spatial reference
        densify_pts: Points added along each edge

    Raises:
        ProjectionError: If either reference is unknown or the result is unusable
    """
    try:
        transformer = Transformer.from_crs(source.to_pyproj(), target.to_pyproj(), always_xy=True)
        xmin, ymin, xmax, ymax = transformer.transform_bounds(
            extent.min_x,
            extent.min_y,
            extent.max_x,
            extent.max_y,
            densify_pts=densify_pts,
        )
    except (CRSError, ProjError) as exc:
        raise ProjectionError(f"Cannot project from {source.srs} to {target.srs}: {exc}", cause=exc) from exc

    if not all(math.isfinite(v) for v in (xmin, ymin, xmax, ymax)):
        raise ProjectionError(f"Extent {extent.to_tuple()} has no finite projection in {target.srs}")

    try:
        return Extent(min_x=xmin, min_y=ymin, max_x=xmax, max_y=ymax)
    except ValueError as exc:
        raise ProjectionError(f"Extent collapsed when projected to {target.srs}", cause=exc) from exc


class PyprojReprojectionService:
    """Reprojection service backed by pyproj."""

    def __init__(self, densify_pts: int = 21) -> None:
        self.densify_pts = densify_pts

    def project(self, extent: Extent, source: SpatialReference, target: SpatialReference) -> Extent:
        return transform_extent(extent, source, target, densify_pts=self.densify_pts)


class ExtentProjector:
    """Moves view extents into a schema's native spatial reference."""

    def __init__(self, service: Optional[ReprojectionService] = None) -> None:
        self.service = service or PyprojReprojectionService()

    def project(self, extent: Extent, source: SpatialReference, target: SpatialReference) -> Extent:
        if source.same_as(target):
            return extent

        logger.debug("Projecting extent %s from %s to %s", extent.to_tuple(), source.srs, target.srs)
        return self.service.project(extent, source, target)
