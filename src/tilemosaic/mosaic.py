"""Render pipeline turning a map view into a sequence of cached, georeferenced tiles."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .cache import FileCache
from .core import ViewTransform, get_center_point, get_map_resolution, select_level, tiles_in_view
from .errors import CacheWriteError, FetchError
from .georef import AuxXmlStamper, world_file_path, write_world_file
from .projection import ExtentProjector
from .service.base import LayerConfig, default_registry
from .service.config import MosaicConfig
from .tiles import TileFetcher
from .types import Extent, SpatialReference, TileInfo, TileKey, TilingSchema
from .typing import Renderer, ReprojectionService, SchemaProvider, SpatialReferenceStamper

logger = logging.getLogger(__name__)

__all__ = ["MapView", "ReadyTile", "SkippedTile", "RenderResult", "RenderSession", "TileMosaic"]

# Seconds between cancellation checks while waiting for a tile.
_CANCEL_POLL_INTERVAL = 0.05

CANCELLED = "cancelled"


class MapView(BaseModel):
    """The view to fill: its extent and spatial reference, and its size in screen pixels."""

    extent: Extent
    spatial_reference: SpatialReference
    width: int = Field(..., gt=0, description="View width in pixels")
    height: int = Field(..., gt=0, description="View height in pixels")

    model_config = ConfigDict(frozen=True)


class ReadyTile(BaseModel):
    tile: TileInfo
    path: Path


class SkippedTile(BaseModel):
    tile: TileInfo
    reason: str


class RenderResult(BaseModel):
    """Outcome of one render call, in tile enumeration order."""

    layer: str
    level: int
    need_reproject: bool
    ready: List[ReadyTile] = Field(default_factory=list)
    skipped: List[SkippedTile] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def ready_keys(self) -> List[TileKey]:
        return [ready.tile.key for ready in self.ready]

    @property
    def skipped_keys(self) -> List[TileKey]:
        return [skipped.tile.key for skipped in self.skipped]


@dataclass(frozen=True)
class RenderSession:
    """Per-call render plan. Built once, never shared between calls."""

    layer: str
    config: LayerConfig
    cache: FileCache
    display_reference: SpatialReference
    projected_extent: Extent
    transform: ViewTransform
    level: int
    tiles: Tuple[TileInfo, ...]
    need_reproject: bool

    @property
    def schema(self) -> TilingSchema:
        return self.config.schema

    @classmethod
    def plan(
        cls,
        view: MapView,
        layer: str,
        *,
        provider: SchemaProvider,
        projector: ExtentProjector,
        mosaic_config: MosaicConfig,
    ) -> "RenderSession":
        """
        Resolve the layer, project the view and choose the tiles to draw.

        Raises:
            ConfigurationError: If the layer is unknown
            ProjectionError: If the view cannot be projected into the schema's reference
            NoLevelsAvailable: If the schema has no levels
        """
        config = provider.get_config(layer)
        schema = config.schema
        cache = mosaic_config.cache_for(layer, schema.format)

        projected = projector.project(view.extent, view.spatial_reference, schema.spatial_reference)
        need_reproject = not view.spatial_reference.same_as(schema.spatial_reference)

        transform = ViewTransform(
            center=get_center_point(projected),
            resolution=get_map_resolution(projected, view.width),
            width=view.width,
            height=view.height,
        )
        level = select_level(schema.resolutions, transform.resolution, mosaic_config.tie_break)
        tiles = tiles_in_view(transform.extent, level, schema)

        return cls(
            layer=layer,
            config=config,
            cache=cache,
            display_reference=view.spatial_reference,
            projected_extent=projected,
            transform=transform,
            level=level,
            tiles=tuple(tiles),
            need_reproject=need_reproject,
        )


TileOutcome = Union[ReadyTile, SkippedTile]


class TileMosaic:
    """
    Draws map views from a tiled layer through a local tile cache.

    Tiles are acquired concurrently (cache hit, or fetch then cache then
    georeference) and handed to the renderer strictly in enumeration order.
    A tile that cannot be acquired is skipped; the rest of the view still
    renders.
    """

    def __init__(
        self,
        config: MosaicConfig,
        provider: Optional[SchemaProvider] = None,
        reprojection: Optional[ReprojectionService] = None,
        fetcher: Optional[TileFetcher] = None,
        stamper: Optional[SpatialReferenceStamper] = None,
    ) -> None:
        self.config = config
        self.provider = provider or default_registry
        self.projector = ExtentProjector(reprojection)
        self.fetcher = fetcher or TileFetcher(**config.fetcher_kwargs())
        self.stamper = stamper or AuxXmlStamper()

    def plan(self, view: MapView, layer: str) -> RenderSession:
        return RenderSession.plan(
            view,
            layer,
            provider=self.provider,
            projector=self.projector,
            mosaic_config=self.config,
        )

    def draw(
        self,
        view: MapView,
        layer: str,
        renderer: Renderer,
        cancel: Optional[threading.Event] = None,
    ) -> RenderResult:
        """
        Render ``view`` from ``layer`` onto ``renderer``.

        Args:
            view: Extent, spatial reference and pixel size of the view
            layer: Layer identifier known to the schema provider
            renderer: Receives each ready tile, in enumeration order
            cancel: Set to stop issuing fetches and return early

        Returns:
            Ready and skipped tiles of this call
        """
        session = self.plan(view, layer)
        logger.info(
            "Rendering layer '%s' at level %d: %d tiles, reproject=%s",
            layer,
            session.level,
            len(session.tiles),
            session.need_reproject,
        )

        result = RenderResult(layer=layer, level=session.level, need_reproject=session.need_reproject)
        if not session.tiles:
            return result

        cancel = cancel or threading.Event()
        executor = ThreadPoolExecutor(
            max_workers=min(self.config.max_workers, len(session.tiles)),
            thread_name_prefix="tilemosaic",
        )
        try:
            futures = [executor.submit(self._acquire, session, tile, cancel) for tile in session.tiles]
            for tile, future in zip(session.tiles, futures):
                if not _wait_for(future, cancel):
                    result.cancelled = True
                    result.skipped.append(SkippedTile(tile=tile, reason=CANCELLED))
                    continue

                outcome = future.result()
                if isinstance(outcome, SkippedTile):
                    result.cancelled = result.cancelled or outcome.reason == CANCELLED
                    result.skipped.append(outcome)
                    continue

                renderer.draw_raster(outcome.path, session.display_reference, session.need_reproject)
                result.ready.append(outcome)
        finally:
            # In-flight fetches are abandoned on cancellation; their timeouts bound them.
            executor.shutdown(wait=not cancel.is_set(), cancel_futures=True)

        if result.skipped:
            logger.warning("Layer '%s': %d of %d tiles skipped", layer, len(result.skipped), len(session.tiles))
        return result

    # ------------------------------------------------------------------
    # Per-tile acquisition (runs on worker threads)
    # ------------------------------------------------------------------
    def _acquire(self, session: RenderSession, tile: TileInfo, cancel: threading.Event) -> TileOutcome:
        """Acquire one tile. Every failure here is scoped to this tile."""
        try:
            return self._acquire_tile(session, tile, cancel)
        except Exception as exc:
            logger.exception("Skipping tile %s after unexpected error", tile.key)
            return SkippedTile(tile=tile, reason=f"{type(exc).__name__}: {exc}")

    def _acquire_tile(self, session: RenderSession, tile: TileInfo, cancel: threading.Event) -> TileOutcome:
        cache = session.cache
        key = tile.key

        if cache.exists(key):
            logger.debug("Cache hit for tile %s", key)
            path = cache.file_name(key)
            self._georeference(session, tile, path, only_missing=True)
            return ReadyTile(tile=tile, path=path)

        if cancel.is_set():
            return SkippedTile(tile=tile, reason=CANCELLED)

        try:
            address = session.config.request_builder.get_address(tile)
            data = self._fetch_with_retries(address, cancel)
        except FetchError as exc:
            if cancel.is_set():
                return SkippedTile(tile=tile, reason=CANCELLED)
            logger.warning("Skipping tile %s: %s", key, exc)
            return SkippedTile(tile=tile, reason=str(exc))

        try:
            path = cache.add(key, data)
        except CacheWriteError as exc:
            logger.error("Skipping tile %s: %s", key, exc)
            return SkippedTile(tile=tile, reason=str(exc))

        self._georeference(session, tile, path)
        return ReadyTile(tile=tile, path=path)

    def _fetch_with_retries(self, address: str, cancel: threading.Event) -> bytes:
        attempts = self.config.max_retries + 1
        for attempt in range(attempts):
            try:
                return self.fetcher.fetch(address)
            except FetchError as exc:
                if not exc.transient or attempt == attempts - 1:
                    raise
                logger.warning("Tile request attempt %d/%d failed: %s", attempt + 1, attempts, exc)
                if cancel.wait(self.config.retry_backoff * (attempt + 1)):
                    raise

        # This should never be reached, but just in case
        raise FetchError(f"No fetch attempted for {address}", transient=False)

    def _georeference(self, session: RenderSession, tile: TileInfo, path: Path, only_missing: bool = False) -> None:
        """Write world file and spatial reference sidecar. Failures leave the tile usable."""
        schema = session.schema
        world_path = world_file_path(path, schema.format)
        try:
            if world_path is not None and not (only_missing and world_path.is_file()):
                write_world_file(world_path, tile.extent, schema)
            if not (only_missing and self.stamper.is_stamped(path, schema.spatial_reference)):
                self.stamper.stamp(path, schema.spatial_reference)
        except OSError as exc:
            logger.warning("Georeferencing of tile %s failed, drawing without it: %s", tile.key, exc)


def _wait_for(future: Future, cancel: threading.Event) -> bool:
    """Block until ``future`` is done. Returns False if ``cancel`` is set while it is still running."""
    while not future.done():
        if cancel.is_set():
            return False
        wait([future], timeout=_CANCEL_POLL_INTERVAL)
    return True
