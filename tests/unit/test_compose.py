import logging

import numpy as np
import pytest

from tilemosaic.compose import ArrayCompositor, load_raster
from tilemosaic.mosaic import MapView, TileMosaic
from tilemosaic.service.config import MosaicConfig
from tilemosaic.types import Extent, SpatialReference
from tilemosaic.typing import Resampling

VIEW_EXTENT = Extent(min_x=0, min_y=0, max_x=512, max_y=512)
MERCATOR = SpatialReference(code=3857)

COLORS = {
    (0, 0): (255, 0, 0, 255),
    (1, 0): (0, 255, 0, 255),
    (0, 1): (0, 0, 255, 255),
    (1, 1): (255, 255, 0, 255),
}


@pytest.fixture
def colored_fetcher(fetcher_factory, png_bytes):
    return fetcher_factory(
        {f"http://tiles.test/0/{col}/{row}.png": png_bytes(color) for (col, row), color in COLORS.items()}
    )


def _draw(tmp_cache_dir, registry, fetcher, compositor, spatial_reference=MERCATOR):
    mosaic = TileMosaic(MosaicConfig(cache_dir=tmp_cache_dir), provider=registry, fetcher=fetcher)
    view = MapView(extent=VIEW_EXTENT, spatial_reference=spatial_reference, width=512, height=512)
    return mosaic.draw(view, "grid", compositor)


def test_quadrants_composite_into_place(tmp_cache_dir, registry, colored_fetcher):
    compositor = ArrayCompositor(VIEW_EXTENT, 512, 512, spatial_reference=MERCATOR)

    _draw(tmp_cache_dir, registry, colored_fetcher, compositor)

    canvas = compositor.canvas
    assert tuple(canvas[:, 10, 10]) == COLORS[(0, 0)]
    assert tuple(canvas[:, 10, 300]) == COLORS[(1, 0)]
    assert tuple(canvas[:, 300, 10]) == COLORS[(0, 1)]
    assert tuple(canvas[:, 500, 500]) == COLORS[(1, 1)]
    assert len(compositor.drawn) == 4


def test_half_size_canvas_resamples(tmp_cache_dir, registry, colored_fetcher):
    _draw(tmp_cache_dir, registry, colored_fetcher, ArrayCompositor(VIEW_EXTENT, 512, 512))
    compositor = ArrayCompositor(VIEW_EXTENT, 256, 256)

    for path in sorted((tmp_cache_dir / "grid").rglob("*.png")):
        compositor.draw_raster(path, MERCATOR, need_reproject=False)

    assert tuple(compositor.canvas[:, 0, 0]) == COLORS[(0, 0)]
    assert tuple(compositor.canvas[:, 255, 255]) == COLORS[(1, 1)]
    assert tuple(compositor.canvas[:, 64, 192]) == COLORS[(1, 0)]


def test_raster_outside_canvas_is_ignored(tmp_cache_dir, registry, colored_fetcher):
    _draw(tmp_cache_dir, registry, colored_fetcher, ArrayCompositor(VIEW_EXTENT, 512, 512))
    compositor = ArrayCompositor(Extent(min_x=2000, min_y=2000, max_x=2100, max_y=2100), 100, 100)

    compositor.draw_raster(tmp_cache_dir / "grid" / "0" / "0" / "0.png", MERCATOR, need_reproject=False)

    assert not compositor.canvas.any()


def test_reprojector_receives_rasters(tmp_cache_dir, registry, colored_fetcher):
    class RecordingReprojector:
        def __init__(self):
            self.calls = []

        def reproject_raster(self, spatial_reference, resampling, raster):
            self.calls.append((spatial_reference, resampling, raster.data.shape))

    reprojector = RecordingReprojector()
    _draw(tmp_cache_dir, registry, colored_fetcher, ArrayCompositor(VIEW_EXTENT, 512, 512))
    compositor = ArrayCompositor(VIEW_EXTENT, 512, 512, reprojector=reprojector)

    compositor.draw_raster(tmp_cache_dir / "grid" / "0" / "0" / "0.png", MERCATOR, need_reproject=True)

    assert reprojector.calls == [(MERCATOR, Resampling.NEAREST, (4, 256, 256))]


def test_missing_reprojector_warns_once(tmp_cache_dir, registry, colored_fetcher, caplog):
    _draw(tmp_cache_dir, registry, colored_fetcher, ArrayCompositor(VIEW_EXTENT, 512, 512))
    compositor = ArrayCompositor(VIEW_EXTENT, 512, 512)
    path = tmp_cache_dir / "grid" / "0" / "0" / "0.png"

    with caplog.at_level(logging.WARNING, logger="tilemosaic.compose"):
        compositor.draw_raster(path, MERCATOR, need_reproject=True)
        compositor.draw_raster(path, MERCATOR, need_reproject=True)

    assert caplog.text.count("no reprojector is configured") == 1


def test_load_raster_requires_world_file(tmp_path, png_bytes):
    path = tmp_path / "tile.png"
    path.write_bytes(png_bytes())

    with pytest.raises(ValueError, match="no world file"):
        load_raster(path)


def test_load_raster_grayscale(tmp_cache_dir, registry, colored_fetcher):
    _draw(tmp_cache_dir, registry, colored_fetcher, ArrayCompositor(VIEW_EXTENT, 512, 512))

    raster = load_raster(tmp_cache_dir / "grid" / "0" / "0" / "0.png", bands=1)

    assert raster.data.shape == (1, 256, 256)
    assert raster.world.pixel_size_x == 1.0


def test_to_dataarray(tmp_cache_dir, registry, colored_fetcher):
    compositor = ArrayCompositor(VIEW_EXTENT, 512, 512, spatial_reference=MERCATOR)
    _draw(tmp_cache_dir, registry, colored_fetcher, compositor)

    array = compositor.to_dataarray()

    assert array.dims == ("band", "y", "x")
    assert array.shape == (4, 512, 512)
    assert array.attrs["crs"] == "EPSG:3857"
    assert array.attrs["transform"] == (1.0, 0.0, 0.0, 0.0, -1.0, 512.0)
    assert float(array.x[0]) == 0.5
    assert float(array.y[0]) == 511.5
    np.testing.assert_array_equal(array.isel(y=0, x=0).values, COLORS[(0, 0)])


def test_rejects_bad_canvas():
    with pytest.raises(ValueError):
        ArrayCompositor(VIEW_EXTENT, 0, 10)
    with pytest.raises(ValueError):
        ArrayCompositor(VIEW_EXTENT, 10, 10, bands=2)


def test_load_raster_accepts_string_path(tmp_cache_dir, registry, colored_fetcher):
    _draw(tmp_cache_dir, registry, colored_fetcher, ArrayCompositor(VIEW_EXTENT, 512, 512))

    raster = load_raster(str(tmp_cache_dir / "grid" / "0" / "1" / "1.png"))

    assert tuple(raster.data[:, 0, 0]) == COLORS[(1, 1)]
    assert (raster.world.origin_x, raster.world.origin_y) == (256.0, 256.0)
