"""
Tests for tilemosaic.georef module.

Tests world-file generation and spatial-reference sidecars.
"""

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

from tilemosaic.georef import (
    AuxXmlStamper,
    KNOWN_WKT,
    aux_file_path,
    read_world_file,
    world_file_path,
    world_file_values,
    write_spatial_reference_sidecar,
    write_world_file,
)
from tilemosaic.types import Extent, SpatialReference, TilingSchema


class TestWorldFile:
    """Test world-file writing."""

    def test_unit_tile(self, tmp_path):
        schema = TilingSchema(resolutions=[1.0], tile_width=100, tile_height=100)
        path = tmp_path / "0.pgw"

        write_world_file(path, Extent(min_x=0, min_y=-100, max_x=100, max_y=0), schema)

        assert path.read_text().splitlines() == ["1", "0", "0", "-1", "0", "0"]

    def test_fractional_values_round_trip(self, tmp_path):
        schema = TilingSchema(resolutions=[0.3], tile_width=3, tile_height=3)
        extent = Extent(min_x=0.1, min_y=0.2, max_x=1.0, max_y=1.1)
        path = tmp_path / "tile.pgw"

        write_world_file(path, extent, schema)

        assert read_world_file(path) == world_file_values(extent, schema)

    def test_deterministic(self, tmp_path):
        schema = TilingSchema(resolutions=[2.5], tile_width=256, tile_height=256)
        extent = Extent(min_x=-640.0, min_y=100.0, max_x=0.0, max_y=740.0)

        first = write_world_file(tmp_path / "a.pgw", extent, schema).read_bytes()
        second = write_world_file(tmp_path / "b.pgw", extent, schema).read_bytes()

        assert first == second
        assert first.count(b"\n") == 6

    @pytest.mark.property
    @given(
        min_x=st.floats(min_value=-1e7, max_value=1e7),
        min_y=st.floats(min_value=-1e7, max_value=1e7),
        size=st.floats(min_value=1e-3, max_value=1e6),
        tile_size=st.integers(min_value=1, max_value=1024),
    )
    def test_north_up_coefficients(self, min_x, min_y, size, tile_size):
        schema = TilingSchema(resolutions=[1.0], tile_width=tile_size, tile_height=tile_size)
        extent = Extent(min_x=min_x, min_y=min_y, max_x=min_x + size, max_y=min_y + size)

        values = world_file_values(extent, schema)

        assert values.pixel_size_x > 0
        assert values.pixel_size_y < 0
        assert values.rotation_x == values.rotation_y == 0
        assert (values.origin_x, values.origin_y) == (extent.min_x, extent.max_y)

    def test_read_rejects_short_file(self, tmp_path):
        path = tmp_path / "short.pgw"
        path.write_text("1\n0\n0\n")

        with pytest.raises(ValueError, match="expected 6"):
            read_world_file(path)


class TestWorldFilePath:
    """Test world-file naming."""

    @pytest.mark.parametrize("fmt, suffix", [("png", ".pgw"), ("jpg", ".jgw"), ("tif", ".tfw")])
    def test_known_formats(self, fmt, suffix):
        assert world_file_path("cache/1/2/3.img", fmt) == Path("cache/1/2/3" + suffix)

    def test_unknown_format(self):
        assert world_file_path("cache/1/2/3.gif", "gif") is None


class TestSpatialReferenceSidecar:
    """Test PAM sidecar writing."""

    def test_writes_known_reference(self, tmp_path):
        raster = tmp_path / "3.png"

        aux = write_spatial_reference_sidecar(raster, SpatialReference(code=4326))

        assert aux == tmp_path / "3.png.aux.xml"
        root = ET.parse(aux).getroot()
        assert root.tag == "PAMDataset"
        assert root.find("SRS").text == KNOWN_WKT[4326]

    def test_unknown_reference_is_noop(self, tmp_path):
        raster = tmp_path / "3.png"

        assert write_spatial_reference_sidecar(raster, SpatialReference(code=32631)) is None
        assert not aux_file_path(raster).exists()

    def test_stamper_reports_state(self, tmp_path):
        raster = tmp_path / "3.png"
        stamper = AuxXmlStamper()
        mercator = SpatialReference(code=3857)

        assert not stamper.is_stamped(raster, mercator)
        stamper.stamp(raster, mercator)
        assert stamper.is_stamped(raster, mercator)
        # Nothing to write, so nothing missing.
        assert stamper.is_stamped(raster, SpatialReference(code=32631))


def test_accepts_string_paths(tmp_path):
    schema = TilingSchema(resolutions=[1.0], tile_width=100, tile_height=100)
    raster = str(tmp_path / "7.png")
    extent = Extent(min_x=0, min_y=-100, max_x=100, max_y=0)

    world = write_world_file(str(world_file_path(raster, "png")), extent, schema)
    aux = write_spatial_reference_sidecar(raster, SpatialReference(code=3857))

    assert world == tmp_path / "7.pgw"
    assert read_world_file(str(world)) == world_file_values(extent, schema)
    assert aux == aux_file_path(raster) == tmp_path / "7.png.aux.xml"
