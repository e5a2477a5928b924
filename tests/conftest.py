"""
Shared test configuration, fixtures, and markers for tilemosaic tests.
"""

import io
import shutil
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest
from PIL import Image

from tilemosaic.service.base import LayerRegistry
from tilemosaic.service.xyz import XYZRequestBuilder
from tilemosaic.types import AxisDirection, ImageFormat, SpatialReference, TilingSchema

TILE_URL = "http://tiles.test/{z}/{x}/{y}.png"


def pytest_configure(config):
    """Configure test markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (>1s)")
    config.addinivalue_line("markers", "net: marks tests requiring network")
    config.addinivalue_line("markers", "property: marks property-based tests")
    config.addinivalue_line("markers", "unit: marks unit tests (fast, pure logic)")
    config.addinivalue_line("markers", "integration: marks integration tests")


@pytest.fixture
def tmp_cache_dir():
    """Isolated cache directory for tests."""
    cache_dir = tempfile.mkdtemp()
    yield Path(cache_dir)
    shutil.rmtree(cache_dir)


def make_png(color: Tuple[int, int, int, int] = (255, 0, 0, 255), size: Tuple[int, int] = (256, 256)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    return make_png


@pytest.fixture
def grid_schema() -> TilingSchema:
    """Single-level 256px grid whose top-left corner is (0, 512) in Web Mercator units."""
    return TilingSchema(
        name="grid",
        resolutions=(1.0,),
        tile_width=256,
        tile_height=256,
        format=ImageFormat.PNG,
        spatial_reference=SpatialReference(code=3857),
        origin_x=0.0,
        origin_y=512.0,
        axis_direction=AxisDirection.TOP_DOWN,
    )


@pytest.fixture
def registry(grid_schema: TilingSchema) -> LayerRegistry:
    registry = LayerRegistry()
    registry.register("grid", grid_schema, XYZRequestBuilder(TILE_URL))
    return registry


Response = Union[bytes, Exception, List[Union[bytes, Exception]]]


class FakeFetcher:
    """Thread-safe stand-in for ``TileFetcher`` serving canned responses per address."""

    def __init__(
        self,
        responses: Optional[Dict[str, Response]] = None,
        default: Optional[bytes] = None,
        delays: Optional[Dict[str, float]] = None,
    ) -> None:
        self.responses = dict(responses or {})
        self.default = default if default is not None else make_png()
        self.delays = dict(delays or {})
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def fetch(self, address: str) -> bytes:
        with self._lock:
            self.calls.append(address)
            response = self.responses.get(address, self.default)
            if isinstance(response, list):
                response = response.pop(0) if len(response) > 1 else response[0]
        time.sleep(self.delays.get(address, 0.0))
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fetcher_factory():
    """Build a FakeFetcher with canned responses, e.g. ``fetcher_factory({url: b"..."})``."""
    return FakeFetcher


class RecordingRenderer:
    """Renderer that records every draw call."""

    def __init__(self) -> None:
        self.draws: List[Tuple[Path, SpatialReference, bool]] = []

    def draw_raster(self, file_path: Path, spatial_reference: SpatialReference, need_reproject: bool) -> None:
        self.draws.append((file_path, spatial_reference, need_reproject))

    @property
    def paths(self) -> List[Path]:
        return [draw[0] for draw in self.draws]


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def renderer_factory():
    """Build independent renderers, e.g. one per concurrent render call."""
    return RecordingRenderer
