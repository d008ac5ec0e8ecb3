"""Web Mercator tile math shared by the base map and the aircraft overlay.

Slippy-map tiling (the scheme OpenStreetMap-style tile servers use):
  - zoom z divides the world into 2^z x 2^z tiles of 256x256 pixels
  - tile (0, 0) is the north-west corner
  - x grows eastward, y grows southward

Both the base map and every marker drawn over it must go through
``to_viewport_pixel`` with the same center, or they drift apart on screen.
"""

import logging
import math
from dataclasses import dataclass

import config

logger = logging.getLogger(__name__)

TILE_SIZE = 256
MAX_LATITUDE = 85.0511287798
MAX_ZOOM = 19


@dataclass(frozen=True)
class GeoPoint:
    """WGS84 position in degrees."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class TileCoordinate:
    """Continuous and discretized position in the tile grid at one zoom level."""

    tile_x: float
    tile_y: float
    tile_x_floor: int
    tile_y_floor: int
    frac_x: float  # [0, 1)
    frac_y: float  # [0, 1)


@dataclass(frozen=True)
class ViewportPixel:
    """Pixel offset from the viewport's top-left corner. May lie off screen."""

    x: float
    y: float


@dataclass(frozen=True)
class PlacedTile:
    """A base-map tile and where its top-left corner lands in the viewport."""

    x: int  # not wrapped; tile_url() wraps it
    y: int
    zoom: int
    left: float
    top: float


def _finite_or_zero(value: float) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


def clamp_latitude(latitude: float) -> float:
    """Clamp latitude to the range Web Mercator can represent."""
    latitude = _finite_or_zero(latitude)
    return max(-MAX_LATITUDE, min(MAX_LATITUDE, latitude))


def normalize_longitude(longitude: float) -> float:
    """Wrap longitude into [-180, 180)."""
    longitude = (_finite_or_zero(longitude) + 180.0) % 360.0 - 180.0
    # float modulo can round a tiny negative up to exactly 360
    if longitude >= 180.0:
        return -180.0
    return longitude


def _tile_position(latitude: float, longitude: float, zoom: int) -> tuple[float, float]:
    """Continuous tile-space position of a point. Every public helper goes through here."""
    lat_rad = math.radians(clamp_latitude(latitude))
    mercator_x = (normalize_longitude(longitude) + 180.0) / 360.0
    # asinh(tan(lat)) == ln(tan(lat) + sec(lat)), without the cancellation near -MAX_LATITUDE
    mercator_y = (1.0 - math.asinh(math.tan(lat_rad)) / math.pi) / 2.0
    scale = 2.0 ** max(0, int(zoom))
    return mercator_x * scale, mercator_y * scale


def to_tile_coordinate(latitude: float, longitude: float, zoom: int) -> TileCoordinate:
    """Convert a lat/lon at a zoom level to its slippy-map tile coordinate."""
    tile_x, tile_y = _tile_position(latitude, longitude, zoom)
    tile_x_floor = math.floor(tile_x)
    tile_y_floor = math.floor(tile_y)
    coord = TileCoordinate(
        tile_x=tile_x,
        tile_y=tile_y,
        tile_x_floor=tile_x_floor,
        tile_y_floor=tile_y_floor,
        frac_x=tile_x - tile_x_floor,
        frac_y=tile_y - tile_y_floor,
    )

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Tile coordinate for (%s, %s) at zoom %s: %s", latitude, longitude, zoom, coord
        )
    return coord


def to_viewport_pixel(
    latitude: float,
    longitude: float,
    center: TileCoordinate,
    zoom: int,
    viewport_width: float,
    viewport_height: float,
) -> ViewportPixel:
    """Place a lat/lon in a viewport centered on ``center``.

    The center's world pixel is taken from its continuous tile coordinate,
    so the point that produced ``center`` lands exactly on the middle of
    the viewport.
    """
    tile_x, tile_y = _tile_position(latitude, longitude, zoom)
    world_x = tile_x * TILE_SIZE
    world_y = tile_y * TILE_SIZE
    center_world_x = center.tile_x * TILE_SIZE
    center_world_y = center.tile_y * TILE_SIZE
    return ViewportPixel(
        x=world_x - center_world_x + viewport_width / 2,
        y=world_y - center_world_y + viewport_height / 2,
    )


def tile_url(x: float, y: float, zoom: int, dark_theme: bool = False) -> str:
    """Resolve a tile address to a tile server URL.

    Zoom is clamped to [0, MAX_ZOOM], y to the valid rows, and x wraps
    around the world.
    """
    zoom = max(0, min(MAX_ZOOM, int(zoom)))
    tiles_per_axis = 2 ** zoom
    valid_y = max(0, min(math.floor(y), tiles_per_axis - 1))
    valid_x = math.floor(x) % tiles_per_axis

    template = config.DARK_TILE_URL if dark_theme else config.OSM_TILE_URL
    return template.format(z=zoom, x=valid_x, y=valid_y)


def visible_tiles(
    center: TileCoordinate, zoom: int, viewport_width: float, viewport_height: float
) -> list[PlacedTile]:
    """List the tiles covering a viewport centered on ``center``.

    Rows above the north edge or below the south edge of the world are
    skipped; columns are left unwrapped so neighbours stay contiguous.
    """
    zoom = max(0, int(zoom))
    tiles_per_axis = 2 ** zoom

    tiles_needed_x = math.ceil(viewport_width / TILE_SIZE) + 2
    tiles_needed_y = math.ceil(viewport_height / TILE_SIZE) + 2
    grid_size = max(tiles_needed_x, tiles_needed_y)
    half = grid_size // 2
    offsets = range(-half, grid_size - half)

    placed = []
    for dy in offsets:
        y = center.tile_y_floor + dy
        if y < 0 or y >= tiles_per_axis:
            continue
        for dx in offsets:
            x = center.tile_x_floor + dx
            placed.append(PlacedTile(
                x=x,
                y=y,
                zoom=zoom,
                left=(x - center.tile_x) * TILE_SIZE + viewport_width / 2,
                top=(y - center.tile_y) * TILE_SIZE + viewport_height / 2,
            ))
    return placed
