#!/usr/bin/env python3
"""Fetch flight data from adsb.lol, place it on the map and write JSON for the display."""

import json
import logging
import math
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

import requests

import config
import tiles

logger = logging.getLogger(__name__)

EARTH_RADIUS_NM = 3440.065

HELICOPTER_TYPE_CODES = ("H60", "EC", "R22", "R44", "R66", "B06", "B47", "S70", "S76")

# (ceiling in feet, night colour, day colour)
ALTITUDE_BANDS = [
    (1000, "#42f590", "#006400"),
    (10000, "#42c9f5", "#00008B"),
    (20000, "#4287f5", "#4B0082"),
    (30000, "#f542f2", "#800080"),
]
EXTREME_ALTITUDE_COLORS = ("#f54242", "#8B0000")


def setup_logging() -> None:
    """Configure logging for the data service and the display."""
    level = getattr(logging, config.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def fetch_from_api() -> list | None:
    """Fetch current aircraft from the adsb.lol API."""
    try:
        response = requests.get(config.API_URL, timeout=config.API_TIMEOUT_S)
        if response.status_code == 200:
            data = response.json()
            aircraft = data.get("ac")
            return aircraft if aircraft else []
        logger.warning("API returned status %s", response.status_code)
        return None
    except requests.RequestException as e:
        logger.error("API error: %s", e)
        return None


def distance_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in nautical miles."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlon / 2) ** 2
    )
    return EARTH_RADIUS_NM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def has_position(ac: dict) -> bool:
    return ac.get("lat") is not None and ac.get("lon") is not None


def filter_in_range(aircraft: list, home: tiles.GeoPoint, radius_nm: float) -> list[dict]:
    """Keep aircraft with a position inside the radius, nearest first."""
    with_position = [ac for ac in aircraft if has_position(ac)]
    missing = len(aircraft) - len(with_position)
    if missing:
        logger.debug("%d aircraft missing position data", missing)

    in_range = []
    for ac in with_position:
        distance = distance_nm(home.latitude, home.longitude, ac["lat"], ac["lon"])
        if distance <= radius_nm:
            in_range.append({**ac, "distance": distance})

    in_range.sort(key=lambda ac: ac["distance"])
    logger.info(
        "%d of %d aircraft within %snm", len(in_range), len(with_position), radius_nm
    )
    return in_range


def is_helicopter(aircraft_type: str | None) -> bool:
    """Guess from the ICAO type code whether an aircraft is a helicopter."""
    if not aircraft_type:
        return False
    if any(code in aircraft_type for code in HELICOPTER_TYPE_CODES):
        return True
    return aircraft_type.startswith("H")


def altitude_color(altitude_ft, invert: bool = False) -> str:
    """Marker colour for an altitude band. ``invert`` selects the daytime palette."""
    if not isinstance(altitude_ft, (int, float)):
        return "#000000" if invert else "#ffffff"

    for ceiling, night, day in ALTITUDE_BANDS:
        if altitude_ft < ceiling:
            return day if invert else night
    night, day = EXTREME_ALTITUDE_COLORS
    return day if invert else night


def place_aircraft(
    aircraft: list,
    center: tiles.TileCoordinate,
    zoom: int,
    width: float,
    height: float,
    padding: float = config.OVERLAY_PADDING_PX,
) -> list[dict]:
    """Project aircraft into the viewport, dropping those well outside it."""
    placed = []
    for ac in aircraft:
        if not has_position(ac):
            continue

        pixel = tiles.to_viewport_pixel(ac["lat"], ac["lon"], center, zoom, width, height)
        if (
            pixel.x < -padding
            or pixel.x > width + padding
            or pixel.y < -padding
            or pixel.y > height + padding
        ):
            continue

        # adsb.lol reports "ground" instead of a number for taxiing aircraft
        altitude = ac.get("alt_baro")
        if not isinstance(altitude, (int, float)):
            altitude = None

        aircraft_type = ac.get("t") or ""
        placed.append({
            "id": (ac.get("hex") or "").upper(),
            "callsign": (ac.get("flight") or "").strip(),
            "type": aircraft_type,
            "position": {"lat": ac["lat"], "lon": ac["lon"]},
            "pixel": {"x": round(pixel.x, 2), "y": round(pixel.y, 2)},
            "altitude_ft": altitude,
            "heading": ac.get("track") or 0,
            "distance_nm": round(ac["distance"], 1) if "distance" in ac else None,
            "helicopter": is_helicopter(aircraft_type),
            "color": altitude_color(altitude, config.INVERT_COLORS),
        })
    return placed


def build_output(now: datetime, status: str, planes: list) -> dict:
    """Build the JSON output structure."""
    return {
        "updated": now.isoformat(),
        "status": status,
        "home": {"lat": config.HOME_LAT, "lon": config.HOME_LON},
        "zoom": config.ZOOM,
        "planes": planes[:config.MAX_PLANES],
    }


def write_json(data: dict, path: str = config.DATA_FILE) -> None:
    """Write data to JSON file atomically."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Write to temp file then rename (atomic on POSIX)
    temp_path = path.with_suffix(".tmp")
    with open(temp_path, "w") as f:
        json.dump(data, f, indent=2)
    temp_path.replace(path)


def write_browser_config(path: str = config.CONFIG_FILE) -> None:
    """Write the map geometry needed by the browser, base-map tiles included."""
    center = tiles.to_tile_coordinate(config.HOME_LAT, config.HOME_LON, config.ZOOM)
    base_map = [
        {
            "url": tiles.tile_url(t.x, t.y, t.zoom, config.DARK_THEME),
            "left": t.left,
            "top": t.top,
        }
        for t in tiles.visible_tiles(
            center, config.ZOOM, config.VIEWPORT_WIDTH, config.VIEWPORT_HEIGHT
        )
    ]
    browser_config = {
        "pollIntervalMs": config.API_INTERVAL_S * 1000,
        "home": {"lat": config.HOME_LAT, "lon": config.HOME_LON},
        "zoom": config.ZOOM,
        "viewport": {"width": config.VIEWPORT_WIDTH, "height": config.VIEWPORT_HEIGHT},
        "center": {"tileX": center.tile_x, "tileY": center.tile_y},
        "tileSize": tiles.TILE_SIZE,
        "baseMap": base_map,
    }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(browser_config, f, indent=2)


def refresh(home: tiles.GeoPoint, center: tiles.TileCoordinate) -> list | None:
    """Fetch, filter and place aircraft. None when the feed is unavailable."""
    states = fetch_from_api()
    if states is None:
        return None
    in_range = filter_in_range(states, home, config.RADIUS_NM)
    return place_aircraft(
        in_range, center, config.ZOOM, config.VIEWPORT_WIDTH, config.VIEWPORT_HEIGHT
    )


def main() -> None:
    """Main loop: fetch, place, write, repeat."""
    setup_logging()
    logger.info("Mirror Map data service starting...")
    logger.info("Home: %s, %s (zoom %s)", config.HOME_LAT, config.HOME_LON, config.ZOOM)
    logger.info("Search radius: %s nautical miles", config.RADIUS_NM)

    write_browser_config()
    logger.info("Wrote browser config to %s", config.CONFIG_FILE)

    home = tiles.GeoPoint(config.HOME_LAT, config.HOME_LON)
    center = tiles.to_tile_coordinate(home.latitude, home.longitude, config.ZOOM)
    last_success = None
    planes: list = []

    while True:
        now = datetime.now(timezone.utc)
        placed = refresh(home, center)

        if placed is not None:
            planes = placed
            last_success = now
            status = "ok" if planes else "no_data"
            logger.info("Showing %d aircraft", len(planes))
        else:
            status = "stale" if last_success else "error"
            logger.warning("API failed, status: %s", status)

        try:
            write_json(build_output(now, status, planes))
        except OSError as e:
            logger.error("Failed to write data file: %s", e)

        time.sleep(config.API_INTERVAL_S)


if __name__ == "__main__":
    main()
