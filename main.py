import io
import logging
import math
import sys

import pygame
import pygame.gfxdraw
import requests

import config
import fetch_flights
import tiles

logger = logging.getLogger(__name__)

# Visual settings
BACKGROUND_COLOR = (0, 0, 0)
HOME_COLOR = (255, 80, 80)
TEXT_COLOR = (255, 255, 255)
TARGET_FPS = 30

# Marker outlines in pixels around the aircraft position, nose up (north)
PLANE_SHAPE = [(0, -8), (5, 5), (0, 2), (-5, 5)]
HELICOPTER_SHAPE = [(0, -6), (3, 0), (1, 8), (-1, 8), (-3, 0)]
ROTOR_RADIUS = 7


class TileCache:
    """Base-map tile surfaces keyed by (x, y, zoom, dark). Failed tiles stay cached as None."""

    def __init__(self, dark_theme=config.DARK_THEME):
        self.dark_theme = dark_theme
        self._tiles = {}

    def get(self, x, y, zoom):
        key = (x, y, zoom, self.dark_theme)
        if key not in self._tiles:
            self._tiles[key] = self._load(x, y, zoom)
        return self._tiles[key]

    def _load(self, x, y, zoom):
        url = tiles.tile_url(x, y, zoom, self.dark_theme)
        try:
            response = requests.get(
                url,
                headers={"User-Agent": config.USER_AGENT},
                timeout=config.TILE_TIMEOUT_S,
            )
            response.raise_for_status()
            return pygame.image.load(io.BytesIO(response.content), "tile.png")
        except (requests.RequestException, pygame.error) as e:
            logger.error("Failed to load tile %s,%s,%s: %s", x, y, zoom, e)
            return None

    def __len__(self):
        return len(self._tiles)


def altitude_label(altitude_ft):
    """Altitude rounded to the nearest 100 ft, empty when unknown."""
    if altitude_ft is None:
        return ""
    return f"{round(altitude_ft / 100) * 100}ft"


def hex_to_rgb(color):
    color = color.lstrip("#")
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


def draw_base_map(surface, tile_cache, center, zoom, width, height):
    """Blit every tile covering the viewport at its shared-transform position"""
    for placed in tiles.visible_tiles(center, zoom, width, height):
        image = tile_cache.get(placed.x, placed.y, placed.zoom)
        if image is not None:
            surface.blit(image, (round(placed.left), round(placed.top)))


def marker_points(cx, cy, heading, helicopter=False):
    """Marker outline around (cx, cy), nose pointing along the heading (0 = north, clockwise)."""
    shape = HELICOPTER_SHAPE if helicopter else PLANE_SHAPE
    heading_rad = math.radians(heading or 0)
    cos_h, sin_h = math.cos(heading_rad), math.sin(heading_rad)
    # Screen y grows downward, so this rotation is clockwise on screen
    return [
        (cx + px * cos_h - py * sin_h, cy + px * sin_h + py * cos_h)
        for px, py in shape
    ]


def draw_marker(surface, cx, cy, heading, helicopter, color):
    points = marker_points(cx, cy, heading, helicopter)
    pygame.draw.polygon(surface, color, points)
    pygame.gfxdraw.aapolygon(surface, [(round(x), round(y)) for x, y in points], color)
    if helicopter:
        pygame.draw.circle(surface, color, (cx, cy), ROTOR_RADIUS, 1)


def draw_planes(surface, font, planes):
    for plane in reversed(planes):
        cx, cy = int(plane["pixel"]["x"]), int(plane["pixel"]["y"])
        color = hex_to_rgb(plane["color"])
        draw_marker(surface, cx, cy, plane["heading"], plane["helicopter"], color)

        # Labels
        name = plane["type"] or plane["callsign"] or "Unknown"
        label1 = font.render(name, True, TEXT_COLOR)
        surface.blit(label1, (cx - label1.get_width() // 2, cy + 10))
        altitude = altitude_label(plane["altitude_ft"])
        if altitude:
            label2 = font.render(altitude, True, TEXT_COLOR)
            surface.blit(label2, (cx - label2.get_width() // 2, cy + 26))


def main():
    fetch_flights.setup_logging()
    pygame.init()

    width, height = config.VIEWPORT_WIDTH, config.VIEWPORT_HEIGHT
    if config.IS_PI:
        screen = pygame.display.set_mode((width, height), pygame.FULLSCREEN)
    else:
        screen = pygame.display.set_mode((width, height))

    pygame.display.set_caption("Mirror Map")
    pygame.mouse.set_visible(False)
    clock = pygame.time.Clock()
    font = pygame.font.Font(None, 20)

    home = tiles.GeoPoint(config.HOME_LAT, config.HOME_LON)
    center = tiles.to_tile_coordinate(home.latitude, home.longitude, config.ZOOM)
    home_pixel = tiles.to_viewport_pixel(
        home.latitude, home.longitude, center, config.ZOOM, width, height
    )
    tile_cache = TileCache()
    planes = []
    last_api_call = None

    running = True
    while running:
        now = pygame.time.get_ticks() / 1000

        # Handle events
        for event in pygame.event.get():
            if event.type == pygame.QUIT or (event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE):
                running = False

        # Fetch flight data periodically
        if last_api_call is None or now - last_api_call > config.API_INTERVAL_S:
            last_api_call = now
            placed = fetch_flights.refresh(home, center)
            if placed is not None:
                planes = placed[:config.MAX_PLANES]
                logger.info("Showing %d aircraft", len(planes))

        # Draw
        screen.fill(BACKGROUND_COLOR)
        draw_base_map(screen, tile_cache, center, config.ZOOM, width, height)

        hx, hy = int(home_pixel.x), int(home_pixel.y)
        pygame.gfxdraw.aacircle(screen, hx, hy, 4, HOME_COLOR)
        pygame.gfxdraw.filled_circle(screen, hx, hy, 4, HOME_COLOR)

        draw_planes(screen, font, planes)

        pygame.display.flip()
        clock.tick(TARGET_FPS)

    pygame.quit()
    sys.exit()


if __name__ == "__main__":
    main()
