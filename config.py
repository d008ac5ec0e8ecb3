"""Shared configuration for the Mirror Map radar display."""

import os
import platform

# ─── Location ──────────────────────────────────────
HOME_LAT = float(os.getenv("HOME_LAT", "39.8283"))
HOME_LON = float(os.getenv("HOME_LON", "-98.5795"))

# ─── Map ───────────────────────────────────────────
ZOOM = int(os.getenv("MAP_ZOOM", "7"))
VIEWPORT_WIDTH = int(os.getenv("VIEWPORT_WIDTH", "600"))
VIEWPORT_HEIGHT = int(os.getenv("VIEWPORT_HEIGHT", "500"))
DARK_THEME = os.getenv("DARK_THEME", "1") not in ("0", "false", "no")

OSM_TILE_URL = "https://tile.openstreetmap.org/{z}/{x}/{y}.png"
DARK_TILE_URL = "https://cartodb-basemaps-a.global.ssl.fastly.net/dark_all/{z}/{x}/{y}.png"
TILE_TIMEOUT_S = 10
USER_AGENT = os.getenv("USER_AGENT", "MirrorMap/1.0 (smart mirror radar display)")

# ─── Data Fetching ─────────────────────────────────
API_URL = os.getenv("ADSB_API_URL", "https://api.adsb.lol/v2/mil")
API_INTERVAL_S = int(os.getenv("API_INTERVAL_S", "15"))
API_TIMEOUT_S = float(os.getenv("API_TIMEOUT_S", "10"))
RADIUS_NM = float(os.getenv("RADIUS_NM", "500"))

# ─── Overlay ───────────────────────────────────────
# Aircraft further than this outside the viewport are dropped
OVERLAY_PADDING_PX = float(os.getenv("OVERLAY_PADDING_PX", "100"))
MAX_PLANES = 50
INVERT_COLORS = False

# ─── Paths ─────────────────────────────────────────
DATA_FILE = os.getenv("DATA_FILE", "web/flights.json")
CONFIG_FILE = os.getenv("CONFIG_FILE", "web/config.json")

# ─── Logging ───────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "info")

# ─── Platform Detection ────────────────────────────
IS_PI = platform.machine().startswith("aarch64") or platform.machine().startswith("arm")
