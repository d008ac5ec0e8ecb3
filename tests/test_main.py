"""Tests for the pygame display helpers."""

import pygame
import pytest
import requests

import main
from main import (
    TileCache,
    altitude_label,
    draw_base_map,
    draw_marker,
    hex_to_rgb,
    marker_points,
)
from tiles import to_tile_coordinate, visible_tiles


class FakeTileResponse:
    def __init__(self, content):
        self.content = content

    def raise_for_status(self):
        pass


@pytest.fixture
def png_bytes(tmp_path):
    surface = pygame.Surface((256, 256))
    surface.fill((10, 20, 30))
    path = tmp_path / "tile.png"
    pygame.image.save(surface, str(path))
    return path.read_bytes()


class TestAltitudeLabel:
    def test_rounds_to_hundreds(self):
        assert altitude_label(12345) == "12300ft"
        assert altitude_label(980) == "1000ft"

    def test_unknown(self):
        assert altitude_label(None) == ""


def test_hex_to_rgb():
    assert hex_to_rgb("#42f590") == (0x42, 0xF5, 0x90)


class TestTileCache:
    def test_loads_and_caches_tile(self, monkeypatch, png_bytes):
        calls = []

        def fake_get(url, headers, timeout):
            calls.append((url, headers))
            return FakeTileResponse(png_bytes)

        monkeypatch.setattr(main.requests, "get", fake_get)
        cache = TileCache(dark_theme=False)

        first = cache.get(3, 5, 4)
        second = cache.get(3, 5, 4)

        assert first is second
        assert first.get_size() == (256, 256)
        assert len(calls) == 1
        assert calls[0][0] == "https://tile.openstreetmap.org/4/3/5.png"
        assert "User-Agent" in calls[0][1]

    def test_failed_tile_is_not_refetched(self, monkeypatch):
        calls = []

        def boom(url, headers, timeout):
            calls.append(url)
            raise requests.ConnectionError("offline")

        monkeypatch.setattr(main.requests, "get", boom)
        cache = TileCache()

        assert cache.get(0, 0, 1) is None
        assert cache.get(0, 0, 1) is None
        assert len(calls) == 1
        assert len(cache) == 1


class StubCache:
    def __init__(self):
        self.requested = []
        self.tile = pygame.Surface((256, 256))

    def get(self, x, y, zoom):
        self.requested.append((x, y, zoom))
        return self.tile


def test_draw_base_map_requests_every_visible_tile():
    center = to_tile_coordinate(39.8283, -98.5795, 7)
    surface = pygame.Surface((600, 500))
    cache = StubCache()

    draw_base_map(surface, cache, center, 7, 600, 500)

    expected = [(t.x, t.y, t.zoom) for t in visible_tiles(center, 7, 600, 500)]
    assert cache.requested == expected


class TestMarker:
    WHITE = (255, 255, 255)

    def lit(self, surface, x, y):
        return tuple(surface.get_at((x, y)))[:3] == self.WHITE

    def test_points_rotate_clockwise_with_heading(self):
        nose_north = marker_points(50, 50, 0)[0]
        nose_east = marker_points(50, 50, 90)[0]
        nose_south = marker_points(50, 50, 180)[0]
        assert nose_north == pytest.approx((50, 42))
        assert nose_east == pytest.approx((58, 50))
        assert nose_south == pytest.approx((50, 58))

    def test_missing_heading_points_north(self):
        assert marker_points(50, 50, None) == marker_points(50, 50, 0)

    def test_helicopter_has_its_own_shape(self):
        assert len(marker_points(50, 50, 0, helicopter=True)) != len(marker_points(50, 50, 0))

    @pytest.mark.parametrize(
        "heading,nose,tail",
        [(0, (50, 45), (50, 57)), (90, (55, 50), (43, 50)), (180, (50, 55), (50, 43))],
    )
    def test_drawn_marker_follows_heading(self, heading, nose, tail):
        surface = pygame.Surface((100, 100))
        surface.fill((0, 0, 0))

        draw_marker(surface, 50, 50, heading, False, self.WHITE)

        assert self.lit(surface, *nose)
        assert not self.lit(surface, *tail)

    def test_helicopter_draws_rotor_ring(self):
        ring = [(x, 50) for x in range(56, 59)]
        helicopter = pygame.Surface((100, 100))
        helicopter.fill((0, 0, 0))
        plane = pygame.Surface((100, 100))
        plane.fill((0, 0, 0))

        draw_marker(helicopter, 50, 50, 0, True, self.WHITE)
        draw_marker(plane, 50, 50, 0, False, self.WHITE)

        assert self.lit(helicopter, 50, 47)
        assert any(self.lit(helicopter, x, y) for x, y in ring)
        assert not any(self.lit(plane, x, y) for x, y in ring)
