"""Unit tests for geographic helpers."""

import pytest

from travel_guide.utils.geo import distance_meters, haversine_distance


class TestHaversine:
    def test_zero_distance(self) -> None:
        assert haversine_distance(52.52, 13.405, 52.52, 13.405) == 0

    def test_berlin_to_munich(self) -> None:
        km = haversine_distance(52.5200, 13.4050, 48.1351, 11.5820)
        assert km == pytest.approx(504, abs=3)

    def test_meters(self) -> None:
        assert distance_meters(0, 0, 0, 1) == pytest.approx(111_195, rel=1e-3)

