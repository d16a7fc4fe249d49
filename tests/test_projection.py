"""Tests for the polar stereographic projection."""

import numpy as np
import pandas as pd
import pytest

from ist_matchup.errors import InvalidCoordinate
from ist_matchup.projection import (
    NSIDC_NORTH,
    PolarStereographic,
    normalize_longitude,
    project_records,
)

A = 6378137.0
F = 1 / 298.257223563
E2 = F * (2 - F)


def true_scale_radius(lat_deg=70.0):
    """a * m_c: distance from the pole to the latitude of true scale."""
    phi = np.radians(lat_deg)
    return A * np.cos(phi) / np.sqrt(1 - E2 * np.sin(phi) ** 2)


class TestForward:
    @pytest.mark.parametrize("lon", [-180.0, -45.0, 0.0, 90.0, 270.0])
    def test_pole_maps_to_origin(self, lon):
        x, y = NSIDC_NORTH.forward(lon, 90.0)
        assert x == pytest.approx(0.0, abs=1e-6)
        assert y == pytest.approx(0.0, abs=1e-6)

    def test_central_meridian_points_down(self):
        x, y = NSIDC_NORTH.forward(-45.0, 70.0)
        assert x == pytest.approx(0.0, abs=1e-6)
        assert y == pytest.approx(-true_scale_radius(), rel=1e-9)

    def test_quarter_turn_east(self):
        x, y = NSIDC_NORTH.forward(45.0, 70.0)
        assert x == pytest.approx(true_scale_radius(), rel=1e-9)
        assert y == pytest.approx(0.0, abs=1e-6)

    def test_vectorised(self):
        lon = np.array([-120.0, 0.0, 150.0])
        lat = np.array([80.0, 75.0, 85.0])
        x, y = NSIDC_NORTH.forward(lon, lat)
        assert x.shape == y.shape == (3,)
        assert np.all(np.isfinite(x)) and np.all(np.isfinite(y))

    def test_360_longitudes_match_signed(self):
        x1, y1 = NSIDC_NORTH.forward(240.0, 80.0)
        x2, y2 = NSIDC_NORTH.forward(-120.0, 80.0)
        assert x1 == pytest.approx(x2, rel=1e-9)
        assert y1 == pytest.approx(y2, rel=1e-9)

    def test_opposite_pole_does_not_raise(self):
        x, y = NSIDC_NORTH.forward([0.0, 10.0], [-90.0, 80.0])
        assert np.isnan(x[0]) and np.isnan(y[0])
        assert np.isfinite(x[1]) and np.isfinite(y[1])

    def test_false_origin_offsets(self):
        shifted = PolarStereographic(false_easting=1000.0, false_northing=-500.0)
        x, y = shifted.forward(-45.0, 90.0)
        assert (x, y) == pytest.approx((1000.0, -500.0))

    def test_matches_pyproj(self):
        pyproj = pytest.importorskip("pyproj")
        tr = pyproj.Transformer.from_crs("EPSG:4326", "EPSG:3413", always_xy=True)
        lon = np.array([-120.0, -45.0, 0.0, 100.0, 179.9])
        lat = np.array([80.0, 65.0, 89.5, 72.3, 60.0])
        ex, ey = tr.transform(lon, lat)
        x, y = NSIDC_NORTH.forward(lon, lat)
        np.testing.assert_allclose(x, ex, rtol=1e-6, atol=1e-3)
        np.testing.assert_allclose(y, ey, rtol=1e-6, atol=1e-3)


class TestValidation:
    @pytest.mark.parametrize("lon, lat", [
        (0.0, 90.5), (0.0, -91.0), (-180.5, 80.0), (360.0, 80.0),
        (np.nan, 80.0), (0.0, np.inf),
    ])
    def test_invalid_coordinates(self, lon, lat):
        with pytest.raises(InvalidCoordinate):
            NSIDC_NORTH.forward(lon, lat)

    def test_error_names_offending_rows(self):
        with pytest.raises(InvalidCoordinate, match="#1"):
            NSIDC_NORTH.forward([0.0, 0.0], [80.0, 95.0])

    def test_edges_are_valid(self):
        NSIDC_NORTH.forward([-180.0, 359.999], [-90.0, 90.0])

    def test_bad_definitions(self):
        with pytest.raises(ValueError):
            PolarStereographic(pole_latitude=45.0)
        with pytest.raises(ValueError):
            PolarStereographic(latitude_true_scale=-70.0)


class TestInverse:
    def test_round_trip(self):
        lon = np.array([-120.0, -45.0, 0.0, 100.0, 179.5, -179.5])
        lat = np.array([80.0, 65.0, 89.9, 72.3, 50.0, 30.0])
        x, y = NSIDC_NORTH.forward(lon, lat)
        lon2, lat2 = NSIDC_NORTH.inverse(x, y)
        np.testing.assert_allclose(lon2, lon, atol=1e-6)
        np.testing.assert_allclose(lat2, lat, atol=1e-6)

    def test_round_trip_south_pole(self):
        south = PolarStereographic(pole_latitude=-90.0, latitude_true_scale=-71.0,
                                   central_meridian=0.0)
        lon = np.array([-120.0, 0.0, 45.0, 170.0])
        lat = np.array([-80.0, -65.0, -89.0, -60.0])
        x, y = south.forward(lon, lat)
        lon2, lat2 = south.inverse(x, y)
        np.testing.assert_allclose(lon2, lon, atol=1e-6)
        np.testing.assert_allclose(lat2, lat, atol=1e-6)

    def test_south_pole_orientation(self):
        # EPSG:3031: lon 0 lies on +y, lon 90E on +x
        south = PolarStereographic(pole_latitude=-90.0, latitude_true_scale=-71.0,
                                   central_meridian=0.0)
        x0, y0 = south.forward(0.0, -70.0)
        x90, y90 = south.forward(90.0, -70.0)
        assert y0 > 0 and x0 == pytest.approx(0.0, abs=1e-6)
        assert x90 > 0 and y90 == pytest.approx(0.0, abs=1e-6)

    def test_true_scale_at_pole_variant(self):
        polar = PolarStereographic(latitude_true_scale=90.0, scale_factor=0.994)
        lon, lat = polar.inverse(*polar.forward(30.0, 75.0))
        assert float(lon) == pytest.approx(30.0, abs=1e-6)
        assert float(lat) == pytest.approx(75.0, abs=1e-6)

    def test_normalize_longitude(self):
        np.testing.assert_allclose(normalize_longitude([180.0, 240.0, -180.0, 359.0]),
                                   [-180.0, -120.0, -180.0, -1.0])


class TestProjectRecords:
    def test_adds_grid_columns_in_order(self):
        daily = pd.DataFrame({
            "record_id": ["X/2023-08-01", "X/2023-08-02"],
            "longitude": [-120.0, -45.0],
            "latitude": [80.0, 90.0],
        })
        out = project_records(daily)
        assert list(out["record_id"]) == list(daily["record_id"])
        assert out.loc[1, "grid_x"] == pytest.approx(0.0, abs=1e-6)
        assert np.isfinite(out.loc[0, "grid_x"])
        assert "grid_x" not in daily.columns

    def test_day_without_position_gets_nan(self):
        daily = pd.DataFrame({
            "record_id": ["X/2023-08-01", "X/2023-08-02"],
            "longitude": [-120.0, np.nan],
            "latitude": [80.0, np.nan],
        })
        out = project_records(daily)
        assert np.isfinite(out.loc[0, "grid_x"])
        assert pd.isna(out.loc[1, "grid_x"]) and pd.isna(out.loc[1, "grid_y"])

    def test_half_missing_position_raises(self):
        daily = pd.DataFrame({"longitude": [-120.0], "latitude": [np.nan]})
        with pytest.raises(InvalidCoordinate):
            project_records(daily)

    def test_invalid_row_raises(self):
        daily = pd.DataFrame({"longitude": [0.0], "latitude": [91.0]})
        with pytest.raises(InvalidCoordinate):
            project_records(daily)
