"""
Polar stereographic projection (ellipsoidal, latitude-of-true-scale form).

Forward and inverse formulas follow Snyder, "Map Projections: A Working
Manual" (USGS PP 1395), eqs. 15-9, 21-33 to 21-40, which are also what PROJ's
``stere`` implements. ``NSIDC_NORTH`` is the grid used by the NSIDC/NOAA
polar products (EPSG:3413).
"""
from dataclasses import dataclass

import numpy as np

from ist_matchup.errors import InvalidCoordinate

_MAX_ITER = 30
_EPS = 1e-12


@dataclass(frozen=True)
class PolarStereographic:
    """Polar stereographic definition. Angles in degrees, lengths in metres."""

    pole_latitude: float = 90.0
    latitude_true_scale: float = 70.0
    central_meridian: float = -45.0
    scale_factor: float = 1.0
    false_easting: float = 0.0
    false_northing: float = 0.0
    semi_major_axis: float = 6378137.0
    inverse_flattening: float = 298.257223563

    def __post_init__(self):
        if abs(self.pole_latitude) != 90.0:
            raise ValueError(f"pole_latitude must be +90 or -90, got {self.pole_latitude}")
        if self.latitude_true_scale * self.pole_latitude <= 0:
            raise ValueError("latitude_true_scale must lie in the pole's hemisphere")

    # ─── Ellipsoid constants ─────────────────────────────────────────────────
    @property
    def _sign(self):
        return 1.0 if self.pole_latitude > 0 else -1.0

    @property
    def _e(self):
        f = 1.0 / self.inverse_flattening
        return np.sqrt(f * (2.0 - f))

    def _tsfn(self, phi):
        e = self._e
        esin = e * np.sin(phi)
        return np.tan(np.pi / 4.0 - phi / 2.0) / ((1.0 - esin) / (1.0 + esin)) ** (e / 2.0)

    def _rho_per_t(self):
        """rho = t * _rho_per_t() for this definition."""
        a, k0, e = self.semi_major_axis, self.scale_factor, self._e
        phi_c = np.radians(self._sign * self.latitude_true_scale)
        if np.isclose(phi_c, np.pi / 2.0):
            return 2.0 * a * k0 / np.sqrt((1.0 + e) ** (1.0 + e) * (1.0 - e) ** (1.0 - e))
        m_c = np.cos(phi_c) / np.sqrt(1.0 - (e * np.sin(phi_c)) ** 2)
        return a * k0 * m_c / self._tsfn(phi_c)

    # ─── Transforms ──────────────────────────────────────────────────────────
    def forward(self, lon, lat):
        """
        Project geographic lon/lat (degrees) to grid x/y (metres).

        Accepts scalars or array-likes and returns float arrays. The pole maps
        to the false origin; the opposite pole has no finite image and comes
        back as NaN.
        """
        lon = np.asarray(lon, dtype=float)
        lat = np.asarray(lat, dtype=float)
        validate_lonlat(lon, lat)

        s = self._sign
        phi = np.radians(s * lat)
        dlam = np.radians(s * lon - s * self.central_meridian)

        rho = self._tsfn(phi) * self._rho_per_t()
        x = s * rho * np.sin(dlam)
        y = -s * rho * np.cos(dlam)

        antipode = s * lat == -90.0
        if np.any(antipode):
            x = np.where(antipode, np.nan, x)
            y = np.where(antipode, np.nan, y)
        return x + self.false_easting, y + self.false_northing

    def inverse(self, x, y):
        """Grid x/y (metres) back to lon/lat (degrees), lon in [-180, 180)."""
        s = self._sign
        xp = s * (np.asarray(x, dtype=float) - self.false_easting)
        yp = s * (np.asarray(y, dtype=float) - self.false_northing)
        e = self._e

        t = np.hypot(xp, yp) / self._rho_per_t()
        phi = np.pi / 2.0 - 2.0 * np.arctan(t)
        for _ in range(_MAX_ITER):
            esin = e * np.sin(phi)
            nxt = np.pi / 2.0 - 2.0 * np.arctan(t * ((1.0 - esin) / (1.0 + esin)) ** (e / 2.0))
            done = np.all(np.abs(nxt - phi) < _EPS)
            phi = nxt
            if done:
                break

        lam = np.radians(s * self.central_meridian) + np.arctan2(xp, -yp)
        lon = normalize_longitude(np.degrees(s * lam))
        return lon, s * np.degrees(phi)


NSIDC_NORTH = PolarStereographic()


def normalize_longitude(lon):
    return (np.asarray(lon, dtype=float) + 180.0) % 360.0 - 180.0


def validate_lonlat(lon, lat):
    """Raise InvalidCoordinate for non-finite, |lat| > 90 or lon outside [-180, 360)."""
    lon, lat = np.broadcast_arrays(lon, lat)
    bad = (~np.isfinite(lon) | ~np.isfinite(lat)
           | (np.abs(lat) > 90.0) | (lon < -180.0) | (lon >= 360.0))
    if np.any(bad):
        idx = np.flatnonzero(bad)
        shown = ", ".join(
            f"#{i} (lon={lon.flat[i]}, lat={lat.flat[i]})" for i in idx[:5]
        )
        more = f" and {len(idx) - 5} more" if len(idx) > 5 else ""
        raise InvalidCoordinate(f"{len(idx)} invalid coordinate(s): {shown}{more}")


def project_records(daily, projection=NSIDC_NORTH):
    """
    Add ``grid_x``/``grid_y`` to a daily buoy table.

    Row count and order are unchanged; the input frame is not modified. A day
    with no position (both coordinates missing) gets NaN grid coordinates; any
    other non-finite or out-of-range coordinate raises InvalidCoordinate.
    """
    out = daily.copy()
    lon = out["longitude"].to_numpy(dtype=float)
    lat = out["latitude"].to_numpy(dtype=float)
    located = ~(np.isnan(lon) & np.isnan(lat))
    x = np.full(len(out), np.nan)
    y = np.full(len(out), np.nan)
    if located.any():
        x[located], y[located] = projection.forward(lon[located], lat[located])
    out["grid_x"] = x
    out["grid_y"] = y
    return out
