from __future__ import annotations

import numpy as np

from .models import Coordinate

EARTH_RADIUS_MILES = 3958.8


def distances_miles(
    origin: Coordinate,
    latitudes: np.ndarray,
    longitudes: np.ndarray,
) -> np.ndarray:
    """Vectorised haversine distance from ``origin`` to each point, in miles."""
    lat1 = np.radians(origin.latitude)
    lon1 = np.radians(origin.longitude)
    lat2 = np.radians(np.asarray(latitudes, dtype=float))
    lon2 = np.radians(np.asarray(longitudes, dtype=float))

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = np.sin(dlat / 2.0) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_MILES * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))


def distance_miles(origin: Coordinate, target: Coordinate) -> float:
    result = distances_miles(
        origin,
        np.array([target.latitude]),
        np.array([target.longitude]),
    )
    return float(result[0])
