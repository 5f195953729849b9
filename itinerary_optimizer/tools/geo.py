"""Great-circle distance plus the coarse transport heuristics built on it.

Nothing here performs I/O; every function is safe to call from any stage.
"""
from __future__ import annotations

import math
from typing import List, Sequence

from itinerary_optimizer.schemas import GeoPoint, Place, TransportType

_EARTH_RADIUS_KM = 6371.0

# Legs at or beyond this distance are flown.
AIR_THRESHOLD_KM = 700.0

AIR_SPEED_KMH = 800.0
AIR_OVERHEAD_HOURS = 2.5   # check-in, security, boarding
AIR_MIN_HOURS = 3.0

LAND_SPEED_KMH = 80.0
LOCAL_SPEED_KMH = 40.0
LOCAL_HOP_KM = 50.0
LAND_MIN_HOURS = 1.0


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance between two points (Haversine formula) in km."""
    phi1, phi2 = math.radians(a.latitude), math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lam = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return 2 * _EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def place_distance_km(a: Place, b: Place) -> float:
    return haversine_km(a.point, b.point)


def distance_matrix(places: Sequence[Place]) -> List[List[float]]:
    """Full n x n matrix of great-circle distances in km."""
    n = len(places)
    matrix = [[0.0] * n for _ in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            d = place_distance_km(places[i], places[j])
            matrix[i][j] = d
            matrix[j][i] = d
    return matrix


def determine_transport_type(origin: Place, target: Place) -> TransportType:
    if place_distance_km(origin, target) >= AIR_THRESHOLD_KM:
        return "air"
    return "land"


def estimate_duration_hours(distance_km: float, mode: TransportType) -> float:
    """Rough door-to-door hours. Monotonic in distance, slope depends on mode."""
    if mode == "air":
        return max(AIR_MIN_HOURS, distance_km / AIR_SPEED_KMH + AIR_OVERHEAD_HOURS)

    # Short hops crawl through city traffic; the long-haul rate applies past that.
    if distance_km <= LOCAL_HOP_KM:
        hours = distance_km / LOCAL_SPEED_KMH
    else:
        hours = LOCAL_HOP_KM / LOCAL_SPEED_KMH + (distance_km - LOCAL_HOP_KM) / LAND_SPEED_KMH
    return max(LAND_MIN_HOURS, hours)
