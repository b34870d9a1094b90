from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

EARTH_RADIUS_KM = 6371.0

AREA_COORDINATES: dict[str, dict[str, float]] = {
    "1050 Copenhagen K": {"lat": 55.6786, "lng": 12.5919},
    "2000 Frederiksberg": {"lat": 55.6786, "lng": 12.5346},
    "2100 Østerbro": {"lat": 55.7076, "lng": 12.5766},
    "2200 Nørrebro": {"lat": 55.6971, "lng": 12.5429},
    "2300 Amagerbro": {"lat": 55.6615, "lng": 12.6018},
    "2400 Nordvest": {"lat": 55.7107, "lng": 12.5346},
    "2450 Sydhavnen": {"lat": 55.6497, "lng": 12.5616},
    "2450 Vesterbro": {"lat": 55.6682, "lng": 12.5463},
    "2500 Valby": {"lat": 55.6614, "lng": 12.5147},
    "2700 Brønshøj": {"lat": 55.7089, "lng": 12.4981},
    "2720 Vanløse": {"lat": 55.6875, "lng": 12.4843},
    "2791 Dragør": {"lat": 55.5941, "lng": 12.6741},
}

AREAS: tuple[str, ...] = tuple(AREA_COORDINATES.keys())

# (upper bound in km, score); first bound that covers the distance wins
_DISTANCE_BANDS: tuple[tuple[float, float], ...] = (
    (2, 9),
    (4, 8),
    (6, 7),
    (8, 6),
    (10, 5),
    (12, 4),
    (14, 3),
    (16, 2),
    (20, 1),
)


@dataclass(frozen=True)
class AreaDistance:
    area: str
    distance_km: float


def haversine_km(a: dict[str, float], b: dict[str, float]) -> float:
    d_lat = math.radians(b["lat"] - a["lat"])
    d_lng = math.radians(b["lng"] - a["lng"])
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a["lat"])) * math.cos(math.radians(b["lat"])) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def area_distance_km(area_a: str, area_b: str, coordinates: dict[str, dict[str, float]] | None = None) -> float:
    table = AREA_COORDINATES if coordinates is None else coordinates
    if area_a == area_b:
        return 0.0
    ca, cb = table.get(area_a), table.get(area_b)
    if not ca or not cb:
        return math.inf
    return haversine_km(ca, cb)


def find_shortest_distance(
    user_areas: Iterable[str],
    match_areas: Iterable[str],
    coordinates: dict[str, dict[str, float]] | None = None,
) -> AreaDistance:
    """Closest (user area, match area) pair; the returned area is the match's side.

    A shared area wins outright at distance 0. Areas without a coordinate entry
    are ignored, and when nothing is mappable the first match area comes back
    with an infinite distance.
    """
    table = AREA_COORDINATES if coordinates is None else coordinates
    user_list = list(user_areas)
    match_list = list(match_areas)

    for user_area in user_list:
        for match_area in match_list:
            if user_area == match_area:
                return AreaDistance(area=match_area, distance_km=0.0)

    best = AreaDistance(area=match_list[0] if match_list else "", distance_km=math.inf)
    for user_area in user_list:
        c1 = table.get(user_area)
        if not c1:
            continue
        for match_area in match_list:
            c2 = table.get(match_area)
            if not c2:
                continue
            distance = haversine_km(c1, c2)
            if distance < best.distance_km:
                best = AreaDistance(area=match_area, distance_km=distance)
    return best


def distance_score(distance_km: float) -> float:
    if distance_km == 0:
        return 10.0
    for bound, score in _DISTANCE_BANDS:
        if distance_km <= bound:
            return float(score)
    return 0.0


def postal_code(area: str) -> str:
    return str(area or "").strip().split(" ")[0]
