from typing import Any

from .geo import postal_code

CAFES: list[dict[str, Any]] = [
    {
        "id": "unique-by-grace",
        "name": "Unique by Grace Café",
        "neighborhood": "2200 Nørrebro",
        "address": "Griffenfeldsgade 54, 2200 København N",
        "coordinates": {"lat": 55.6877, "lng": 12.5493},
        "features": {"has_chess_sets": False, "has_wifi": True, "has_outdoor_seating": False, "noise_level": "moderate"},
        "ratings": {"overall": 4.8, "chess_atmosphere": None},
    },
    {
        "id": "cafe-mellemrummet",
        "name": "Café Mellemrummet",
        "neighborhood": "2200 Nørrebro",
        "address": "Ravnsborggade 11, 2200 København N",
        "coordinates": {"lat": 55.6872, "lng": 12.5634},
        "features": {"has_chess_sets": False, "has_wifi": True, "has_outdoor_seating": True, "noise_level": "moderate"},
        "ratings": {"overall": 4.6, "chess_atmosphere": None},
    },
    {
        "id": "oscar-bar-cafe",
        "name": "Oscar Bar | Café",
        "neighborhood": "1550 København V",
        "address": "Regnbuepladsen 9, 1550 København",
        "coordinates": {"lat": 55.6761, "lng": 12.5683},
        "features": {"has_chess_sets": False, "has_wifi": True, "has_outdoor_seating": True, "noise_level": "lively"},
        "ratings": {"overall": 4.4, "chess_atmosphere": None},
    },
    {
        "id": "send-flere-krydderier",
        "name": "Send Flere Krydderier",
        "neighborhood": "2200 Nørrebro",
        "address": "Nørrebrogade 208, 2200 København N",
        "coordinates": {"lat": 55.6938, "lng": 12.5525},
        "features": {"has_chess_sets": False, "has_wifi": True, "has_outdoor_seating": False, "noise_level": "quiet"},
        "ratings": {"overall": 4.7, "chess_atmosphere": None},
    },
    {
        "id": "folkets-cafe",
        "name": "Folkets Café",
        "neighborhood": "2200 Nørrebro",
        "address": "Stengade 50, 2200 København N",
        "coordinates": {"lat": 55.6839, "lng": 12.5611},
        "features": {"has_chess_sets": True, "has_wifi": True, "has_outdoor_seating": False, "noise_level": "moderate"},
        "ratings": {"overall": 4.9, "chess_atmosphere": None},
    },
    {
        "id": "absalon",
        "name": "Absalon",
        "neighborhood": "1651 Vesterbro",
        "address": "Sønder Boulevard 73, 1651 København V",
        "coordinates": {"lat": 55.6689, "lng": 12.5490},
        "features": {"has_chess_sets": True, "has_wifi": True, "has_outdoor_seating": False, "noise_level": "lively"},
        "ratings": {"overall": 4.7, "chess_atmosphere": None},
    },
    {
        "id": "gonzo",
        "name": "Gonzo",
        "neighborhood": "2200 Nørrebro",
        "address": "Jægersborggade 32, 2200 København N",
        "coordinates": {"lat": 55.6930, "lng": 12.5498},
        "features": {"has_chess_sets": False, "has_wifi": True, "has_outdoor_seating": True, "noise_level": "moderate"},
        "ratings": {"overall": 4.5, "chess_atmosphere": None},
    },
    {
        "id": "ku-be",
        "name": "KU.BE",
        "neighborhood": "2000 Frederiksberg",
        "address": "Dirch Passers Allé 4, 2000 Frederiksberg",
        "coordinates": {"lat": 55.6794, "lng": 12.5164},
        "features": {"has_chess_sets": False, "has_wifi": True, "has_outdoor_seating": True, "noise_level": "quiet"},
        "ratings": {"overall": 4.6, "chess_atmosphere": None},
    },
    {
        "id": "sweet-surrender",
        "name": "Sweet Surrender",
        "neighborhood": "2450 Sydhavnen",
        "address": "Egilsgade 10, 2300 København S",
        "coordinates": {"lat": 55.6651, "lng": 12.5543},
        "features": {"has_chess_sets": False, "has_wifi": True, "has_outdoor_seating": False, "noise_level": "quiet"},
        "ratings": {"overall": 4.3, "chess_atmosphere": None},
    },
    {
        "id": "kanalhuset",
        "name": "Kanalhuset",
        "neighborhood": "1415 Christianshavn",
        "address": "Ovengaden Oven Vande 62, 1415 København",
        "coordinates": {"lat": 55.6733, "lng": 12.5921},
        "features": {"has_chess_sets": False, "has_wifi": True, "has_outdoor_seating": True, "noise_level": "moderate"},
        "ratings": {"overall": 4.6, "chess_atmosphere": None},
    },
]


def get_cafe(cafe_id: str) -> dict[str, Any] | None:
    return next((c for c in CAFES if c["id"] == cafe_id), None)


def suggest_cafes(area: str | None = None) -> list[dict[str, Any]]:
    """Cafés in the area's postal code, or every café when none are there."""
    if not area:
        return list(CAFES)
    code = postal_code(area)
    in_area = [c for c in CAFES if code and code in c["neighborhood"]]
    return in_area or list(CAFES)


def cafe_address_label(cafe: dict[str, Any]) -> str:
    return f"{cafe['name']}, {cafe['address']}"
