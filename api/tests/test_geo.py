import math

from chessnkaffe.services.geo import (
    AREA_COORDINATES,
    AREAS,
    area_distance_km,
    distance_score,
    find_shortest_distance,
    haversine_km,
    postal_code,
)


def test_distance_to_self_is_zero_and_symmetric():
    for a in AREAS:
        assert area_distance_km(a, a) == 0
        for b in AREAS:
            assert math.isclose(area_distance_km(a, b), area_distance_km(b, a))


def test_distance_score_bands():
    assert distance_score(0) == 10
    assert distance_score(0.5) == 9
    assert distance_score(2) == 9
    assert distance_score(2.01) == 8
    assert distance_score(9.9) == 5
    assert distance_score(19.99) == 1
    assert distance_score(20) == 1
    assert distance_score(20.5) == 0
    assert distance_score(math.inf) == 0


def test_pair_twenty_and_a_half_km_apart_scores_zero():
    coords = {
        "A": {"lat": 55.6, "lng": 12.5},
        "B": {"lat": 55.6 + 0.1844, "lng": 12.5},
    }
    result = find_shortest_distance(["A"], ["B"], coordinates=coords)
    assert 20 < result.distance_km < 21
    assert distance_score(result.distance_km) == 0


def test_shared_area_wins_at_zero():
    result = find_shortest_distance(
        ["2791 Dragør", "2200 Nørrebro"],
        ["2100 Østerbro", "2200 Nørrebro"],
    )
    assert result.area == "2200 Nørrebro"
    assert result.distance_km == 0


def test_closest_pair_reports_match_side_area():
    result = find_shortest_distance(["2200 Nørrebro"], ["2791 Dragør", "2400 Nordvest"])
    assert result.area == "2400 Nordvest"
    expected = haversine_km(AREA_COORDINATES["2200 Nørrebro"], AREA_COORDINATES["2400 Nordvest"])
    assert math.isclose(result.distance_km, expected)


def test_unknown_areas_are_ignored():
    result = find_shortest_distance(["Atlantis"], ["Narnia", "El Dorado"])
    assert result.area == "Narnia"
    assert result.distance_km == math.inf
    assert distance_score(result.distance_km) == 0

    mixed = find_shortest_distance(["Atlantis", "2000 Frederiksberg"], ["2720 Vanløse"])
    assert mixed.area == "2720 Vanløse"
    assert mixed.distance_km < 5


def test_postal_code():
    assert postal_code("2450 Sydhavnen") == "2450"
    assert postal_code("") == ""
