"""
Tests for zone aggregation and heat bands (campo_zone).

Usage:
    pytest test_zone_grid.py -v
"""

import random
from dataclasses import dataclass

import pytest

from campo_zone import (
    CENTRE_ZONE,
    HeatGrid,
    IntensityBand,
    Zone,
    ZoneStats,
    aggregate,
    band_grid,
    format_clock,
    intensity_band,
    iter_zones,
    team_action_counts,
    zone_actions,
)


@dataclass(frozen=True)
class Tagged:
    zone: Zone
    team_id: str
    timestamp: int = 0
    display_label: str = "Chute"


def _random_actions(count, seed=7):
    rng = random.Random(seed)
    return [
        Tagged(Zone(rng.randrange(5), rng.randrange(5)), rng.choice(["a", "b"]), i)
        for i in range(count)
    ]


def test_empty_grid():
    grid = aggregate([], "a", "b")
    assert grid == HeatGrid.empty()
    assert grid.max_total == 0
    assert all(band == IntensityBand.MINIMUM for row in band_grid(grid) for band in row)


def test_conservation():
    actions = _random_actions(200)
    grid = aggregate(actions, "a", "b")
    assert grid.total == 200
    assert sum(grid.at(z).team_a for z in iter_zones()) == sum(a.team_id == "a" for a in actions)
    for zone in iter_zones():
        stats = grid.at(zone)
        assert stats.total == stats.team_a + stats.team_b
    assert grid.max_total == int(grid.totals().max())


def test_order_independence():
    actions = _random_actions(60)
    shuffled = list(actions)
    random.Random(1).shuffle(shuffled)
    assert aggregate(actions, "a", "b") == aggregate(shuffled, "a", "b")


def test_out_of_bounds_and_unknown_team_are_skipped():
    actions = [
        Tagged(Zone(-1, 0), "a"),
        Tagged(Zone(5, 2), "b"),
        Tagged(Zone(0, 5), "a"),
        Tagged(Zone(1, 1), "intruder"),
        Tagged(Zone(1, 1), "b"),
    ]
    grid = aggregate(actions, "a", "b")
    assert grid.total == 1
    assert grid.at(Zone(1, 1)) == ZoneStats(team_a=0, team_b=1)


def test_two_team_scenario():
    actions = [
        Tagged(Zone(0, 0), "a"),
        Tagged(Zone(0, 0), "a"),
        Tagged(Zone(0, 0), "b"),
        Tagged(Zone(4, 4), "b"),
    ]
    grid = aggregate(actions, "a", "b")
    assert grid.cell(0, 0) == ZoneStats(team_a=2, team_b=1)
    assert grid.cell(4, 4).total == 1
    assert grid.max_total == 3

    bands = band_grid(grid)
    assert bands[0][0] == IntensityBand.PEAK
    assert bands[4][4] == IntensityBand.MEDIUM  # 1/3
    assert bands[2][2] == IntensityBand.MINIMUM


@pytest.mark.parametrize("total,max_total,expected", [
    (0, 10, IntensityBand.MINIMUM),
    (5, 0, IntensityBand.MINIMUM),
    (1, 10, IntensityBand.LOW),
    (25, 100, IntensityBand.LOW),
    (26, 100, IntensityBand.MEDIUM),
    (50, 100, IntensityBand.MEDIUM),
    (75, 100, IntensityBand.HIGH),
    (76, 100, IntensityBand.PEAK),
    (10, 10, IntensityBand.PEAK),
])
def test_intensity_band_thresholds(total, max_total, expected):
    assert intensity_band(total, max_total) == expected


def test_heat_grid_dict_rejects_inconsistent_total():
    data = HeatGrid.empty().to_dict()
    data['cells'][0][0] = {'team_a': 1, 'team_b': 1, 'total': 3}
    with pytest.raises(ValueError):
        HeatGrid.from_dict(data)


def test_heat_grid_rejects_wrong_max_total():
    with pytest.raises(ValueError):
        HeatGrid(cells=HeatGrid.empty().cells, max_total=2)


def test_zone_helpers():
    assert CENTRE_ZONE == Zone(2, 2)
    assert Zone(0, 4).label == "Zona 1-5"
    assert Zone.coerce([1, 3]) == Zone(1, 3)
    assert Zone.coerce({'row': 4, 'col': 0}) == Zone(4, 0)
    with pytest.raises(ValueError):
        Zone.coerce("nowhere")
    assert len(list(iter_zones())) == 25


def test_zone_actions_and_team_counts():
    actions = [
        Tagged(Zone(1, 1), "a", 65, "Chute"),
        Tagged(Zone(1, 1), "ghost", 70, "Falta"),
        Tagged(Zone(2, 2), "b", 80, "Passe"),
    ]
    rows = zone_actions(actions, Zone(1, 1), {"a": "Flamengo", "b": "Fluminense"})
    assert [(r.action_label, r.team_label, r.time_label) for r in rows] == [
        ("Chute", "Flamengo", "01:05"),
        ("Falta", "ghost", "01:10"),
    ]
    assert team_action_counts(actions, "a", "b") == {"a": 1, "b": 1}


def test_format_clock():
    assert format_clock(0) == "00:00"
    assert format_clock(61) == "01:01"
    assert format_clock(5400) == "90:00"
