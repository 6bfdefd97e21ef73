"""Shared fixtures: two small squads and a fresh session."""

import pytest

from campo_match import MatchSession, Player, Team


@pytest.fixture
def team_a():
    return Team(
        id="fla",
        name="Flamengo",
        color="#dc2626",
        players=(
            Player("fla_1", 1, "Rossi"),
            Player("fla_9", 9, "Pedro"),
            Player("fla_10", 10, "Arrascaeta"),
            Player("fla_20", 20, "Bruno Henrique", is_starter=False),
        ),
    )


@pytest.fixture
def team_b():
    return Team(
        id="flu",
        name="Fluminense",
        color="#16a34a",
        players=(
            Player("flu_1", 1, "Fábio"),
            Player("flu_7", 7, "Arias"),
            Player("flu_17", 17, "Serna", is_starter=False),
        ),
    )


@pytest.fixture
def session(team_a, team_b):
    return MatchSession("fla_flu", team_a, team_b)
