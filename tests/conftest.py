import pytest

from doubles_league.roster import Player


def build_players(n, seeds=None):
    seeds = list(range(1, n + 1)) if seeds is None else seeds
    return [Player(id=f"p{i + 1}", seed=seeds[i], name=f"Player {i + 1}") for i in range(n)]


@pytest.fixture
def make_players():
    return build_players
