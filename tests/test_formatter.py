from datetime import date, datetime

import pytest

from doubles_league.formatter import fixtures_frame, format_fixtures, parse_start_date, round_date
from doubles_league.pairing import default_grouping
from doubles_league.wheel import build_partner_wheel


def test_parse_start_date_accepts_strings_and_dates():
    assert parse_start_date("2024-01-01") == date(2024, 1, 1)
    assert parse_start_date(" 2024-03-05 ") == date(2024, 3, 5)
    assert parse_start_date(date(2024, 1, 1)) == date(2024, 1, 1)
    assert parse_start_date(datetime(2024, 1, 1, 18, 30)) == date(2024, 1, 1)


@pytest.mark.parametrize("bad", ["", "01/02/2024", "2024-13-01", "tomorrow"])
def test_parse_start_date_rejects_garbage(bad):
    with pytest.raises(ValueError):
        parse_start_date(bad)


def test_round_dates_step_weekly():
    start = date(2024, 1, 1)
    assert [round_date(start, i).isoformat() for i in range(7)] == [
        "2024-01-01", "2024-01-08", "2024-01-15", "2024-01-22",
        "2024-01-29", "2024-02-05", "2024-02-12",
    ]


def test_format_fixtures_maps_ids_and_placeholders(make_players):
    players = make_players(8)
    rounds = [default_grouping(p) for p in build_partner_wheel(8)]
    season = format_fixtures(rounds, players, "2024-01-01")
    assert len(season) == 7
    first = season[0][0]
    assert first.id == "w1-m1"
    assert first.round == 1
    assert first.court == 1
    assert first.date == "2024-01-01"
    assert first.team1 == ("p1", "p8")
    assert first.sets == []
    assert first.winner is None
    assert first.status == "scheduled"
    assert season[6][1].id == "w7-m2"
    assert season[6][1].court == 2
    assert season[6][1].date == "2024-02-12"


def test_fixtures_frame_flattens_rounds(make_players):
    players = make_players(4)
    rounds = [default_grouping(p) for p in build_partner_wheel(4)]
    frame = fixtures_frame(format_fixtures(rounds, players, date(2024, 1, 1)))
    assert list(frame.columns) == ["id", "round", "date", "court", "team1", "team2", "status"]
    assert len(frame) == 3
    assert frame.loc[0, "team1"] == "p1 & p4"
    assert frame.loc[0, "team2"] == "p2 & p3"
