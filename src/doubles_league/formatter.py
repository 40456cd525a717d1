from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple, Union

import pandas as pd

from doubles_league.pairing import Rounds
from doubles_league.roster import Player


DAYS_PER_ROUND = 7
STATUS_SCHEDULED = "scheduled"


@dataclass
class Fixture:
    id: str
    round: int
    date: str
    court: int
    team1: Tuple[str, str]
    team2: Tuple[str, str]
    sets: List[Tuple[int, int]] = field(default_factory=list)
    winner: Optional[str] = None
    status: str = STATUS_SCHEDULED


def parse_start_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as e:
        raise ValueError(f"Invalid start date '{value}'. Use YYYY-MM-DD (e.g. 2024-01-01).") from e


def round_date(start: date, round_index: int) -> date:
    return start + timedelta(days=DAYS_PER_ROUND * round_index)


def format_fixtures(rounds: Rounds, players: Sequence[Player],
                    start_date: Union[date, str]) -> List[List[Fixture]]:
    """Turn index-based rounds into dated fixtures keyed by player id.

    Only call this with a schedule that already passed validation.
    """

    start = parse_start_date(start_date)
    ids = [p.id for p in players]
    season: List[List[Fixture]] = []
    for w_idx, week in enumerate(rounds):
        day = round_date(start, w_idx).isoformat()
        season.append([
            Fixture(
                id=f"w{w_idx + 1}-m{m_idx + 1}",
                round=w_idx + 1,
                date=day,
                court=m_idx + 1,
                team1=(ids[match.team1.a], ids[match.team1.b]),
                team2=(ids[match.team2.a], ids[match.team2.b]),
            )
            for m_idx, match in enumerate(week)
        ])
    return season


def fixtures_frame(season: Sequence[Sequence[Fixture]]) -> pd.DataFrame:
    rows = []
    for week in season:
        for fx in week:
            rows.append({
                "id": fx.id,
                "round": fx.round,
                "date": fx.date,
                "court": fx.court,
                "team1": " & ".join(fx.team1),
                "team2": " & ".join(fx.team2),
                "status": fx.status,
            })
    return pd.DataFrame(rows, columns=["id", "round", "date", "court", "team1", "team2", "status"])
