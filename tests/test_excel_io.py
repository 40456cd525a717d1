import openpyxl
import pytest
from typer.testing import CliRunner

from doubles_league.cli import app
from doubles_league.excel_io import (
    build_roster_sample_bytes,
    build_roster_template_bytes,
    load_roster,
    write_schedule_xlsx,
)
from doubles_league.roster import ERR_INVALID_SEED, ERR_MISSING_SEEDS, validate_roster
from doubles_league.scheduler import StrictResult, generate_strict_schedule


runner = CliRunner()


def test_sample_roster_round_trip(tmp_path):
    path = tmp_path / "roster.xlsx"
    path.write_bytes(build_roster_sample_bytes(8))
    players = load_roster(str(path))
    assert [p.id for p in players] == [f"p{i}" for i in range(1, 9)]
    assert [p.seed for p in players] == list(range(1, 9))
    assert players[0].name == "TEST_PLAYER_01"
    assert validate_roster(players) is None


def test_template_has_headers_only(tmp_path):
    path = tmp_path / "template.xlsx"
    path.write_bytes(build_roster_template_bytes())
    ws = openpyxl.load_workbook(path).active
    assert [c.value for c in ws[1]] == ["id", "name", "seed"]
    assert load_roster(str(path)) == []


def test_csv_roster_keeps_blank_and_bad_seeds_for_validation(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text("Player Name,Seed\nAnna,1\nBen,2.0\nCara,\nDev,4\n", encoding="utf-8")
    players = load_roster(str(path))
    assert [p.id for p in players] == ["Anna", "Ben", "Cara", "Dev"]
    assert [p.seed for p in players] == [1, 2, None, 4]
    assert validate_roster(players).code == ERR_MISSING_SEEDS

    path.write_text("id,seed\na,1\nb,strong\nc,3\nd,4\n", encoding="utf-8")
    assert validate_roster(load_roster(str(path))).code == ERR_INVALID_SEED


def test_roster_without_seed_column_is_rejected(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text("id,name\na,Anna\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_roster(str(path))
    with pytest.raises(FileNotFoundError):
        load_roster(str(tmp_path / "missing.xlsx"))


def test_write_schedule_workbook(tmp_path, make_players):
    players = make_players(8)
    result = generate_strict_schedule(players, "2024-01-01", max_time_ms=5000, seed=2)
    assert result.ok
    out = write_schedule_xlsx(result, players, str(tmp_path / "season.xlsx"))
    wb = openpyxl.load_workbook(out)
    assert wb.sheetnames == ["Fixtures", "Opponents", "Strength", "Summary"]
    assert wb["Fixtures"].max_row == 1 + 14
    assert wb["Opponents"].max_row == 1 + 8
    assert wb["Strength"]["B1"].value == "name"

    opponents = wb["Opponents"]
    assert opponents["A2"].value == "p1"
    assert opponents["B1"].value == "p1"
    for i in range(8):
        for j in range(8):
            value = opponents.cell(row=i + 2, column=j + 2).value
            assert value == result.stats.opponent_counts.get(i, j)
            if i != j:
                assert 1 <= value <= 3


def test_write_schedule_refuses_failed_results(tmp_path, make_players):
    with pytest.raises(ValueError):
        write_schedule_xlsx(StrictResult(ok=False), make_players(4), str(tmp_path / "x.xlsx"))


def test_cli_sample_then_generate(tmp_path):
    roster = tmp_path / "roster.xlsx"
    out = tmp_path / "fixtures.xlsx"
    res = runner.invoke(app, ["sample-xlsx", "--output-file", str(roster), "--players", "8"])
    assert res.exit_code == 0, res.output
    res = runner.invoke(app, [
        "generate",
        "--input-file", str(roster),
        "--output-file", str(out),
        "--start-date", "2024-01-01",
        "--budget-ms", "5000",
        "--seed", "3",
    ])
    assert res.exit_code == 0, res.output
    assert out.exists()
    assert "Quality:" in res.output
    assert "rounds: 7" in res.output


def test_cli_reports_precondition_failure(tmp_path):
    roster = tmp_path / "roster.xlsx"
    roster.write_bytes(build_roster_sample_bytes(6))
    res = runner.invoke(app, ["generate", "--input-file", str(roster), "--start-date", "2024-01-01"])
    assert res.exit_code == 1
    assert "STRICT_MODE_REQUIRES_N_DIV_4" in res.output


def test_cli_rejects_missing_input_and_bad_date(tmp_path):
    res = runner.invoke(app, ["generate", "--input-file", str(tmp_path / "nope.xlsx")])
    assert res.exit_code != 0
    roster = tmp_path / "roster.xlsx"
    roster.write_bytes(build_roster_sample_bytes(8))
    res = runner.invoke(app, ["generate", "--input-file", str(roster), "--start-date", "13/01/2024"])
    assert res.exit_code != 0
