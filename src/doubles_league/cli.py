import logging
from datetime import date
from pathlib import Path

import typer

from doubles_league.config import (
    DEFAULT_TIME_BUDGET_MS,
    EXHAUSTIVE_LIMIT,
    MAX_RESTARTS,
    TIER_BIAS_WEIGHT,
    TIER_THRESHOLDS,
    UPHILL_PROBABILITY,
    SchedulerConfig,
)
from doubles_league.excel_io import (
    ROSTER_SHEET_NAME,
    build_roster_sample_bytes,
    build_roster_template_bytes,
    load_roster,
    write_schedule_xlsx,
)
from doubles_league.formatter import parse_start_date
from doubles_league.scheduler import generate_strict_schedule


app = typer.Typer(help="Strict doubles round-robin fixture generator")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


@app.command()
def generate(
    input_file: str = typer.Option("roster.xlsx", help="Roster file (.xlsx/.xlsm/.csv) with id/name/seed columns"),
    start_date: str = typer.Option("", help="Date of round 1 (YYYY-MM-DD). Empty means today"),
    output_file: str = typer.Option("", help="Output Excel. Empty means <input>_fixtures.xlsx"),
    budget_ms: int = typer.Option(DEFAULT_TIME_BUDGET_MS, help="Search time budget in milliseconds"),
    seed: int = typer.Option(-1, help="Random seed for a reproducible search (-1 = random)"),
    max_restarts: int = typer.Option(MAX_RESTARTS, help="Maximum random restarts"),
    uphill_probability: float = typer.Option(UPHILL_PROBABILITY, help="Chance of accepting a small uphill move"),
    tier_a_max: int = typer.Option(TIER_THRESHOLDS[0], help="Highest seed counted as tier A"),
    tier_b_max: int = typer.Option(TIER_THRESHOLDS[1], help="Highest seed counted as tier B"),
    tier_bias_weight: int = typer.Option(TIER_BIAS_WEIGHT, help="Extra cost per tier step for 3x repeats"),
    exhaustive_limit: int = typer.Option(EXHAUSTIVE_LIMIT, help="Enumerate every grouping when the search space is this small (0 = never)"),
    verbose: bool = typer.Option(False, help="Show search progress logs"),
):
    _configure_logging(verbose)
    in_path = Path(input_file)
    if not in_path.exists():
        raise typer.BadParameter(f"Input file not found: {input_file}")
    try:
        start = parse_start_date(start_date) if start_date.strip() else date.today()
        config = SchedulerConfig().with_overrides(
            time_budget_ms=budget_ms,
            max_restarts=max_restarts,
            uphill_probability=uphill_probability,
            tier_thresholds=(tier_a_max, tier_b_max),
            tier_bias_weight=tier_bias_weight,
            exhaustive_limit=exhaustive_limit,
        ).validate()
        players = load_roster(str(in_path))
    except ValueError as e:
        raise typer.BadParameter(str(e))

    result = generate_strict_schedule(players, start, config=config, seed=None if seed < 0 else seed)
    if not result.ok:
        typer.echo(f"Generation failed [{result.error.code}]: {result.error.message}", err=True)
        if result.stats is not None:
            typer.echo(f"  opponent count histogram: {result.stats.opponent_count_histogram}", err=True)
            typer.echo("  Retry with a larger --budget-ms.", err=True)
        raise typer.Exit(code=1)

    out_path = Path(output_file) if output_file else in_path.with_name(f"{in_path.stem}_fixtures.xlsx")
    write_schedule_xlsx(result, players, str(out_path))

    stats = result.stats
    typer.echo(f"Schedule output: {out_path}")
    typer.echo(f"Players: {len(players)} / rounds: {len(result.fixtures)} / matches per round: {len(result.fixtures[0])}")
    typer.echo(f"Quality: {result.quality} / cost: {stats.cost} / histogram: {stats.opponent_count_histogram}")
    typer.echo(result.explanation)


@app.command()
def template(
    output_file: str = typer.Option("roster_template.xlsx", help="Header-only roster template"),
    sheet_name: str = typer.Option(ROSTER_SHEET_NAME, help="Sheet name"),
):
    Path(output_file).write_bytes(build_roster_template_bytes(sheet_name=sheet_name))
    typer.echo(f"Template output: {output_file} (sheet='{sheet_name}')")


@app.command()
def sample_xlsx(
    output_file: str = typer.Option("roster_sample.xlsx", help="Roster filled with placeholder players"),
    players: int = typer.Option(8, help="Number of players (a multiple of 4 for strict mode)"),
    sheet_name: str = typer.Option(ROSTER_SHEET_NAME, help="Sheet name"),
):
    if players <= 0:
        raise typer.BadParameter("players must be 1 or more")
    Path(output_file).write_bytes(build_roster_sample_bytes(players, sheet_name=sheet_name))
    typer.echo(f"Sample output: {output_file} ({players} players, sheet='{sheet_name}')")


if __name__ == "__main__":
    app()
