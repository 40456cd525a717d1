from io import BytesIO
from pathlib import Path
from typing import Any, List, Sequence

import openpyxl
import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from doubles_league.formatter import fixtures_frame
from doubles_league.roster import Player
from doubles_league.scheduler import StrictResult
from doubles_league.stats import opponent_matrix_frame, strength_frame


ROSTER_SHEET_NAME = "Roster"
ROSTER_HEADERS = ["id", "name", "seed"]

HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)
_THIN = Side(style="thin", color="000000")
BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


def build_roster_sample_rows(n: int = 8) -> List[List[Any]]:
    """Placeholder roster rows, seeded 1..n in order."""
    return [[f"p{i}", f"TEST_PLAYER_{i:02d}", i] for i in range(1, n + 1)]


def _workbook_bytes(rows: Sequence[Sequence[Any]], sheet_name: str) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_name
    ws.append(list(ROSTER_HEADERS))
    for r in rows:
        ws.append(list(r))
    ws.freeze_panes = "A2"
    with BytesIO() as bio:
        wb.save(bio)
        return bio.getvalue()


def build_roster_template_bytes(sheet_name: str = ROSTER_SHEET_NAME) -> bytes:
    return _workbook_bytes([], sheet_name)


def build_roster_sample_bytes(n: int = 8, sheet_name: str = ROSTER_SHEET_NAME) -> bytes:
    return _workbook_bytes(build_roster_sample_rows(n), sheet_name)


def _read_frame(path: Path) -> pd.DataFrame:
    if path.suffix.lower() == ".csv":
        return pd.read_csv(path, dtype=object)
    wb = openpyxl.load_workbook(str(path), read_only=True, data_only=True)
    sheet = wb.active
    data = list(sheet.values)
    wb.close()
    if not data:
        return pd.DataFrame(columns=ROSTER_HEADERS)
    return pd.DataFrame(data[1:], columns=data[0])


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and not value.strip()


def _coerce_seed(value: Any) -> Any:
    # Blank stays None so roster validation reports MISSING_SEEDS; junk is kept for INVALID_SEED.
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        return value
    try:
        num = float(str(value).strip())
    except ValueError:
        return value
    if num.is_integer():
        return int(num)
    return value


def load_roster(file_path: str) -> List[Player]:
    """Read players from .xlsx/.xlsm (first sheet) or .csv.

    Columns are picked by keyword: 'id', 'name'/'player', 'seed'/'rank'.
    Without an id column the name doubles as the id.
    """

    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    df = _read_frame(path)

    def _norm_header(v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip().lower()

    def _pick_col(*, include_any: tuple[str, ...], exclude_any: tuple[str, ...] = ()) -> Any:
        for c in df.columns:
            h = _norm_header(c)
            if not h:
                continue
            if any(k in h for k in include_any) and not any(k in h for k in exclude_any):
                return c
        return None

    col_seed = _pick_col(include_any=("seed", "rank"))
    col_id = _pick_col(include_any=("id",), exclude_any=("seed", "rank"))
    col_name = _pick_col(include_any=("name", "player"), exclude_any=("id", "seed", "rank"))

    if col_seed is None:
        raise ValueError(
            "Roster has no 'seed' column (e.g. 'seed', 'rank')."
            f" Actual headers: {[_norm_header(c) for c in list(df.columns)[:12]]}"
        )
    if col_id is None and col_name is None:
        raise ValueError(
            "Roster needs an 'id' or 'name' column."
            f" Actual headers: {[_norm_header(c) for c in list(df.columns)[:12]]}"
        )

    players: List[Player] = []
    for _, row in df.iterrows():
        raw_id = row.get(col_id) if col_id is not None else None
        raw_name = row.get(col_name) if col_name is not None else None
        name = "" if _is_blank(raw_name) else str(raw_name).strip()
        pid = name if _is_blank(raw_id) else str(raw_id).strip()
        if not pid:
            continue
        players.append(Player(id=pid, seed=_coerce_seed(row.get(col_seed)), name=name))
    return players


def _style_sheet(ws) -> None:
    for cell in ws[1]:
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center", vertical="center")
    for r in ws.iter_rows(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        for c in r:
            c.border = BORDER
    for col_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(col_idx)
        width = max(len(str(c.value)) if c.value is not None else 0 for c in ws[letter])
        ws.column_dimensions[letter].width = min(max(8, width + 2), 60)
    ws.freeze_panes = "B2"


def _append_frame(ws, frame: pd.DataFrame, index_label: str | None = None) -> None:
    if index_label is not None:
        ws.append([index_label] + [str(c) for c in frame.columns])
        for idx, row in frame.iterrows():
            ws.append([idx] + list(row.values.tolist()))
    else:
        ws.append([str(c) for c in frame.columns])
        for row in frame.itertuples(index=False):
            ws.append(list(row))


def write_schedule_xlsx(result: StrictResult, players: Sequence[Player], output_path: str) -> Path:
    """Write fixtures, opponent counts, strength of schedule and a summary sheet."""
    if not result.ok or result.fixtures is None or result.stats is None:
        raise ValueError("only successful results can be exported")
    st = result.stats
    if st.opponent_counts is None:
        raise ValueError("result stats carry no opponent counts")
    wb = openpyxl.Workbook()

    ws1 = wb.active
    ws1.title = "Fixtures"
    _append_frame(ws1, fixtures_frame(result.fixtures))

    ws2 = wb.create_sheet("Opponents")
    _append_frame(ws2, opponent_matrix_frame(st.opponent_counts, players), index_label="player")

    ws3 = wb.create_sheet("Strength")
    sos = strength_frame(st)
    names = {p.id: p.name for p in players}
    sos.insert(1, "name", [names.get(pid, "") for pid in sos["id"]])
    _append_frame(ws3, sos)

    ws4 = wb.create_sheet("Summary")
    ws4.append(["item", "value"])
    ws4.append(["quality", result.quality or ""])
    ws4.append(["cost", st.cost])
    ws4.append(["min opponent repeat", st.min_opponent_repeat])
    ws4.append(["max opponent repeat", st.max_opponent_repeat])
    for count, pairs in st.opponent_count_histogram.items():
        ws4.append([f"pairs meeting {count}x", pairs])
    for combo, value in st.count_3x_by_tier.items():
        ws4.append([f"3x {combo}", value])
    for line in (result.explanation or "").splitlines():
        ws4.append(["note", line.strip()])

    for ws in wb.worksheets:
        _style_sheet(ws)

    out = Path(output_path)
    wb.save(str(out))
    return out
