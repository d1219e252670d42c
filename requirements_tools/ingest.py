"""
Locate requirement-planning workbooks and load their "Requirements" sheet.

Each configured requirement set is matched to a workbook by file name. The
sheet is read with pandas (openpyxl engine) and handed on as a Polars frame
of strings keyed by the logical, unstarred header names.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd
import polars as pl

from .schema import REQUIREMENTS_SHEET, clean_header_name, workbook_columns

LOGGER = logging.getLogger(__name__)

WORKBOOK_GLOB = "*.xlsx"
# Office writes "~$<name>.xlsx" lock files next to open workbooks.
LOCK_FILE_MARKER = "~$"


def available_workbooks(directory: Path) -> List[Path]:
    """Return workbook paths in ``directory`` sorted by name, skipping lock files."""

    return sorted(
        p for p in Path(directory).glob(WORKBOOK_GLOB) if LOCK_FILE_MARKER not in p.name
    )


def locate_workbook(workbooks: Sequence[Path], set_id: str) -> Optional[Path]:
    matches = [p for p in workbooks if set_id in p.name]
    if not matches:
        return None
    if len(matches) > 1:
        LOGGER.warning(
            "Multiple workbooks match requirement set '%s'; using %s (ignored: %s)",
            set_id,
            matches[0].name,
            ", ".join(p.name for p in matches[1:]),
        )
    return matches[0]


def _frame_from_sheet(sheet: pd.DataFrame, source: str) -> pl.DataFrame:
    sheet = sheet.rename(columns={c: clean_header_name(c) for c in sheet.columns})
    sheet = sheet.dropna(how="all").fillna("")

    columns = workbook_columns()
    missing = [c for c in columns if c not in sheet.columns]
    for col in missing:
        LOGGER.warning("Column '%s' missing from %s; treating it as empty.", col, source)

    data = {
        col: [str(v) for v in sheet[col].tolist()] if col in sheet.columns else [""] * len(sheet)
        for col in columns
    }
    return pl.DataFrame(data, schema={col: pl.Utf8 for col in columns})


def read_requirements_sheet(path: Path, sheet_name: str = REQUIREMENTS_SHEET) -> pl.DataFrame:
    """Read one workbook's requirements sheet as strings, first row as headers."""

    try:
        sheet = pd.read_excel(
            path,
            sheet_name=sheet_name,
            dtype=str,
            engine="openpyxl",
            keep_default_na=False,
            na_values=[""],
        )
    except ValueError as exc:
        raise ValueError(f"Workbook {path} has no '{sheet_name}' worksheet") from exc

    frame = _frame_from_sheet(sheet, source=Path(path).name)
    LOGGER.debug("Read %d requirement rows from %s", frame.height, path)
    return frame


def ingest_requirement_sets(
    directory: Path, input_sets: Iterable[str]
) -> Dict[str, Optional[pl.DataFrame]]:
    """
    Load every configured requirement set from ``directory``.

    Returns an ordered mapping of set id to frame. Sets without a matching
    workbook map to None; deciding whether that is fatal is up to the caller.
    """

    workbooks = available_workbooks(directory)
    sets: Dict[str, Optional[pl.DataFrame]] = {}
    for set_id in input_sets:
        path = locate_workbook(workbooks, set_id)
        if path is None:
            sets[set_id] = None
            continue
        LOGGER.info("Reading requirement set %s from %s", set_id, path.name)
        sets[set_id] = read_requirements_sheet(path)
    return sets


def missing_sets(sets: Mapping[str, Optional[pl.DataFrame]]) -> List[str]:
    return [set_id for set_id, frame in sets.items() if frame is None]
