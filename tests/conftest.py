from pathlib import Path
from typing import Dict, List, Sequence

import pandas as pd
import polars as pl
import pytest

from requirements_tools.schema import CATALOGUE_HEADERS, WORKBOOK_HEADERS


def write_workbook(
    path: Path,
    rows: List[Dict[str, str]],
    headers: Sequence[str] = WORKBOOK_HEADERS,
    sheet_name: str = "Requirements",
) -> Path:
    """Write a planning workbook; rows are keyed by the given headers."""

    df = pd.DataFrame([{h: row.get(h, "") for h in headers} for row in rows], columns=list(headers))
    with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
        pd.DataFrame({"Note": ["cover sheet"]}).to_excel(writer, sheet_name="About", index=False)
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return path


def catalogue_frame(rows: List[Dict[str, str]]) -> pl.DataFrame:
    data = {h: [row.get(h, "") for row in rows] for h in CATALOGUE_HEADERS}
    return pl.DataFrame(data, schema={h: pl.Utf8 for h in CATALOGUE_HEADERS})


@pytest.fixture
def planning_rows() -> List[Dict[str, str]]:
    return [
        {
            "ID*": "1",
            "URL*": "http://example.org/ig#1",
            "Requirement*": "Servers SHALL support read.",
            "Conformance*": "SHALL",
            "Actor*": "Server",
            "Verifiable?": "Yes",
            "Planning To Test?": "Yes",
        },
        {
            "ID*": "2",
            "URL*": "http://example.org/ig#2",
            "Requirement*": "Servers SHOULD be nice.",
            "Conformance*": "SHOULD",
            "Actor*": "Server",
            "Verifiable?": "No",
            "Verifiability Details": "Subjective",
            "Planning To Test?": "no",
            "Planning To Test Details": "Never",
        },
        {
            "ID*": "3",
            "URL*": "http://example.org/ig#3",
            "Requirement*": "Clients SHALL send search.",
            "Conformance*": "SHALL",
            "Actor*": "Client, Server",
            "Sub-Requirement(s)": "4",
            "Verifiable?": "yes",
            "Planning To Test?": "FALSE",
            "Planning To Test Details": "Later release",
        },
        {
            "ID*": "4",
            "URL*": "http://example.org/ig#4",
            "Requirement*": "Servers MAY page.",
            "Conformance*": "MAY",
            "Actor*": "Server",
            "Conditionality": "If paging is supported",
        },
    ]
