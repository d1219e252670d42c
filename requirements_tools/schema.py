from __future__ import annotations

from typing import Sequence

# Marker appended to required-field headers in the planning workbooks.
REQUIRED_MARKER = "*"

# Excel opens BOM-prefixed CSV files as UTF-8.
BOM = "\ufeff"

REQUIREMENTS_SHEET = "Requirements"

REQ_SET_COL = "Req Set"
ID_COL = "ID"
URL_COL = "URL"
REQUIREMENT_COL = "Requirement"
CONFORMANCE_COL = "Conformance"
ACTOR_COL = "Actor"
SUB_REQUIREMENTS_COL = "Sub-Requirement(s)"
CONDITIONALITY_COL = "Conditionality"
VERIFIABLE_COL = "Verifiable?"
VERIFIABILITY_DETAILS_COL = "Verifiability Details"
PLANNING_COL = "Planning To Test?"
PLANNING_DETAILS_COL = "Planning To Test Details"
REASON_COL = "Reason"
DETAILS_COL = "Details"

# Headers as they appear in the workbook, starred where the field is required.
WORKBOOK_HEADERS: Sequence[str] = (
    "ID*",
    "URL*",
    "Requirement*",
    "Conformance*",
    "Actor*",
    SUB_REQUIREMENTS_COL,
    CONDITIONALITY_COL,
    VERIFIABLE_COL,
    VERIFIABILITY_DETAILS_COL,
    PLANNING_COL,
    PLANNING_DETAILS_COL,
)

CATALOGUE_HEADERS: Sequence[str] = (
    REQ_SET_COL,
    ID_COL,
    URL_COL,
    REQUIREMENT_COL,
    CONFORMANCE_COL,
    ACTOR_COL,
    SUB_REQUIREMENTS_COL,
    CONDITIONALITY_COL,
)

OUT_OF_SCOPE_HEADERS: Sequence[str] = (REQ_SET_COL, ID_COL, REASON_COL, DETAILS_COL)

SHORT_ID_HEADER = "Short ID(s)"
FULL_ID_HEADER = "Full ID(s)"

NOT_VERIFIABLE = "Not Verifiable"
NOT_TESTED = "Not Tested"
NOT_APPLICABLE = "NA"
DEPRECATED = "DEPRECATED"


def clean_header_name(name: object) -> str:
    """Strip whitespace and the trailing required marker so `ID*` and `ID` match."""

    if name is None:
        return ""
    return str(name).strip().rstrip(REQUIRED_MARKER).strip()


def requirement_key(requirement_set: str, requirement_id: str) -> str:
    """Join key shared by the catalogue and the runnable annotations."""

    return f"{requirement_set}@{requirement_id}"


def workbook_columns() -> list[str]:
    """Logical (unstarred) workbook column names in sheet order."""

    return [clean_header_name(h) for h in WORKBOOK_HEADERS]


def suite_column_headers(suite_title: str) -> tuple[str, str]:
    return f"{suite_title} {SHORT_ID_HEADER}", f"{suite_title} {FULL_ID_HEADER}"
