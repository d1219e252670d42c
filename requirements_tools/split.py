from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import polars as pl

from .schema import (
    BOM,
    CATALOGUE_HEADERS,
    DETAILS_COL,
    ID_COL,
    NOT_TESTED,
    NOT_VERIFIABLE,
    OUT_OF_SCOPE_HEADERS,
    PLANNING_COL,
    PLANNING_DETAILS_COL,
    REASON_COL,
    REQ_SET_COL,
    VERIFIABILITY_DETAILS_COL,
    VERIFIABLE_COL,
)

LOGGER = logging.getLogger(__name__)

FALSY_VALUES = ("no", "false")


def is_spreadsheet_falsy(value: Optional[str]) -> bool:
    """True for "no"/"false" in any case; blanks are not falsy."""

    if value is None:
        return False
    return str(value).lower() in FALSY_VALUES


def out_of_scope_reason(verifiable: Optional[str], planning: Optional[str]) -> Optional[str]:
    """Classify a workbook row; "not verifiable" wins over "not planned"."""

    if is_spreadsheet_falsy(verifiable):
        return NOT_VERIFIABLE
    if is_spreadsheet_falsy(planning):
        return NOT_TESTED
    return None


def _falsy_expr(column: str) -> pl.Expr:
    return pl.col(column).fill_null("").str.to_lowercase().is_in(list(FALSY_VALUES))


def _reason_expr() -> pl.Expr:
    return (
        pl.when(_falsy_expr(VERIFIABLE_COL))
        .then(pl.lit(NOT_VERIFIABLE))
        .when(_falsy_expr(PLANNING_COL))
        .then(pl.lit(NOT_TESTED))
        .otherwise(pl.lit(None, dtype=pl.Utf8))
        .alias(REASON_COL)
    )


def _details_expr() -> pl.Expr:
    return (
        pl.when(pl.col(REASON_COL) == NOT_VERIFIABLE)
        .then(pl.col(VERIFIABILITY_DETAILS_COL))
        .otherwise(pl.col(PLANNING_DETAILS_COL))
        .alias(DETAILS_COL)
    )


def _empty_frame(headers) -> pl.DataFrame:
    return pl.DataFrame({h: [] for h in headers}, schema={h: pl.Utf8 for h in headers})


@dataclass(frozen=True)
class SplitResult:
    requirements: pl.DataFrame
    out_of_scope: pl.DataFrame


def split_requirement_set(set_id: str, frame: pl.DataFrame) -> SplitResult:
    """Split one ingested set into catalogue rows and out-of-scope rows."""

    tagged = frame.with_columns(pl.lit(set_id, dtype=pl.Utf8).alias(REQ_SET_COL))
    requirements = tagged.select(list(CATALOGUE_HEADERS))
    out_of_scope = (
        tagged.with_columns(_reason_expr())
        .filter(pl.col(REASON_COL).is_not_null())
        .with_columns(_details_expr())
        .select(list(OUT_OF_SCOPE_HEADERS))
    )
    return SplitResult(requirements=requirements, out_of_scope=out_of_scope)


def split_requirement_sets(sets: Mapping[str, pl.DataFrame]) -> SplitResult:
    """
    Partition every set into the catalogue and the out-of-scope table.

    All rows land in the catalogue. Sets keep the mapping's order and rows keep
    their workbook order in both outputs.
    """

    parts = [split_requirement_set(set_id, frame) for set_id, frame in sets.items()]
    if not parts:
        return SplitResult(_empty_frame(CATALOGUE_HEADERS), _empty_frame(OUT_OF_SCOPE_HEADERS))

    result = SplitResult(
        requirements=pl.concat([p.requirements for p in parts], how="vertical"),
        out_of_scope=pl.concat([p.out_of_scope for p in parts], how="vertical"),
    )
    LOGGER.info(
        "Collected %d requirements (%d out of scope) from %d set(s)",
        result.requirements.height,
        result.out_of_scope.height,
        len(parts),
    )
    return result


def render_csv(frame: pl.DataFrame) -> str:
    """Serialize a frame to CSV text prefixed with a BOM."""

    return BOM + frame.write_csv()
