"""
Join the requirements catalogue with the runnable annotations.

The coverage table is the catalogue (minus deprecated rows) plus a pair of
``Short ID(s)`` / ``Full ID(s)`` columns per suite. Each cell pair resolves to
one of: the comma-joined ids of the claiming runnables, ``Not Tested`` for
out-of-scope requirements, ``NA`` when the suite's actor does not apply, or
the uncovered marker (empty by default) for an in-scope gap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

import polars as pl

from .errors import ConfigError, MissingInputError
from .runnables import Association, RequirementsMap, RunnableNode
from .schema import (
    ACTOR_COL,
    CATALOGUE_HEADERS,
    CONFORMANCE_COL,
    DEPRECATED,
    ID_COL,
    NOT_APPLICABLE,
    NOT_TESTED,
    REQ_SET_COL,
    requirement_key,
    suite_column_headers,
)

LOGGER = logging.getLogger(__name__)

ID_SEPARATOR = ", "
TABLE_HEADERS = ("requirement_id", "short_id", "full_id")


def read_csv_strings(path: Path) -> pl.DataFrame:
    """Read a BOM-prefixed CSV with every column as a string and blanks as ""."""

    text = Path(path).read_bytes().decode("utf-8-sig")
    frame = pl.read_csv(text.encode("utf-8"), infer_schema_length=0)
    return frame.with_columns(pl.all().fill_null(""))


def load_catalogue(path: Path) -> pl.DataFrame:
    if not Path(path).exists():
        raise MissingInputError(f"Could not find input file: {path}")

    frame = read_csv_strings(path)
    missing = [c for c in (REQ_SET_COL, ID_COL) if c not in frame.columns]
    if missing:
        raise ValueError(f"Requirements catalogue {path} is missing required columns: {', '.join(missing)}")

    fill = [pl.lit("", dtype=pl.Utf8).alias(c) for c in CATALOGUE_HEADERS if c not in frame.columns]
    if fill:
        frame = frame.with_columns(fill)
    return frame.select(list(CATALOGUE_HEADERS))


def load_out_of_scope(path: Path) -> Dict[str, Dict[str, str]]:
    """Out-of-scope rows keyed by requirement key; empty when the file is absent."""

    if not Path(path).exists():
        LOGGER.debug("No out-of-scope requirements file at %s", path)
        return {}

    frame = read_csv_strings(path)
    return {
        requirement_key(row.get(REQ_SET_COL, ""), row.get(ID_COL, "")): row
        for row in frame.iter_rows(named=True)
    }


@dataclass(frozen=True)
class SuiteTarget:
    """A suite as it contributes to the coverage table."""

    suite_id: str
    title: str
    actor: str

    @property
    def headers(self) -> Tuple[str, str]:
        return suite_column_headers(self.title)


def suite_targets(suites: Sequence[RunnableNode], suite_actors: Mapping[str, str]) -> List[SuiteTarget]:
    targets: List[SuiteTarget] = []
    seen_titles: Dict[str, str] = {}
    for node in suites:
        if node.id not in suite_actors:
            raise ConfigError(f"No actor configured for suite '{node.id}'")
        if node.title in seen_titles:
            raise ConfigError(
                f"Suites '{seen_titles[node.title]}' and '{node.id}' share the title '{node.title}'; "
                "coverage columns would collide."
            )
        seen_titles[node.title] = node.id
        targets.append(SuiteTarget(suite_id=node.id, title=node.title, actor=suite_actors[node.id]))
    return targets


def coverage_headers(targets: Sequence[SuiteTarget]) -> List[str]:
    headers = list(CATALOGUE_HEADERS)
    for target in targets:
        headers.extend(target.headers)
    return headers


def coverage_cell(
    actor: str,
    key: str,
    target: SuiteTarget,
    requirements_map: RequirementsMap,
    out_of_scope_keys: Mapping[str, Mapping[str, str]],
    uncovered_marker: str = "",
) -> Tuple[str, str]:
    """Resolve the (short ids, full ids) pair for one catalogue row and suite."""

    if target.actor not in (actor or ""):
        return NOT_APPLICABLE, NOT_APPLICABLE

    items = [a for a in requirements_map.get(key, []) if a.suite_id == target.suite_id]
    if items:
        return (
            ID_SEPARATOR.join(a.short_id for a in items),
            ID_SEPARATOR.join(a.full_id for a in items),
        )
    if key in out_of_scope_keys:
        return NOT_TESTED, NOT_TESTED
    return uncovered_marker, uncovered_marker


def build_coverage_table(
    catalogue: pl.DataFrame,
    targets: Sequence[SuiteTarget],
    requirements_map: RequirementsMap,
    out_of_scope_keys: Mapping[str, Mapping[str, str]],
    uncovered_marker: str = "",
) -> pl.DataFrame:
    headers = coverage_headers(targets)
    columns: Dict[str, List[str]] = {h: [] for h in headers}

    for row in catalogue.iter_rows(named=True):
        if row[CONFORMANCE_COL] == DEPRECATED:
            continue
        key = requirement_key(row[REQ_SET_COL], row[ID_COL])
        for col in CATALOGUE_HEADERS:
            columns[col].append(row[col])
        for target in targets:
            short_ids, full_ids = coverage_cell(
                row[ACTOR_COL], key, target, requirements_map, out_of_scope_keys, uncovered_marker
            )
            short_header, full_header = target.headers
            columns[short_header].append(short_ids)
            columns[full_header].append(full_ids)

    return pl.DataFrame(columns, schema={h: pl.Utf8 for h in headers})


def catalogue_keys(catalogue: pl.DataFrame) -> List[str]:
    """All keys in the catalogue, deprecated rows included."""

    return [
        requirement_key(req_set, req_id)
        for req_set, req_id in zip(catalogue[REQ_SET_COL].to_list(), catalogue[ID_COL].to_list())
    ]


def unmatched_requirements(requirements_map: RequirementsMap, catalogue: pl.DataFrame) -> RequirementsMap:
    """Keys claimed by runnables that the catalogue does not define."""

    known = set(catalogue_keys(catalogue))
    return {key: items for key, items in requirements_map.items() if key not in known}


def uncovered_requirements(
    table: pl.DataFrame, targets: Sequence[SuiteTarget], uncovered_marker: str = ""
) -> List[str]:
    """Keys whose cell is the uncovered marker for at least one suite."""

    gaps: List[str] = []
    for row in table.iter_rows(named=True):
        if any(row[t.headers[0]] == uncovered_marker for t in targets):
            gaps.append(requirement_key(row[REQ_SET_COL], row[ID_COL]))
    return gaps


def format_requirements_table(requirements_map: Mapping[str, Sequence[Association]]) -> str:
    """
    Render a requirements map as an aligned text table::

        requirement_id | short_id | full_id
        ---------------+----------+--------
        set@1          | 1.01     | suite-group-test
    """

    items = [(key, a) for key, assocs in requirements_map.items() for a in assocs]
    widths = [
        max([len(TABLE_HEADERS[0])] + [len(key) for key in requirements_map]),
        max([len(TABLE_HEADERS[1])] + [len(a.short_id) for _, a in items]),
        max([len(TABLE_HEADERS[2])] + [len(a.full_id) for _, a in items]),
    ]

    lines = [" | ".join(h.ljust(w) for h, w in zip(TABLE_HEADERS, widths))]
    lines.append("-+-".join("-" * w for w in widths))
    for key, assoc in items:
        values = (key, assoc.short_id, assoc.full_id)
        lines.append(" | ".join(v.ljust(w) for v, w in zip(values, widths)))
    lines.append("")
    return "\n".join(lines)
