"""
Task entry points for collecting requirements and generating coverage.

Both tasks offer ``run`` (regenerate, writing only on change) and
``run_check`` (read-only; non-zero status when anything is stale). Each
method returns a process exit status and resolves its own failures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import polars as pl

from .config import KitConfig
from .coverage import (
    build_coverage_table,
    format_requirements_table,
    load_catalogue,
    load_out_of_scope,
    suite_targets,
    uncovered_requirements,
    unmatched_requirements,
)
from .errors import MissingInputError
from .gate import Artifact, ArtifactState, check_artifact, sync_artifact
from .ingest import ingest_requirement_sets, missing_sets
from .runnables import RequirementsMap, RunnableNode, collect_requirement_associations, suites_from_config
from .split import render_csv, split_requirement_sets

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

COLLECT_COMMAND = "requirements-tools collect <input_directory>"
COVERAGE_COMMAND = "requirements-tools coverage"


class CollectRequirements:
    """Collect planning workbooks into the catalogue and out-of-scope CSVs."""

    def __init__(self, config: KitConfig):
        self.config = config

    def _sets(self, input_directory: Path) -> Dict[str, pl.DataFrame]:
        sets = ingest_requirement_sets(input_directory, self.config.input_sets)
        missing = missing_sets(sets)
        if missing:
            for set_id in missing:
                LOGGER.error(
                    "Could not find input file for set %s in directory %s. Aborting requirements collection...",
                    set_id,
                    input_directory,
                )
            raise MissingInputError(f"Missing workbooks for: {', '.join(missing)}")
        return {set_id: frame for set_id, frame in sets.items() if frame is not None}

    def artifacts(self, input_directory: Path) -> List[Artifact]:
        result = split_requirement_sets(self._sets(Path(input_directory)))
        return [
            Artifact(self.config.requirements_file, render_csv(result.requirements), "Requirements set"),
            Artifact(
                self.config.out_of_scope_file,
                render_csv(result.out_of_scope),
                "Planned Not Tested Requirements set",
            ),
        ]

    def run(self, input_directory: Path) -> int:
        try:
            artifacts = self.artifacts(input_directory)
        except MissingInputError:
            return EXIT_FAILURE

        for artifact in artifacts:
            sync_artifact(artifact)
        LOGGER.info("Done.")
        return EXIT_OK

    def run_check(self, input_directory: Path) -> int:
        try:
            artifacts = self.artifacts(input_directory)
        except MissingInputError:
            return EXIT_FAILURE

        states = [check_artifact(artifact) for artifact in artifacts]
        if all(state is ArtifactState.UP_TO_DATE for state in states):
            return EXIT_OK

        LOGGER.error("Check Failed. To resolve, run:\n\n      %s\n", COLLECT_COMMAND)
        return EXIT_FAILURE


@dataclass(frozen=True)
class CoveragePlan:
    """Everything one coverage run computes, built once per invocation."""

    artifact: Artifact
    unmatched: RequirementsMap
    uncovered: Sequence[str]


class RequirementsCoverage:
    """Map runnables to the requirements they verify and write the coverage CSV."""

    def __init__(self, config: KitConfig, suites: Optional[Sequence[RunnableNode]] = None):
        self.config = config
        self._suites = list(suites) if suites is not None else None

    @property
    def suites(self) -> List[RunnableNode]:
        if self._suites is None:
            self._suites = suites_from_config(self.config.suites, self.config.base_dir)
        return self._suites

    def plan(self) -> CoveragePlan:
        catalogue = load_catalogue(self.config.requirements_file)
        out_of_scope = load_out_of_scope(self.config.out_of_scope_file)
        requirements_map = collect_requirement_associations(self.suites)
        targets = suite_targets(self.suites, self.config.suite_actors)

        table = build_coverage_table(
            catalogue, targets, requirements_map, out_of_scope, self.config.uncovered_marker
        )
        return CoveragePlan(
            artifact=Artifact(self.config.coverage_file, render_csv(table), "Requirements coverage"),
            unmatched=unmatched_requirements(requirements_map, catalogue),
            uncovered=uncovered_requirements(table, targets, self.config.uncovered_marker),
        )

    def _plan_or_abort(self, action: str) -> Optional[CoveragePlan]:
        try:
            plan = self.plan()
        except MissingInputError as exc:
            LOGGER.error("%s. Aborting requirements coverage %s...", exc, action)
            return None

        if plan.unmatched:
            LOGGER.warning(
                "The following requirements indicated in the test kit are not present in %s\n%s",
                self.config.requirements_file_name,
                format_requirements_table(plan.unmatched),
            )
        if plan.uncovered:
            LOGGER.info(
                "%d requirement(s) have no covering test and are not marked out of scope.",
                len(plan.uncovered),
            )
            LOGGER.debug("Uncovered requirements: %s", ", ".join(plan.uncovered))
        return plan

    def run(self) -> int:
        plan = self._plan_or_abort("generation")
        if plan is None:
            return EXIT_FAILURE

        if sync_artifact(plan.artifact) is ArtifactState.WRITTEN:
            LOGGER.info("Done.")
        return EXIT_OK

    def run_check(self) -> int:
        plan = self._plan_or_abort("check")
        if plan is None:
            return EXIT_FAILURE

        state = check_artifact(plan.artifact)
        if state is ArtifactState.UP_TO_DATE and not plan.unmatched:
            return EXIT_OK

        if state is not ArtifactState.UP_TO_DATE:
            LOGGER.error("To regenerate the file, run:\n\n      %s\n", COVERAGE_COMMAND)
        LOGGER.error("Check failed.")
        return EXIT_FAILURE
