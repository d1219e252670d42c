"""
Requirements collection and coverage tooling for FHIR test kits.
"""

from .config import KitConfig, load_kit_config  # noqa: F401
from .coverage import (  # noqa: F401
    build_coverage_table,
    coverage_cell,
    format_requirements_table,
    load_catalogue,
    load_out_of_scope,
    unmatched_requirements,
)
from .errors import ConfigError, MissingInputError  # noqa: F401
from .gate import Artifact, ArtifactState, check_artifact, sync_artifact  # noqa: F401
from .ingest import ingest_requirement_sets, read_requirements_sheet  # noqa: F401
from .runnables import (  # noqa: F401
    Association,
    RunnableDefinition,
    RunnableKind,
    RunnableNode,
    assemble_suite,
    collect_requirement_associations,
    define_group,
    define_suite,
    define_test,
    suites_from_config,
)
from .split import SplitResult, out_of_scope_reason, render_csv, split_requirement_sets  # noqa: F401
from .tasks import CollectRequirements, RequirementsCoverage  # noqa: F401

__all__ = [
    "KitConfig",
    "load_kit_config",
    "build_coverage_table",
    "coverage_cell",
    "format_requirements_table",
    "load_catalogue",
    "load_out_of_scope",
    "unmatched_requirements",
    "ConfigError",
    "MissingInputError",
    "Artifact",
    "ArtifactState",
    "check_artifact",
    "sync_artifact",
    "ingest_requirement_sets",
    "read_requirements_sheet",
    "Association",
    "RunnableDefinition",
    "RunnableKind",
    "RunnableNode",
    "assemble_suite",
    "collect_requirement_associations",
    "define_group",
    "define_suite",
    "define_test",
    "suites_from_config",
    "SplitResult",
    "out_of_scope_reason",
    "render_csv",
    "split_requirement_sets",
    "CollectRequirements",
    "RequirementsCoverage",
]
