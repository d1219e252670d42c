"""Kit configuration for the requirements tasks.

Everything that used to be a per-kit constant (kit id, requirement sets,
output locations, suite → actor mapping) lives in one YAML file so the same
tooling can serve several test kits without code edits.

Sample ``requirements_tools.yaml``
----------------------------------
```yaml
# Relative paths resolve from the config file location.
test_kit_id: inferno-template

# One workbook per set; located by substring match on the file name.
input_sets:
  - inferno-template_req-tools

# Optional; defaults to lib/<kit_code>/requirements
requirements_dir: lib/inferno_template/requirements

suite_actors:
  inferno_template_test_suite: Server

# Either an import path ("package.module:SUITES") or an inline tree.
suites:
  - id: inferno_template_test_suite
    title: Inferno Test Suite Template
    groups:
      - id: capability_statement
        title: Capability Statement
        tests:
          - id: capability_statement_read
            verifies_requirements:
              - inferno-template_req-tools@1

coverage:
  uncovered_marker: ""
```
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import yaml

from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("requirements_tools.yaml")
GENERATED_DIR_NAME = "generated"


def kit_code_folder(test_kit_id: str) -> str:
    return test_kit_id.replace("-", "_")


def _resolve_path(base: Path, value: Union[str, Path]) -> Path:
    return (base / value).expanduser().resolve()


def _ensure_str_list(value: Any, context: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"`{context}` must be a list of strings.")
    return [str(v) for v in value]


@dataclass(frozen=True)
class KitConfig:
    """Per-kit settings passed explicitly into every task."""

    test_kit_id: str
    input_sets: Sequence[str]
    requirements_dir: Path
    suite_actors: Mapping[str, str] = field(default_factory=dict)
    suites: Union[str, Sequence[Mapping[str, Any]], None] = None
    uncovered_marker: str = ""
    base_dir: Path = field(default_factory=Path.cwd)

    @classmethod
    def for_test_kit(
        cls,
        test_kit_id: str,
        input_sets: Sequence[str],
        *,
        base_dir: Optional[Path] = None,
        requirements_dir: Optional[Path] = None,
        suite_actors: Optional[Mapping[str, str]] = None,
        suites: Union[str, Sequence[Mapping[str, Any]], None] = None,
        uncovered_marker: str = "",
    ) -> "KitConfig":
        """Build a config using the conventional ``lib/<kit_code>/requirements`` layout."""

        base = base_dir or Path.cwd()
        req_dir = requirements_dir or base / "lib" / kit_code_folder(test_kit_id) / "requirements"
        return cls(
            test_kit_id=test_kit_id,
            input_sets=tuple(input_sets),
            requirements_dir=Path(req_dir),
            suite_actors=dict(suite_actors or {}),
            suites=suites,
            uncovered_marker=uncovered_marker,
            base_dir=base,
        )

    @property
    def requirements_file_name(self) -> str:
        return f"{self.test_kit_id}_requirements.csv"

    @property
    def requirements_file(self) -> Path:
        return self.requirements_dir / self.requirements_file_name

    @property
    def out_of_scope_file_name(self) -> str:
        return f"{self.test_kit_id}_out_of_scope_requirements.csv"

    @property
    def out_of_scope_file(self) -> Path:
        return self.requirements_dir / self.out_of_scope_file_name

    @property
    def coverage_file_name(self) -> str:
        return f"{self.test_kit_id}_requirements_coverage.csv"

    @property
    def coverage_file(self) -> Path:
        return self.requirements_dir / GENERATED_DIR_NAME / self.coverage_file_name


def load_kit_config(path: Path) -> KitConfig:
    """Load and validate the YAML kit configuration."""

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML config at {path}") from exc

    if not isinstance(raw, dict):
        raise ConfigError("Config must be a mapping with at least `test_kit_id` and `input_sets`.")

    test_kit_id = str(raw.get("test_kit_id") or "").strip()
    if not test_kit_id:
        raise ConfigError("`test_kit_id` is required.")

    input_sets = _ensure_str_list(raw.get("input_sets"), "input_sets")
    if not input_sets:
        raise ConfigError("`input_sets` must name at least one requirement set.")

    base_dir = path.parent.resolve()
    requirements_dir_value = raw.get("requirements_dir")
    requirements_dir = (
        _resolve_path(base_dir, str(requirements_dir_value))
        if requirements_dir_value
        else base_dir / "lib" / kit_code_folder(test_kit_id) / "requirements"
    )

    actors_cfg = raw.get("suite_actors") or {}
    if not isinstance(actors_cfg, dict):
        raise ConfigError("`suite_actors` must map suite ids to actor names.")
    suite_actors: Dict[str, str] = {str(k): str(v) for k, v in actors_cfg.items()}

    suites = raw.get("suites")
    if suites is not None and not isinstance(suites, (str, list)):
        raise ConfigError("`suites` must be an import path string or a list of suite definitions.")

    coverage_cfg = raw.get("coverage") or {}
    if not isinstance(coverage_cfg, dict):
        raise ConfigError("`coverage` must be a mapping.")
    uncovered_marker = coverage_cfg.get("uncovered_marker", "")

    LOGGER.debug("Loaded kit config for %s from %s", test_kit_id, path)
    return KitConfig(
        test_kit_id=test_kit_id,
        input_sets=tuple(input_sets),
        requirements_dir=requirements_dir,
        suite_actors=suite_actors,
        suites=suites,
        uncovered_marker="" if uncovered_marker is None else str(uncovered_marker),
        base_dir=base_dir,
    )
