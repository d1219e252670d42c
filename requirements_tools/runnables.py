"""
Static suite → group → test hierarchy and the requirement annotations on it.

Suites are declared with ``RunnableDefinition`` objects (or the equivalent
YAML mappings) and turned into immutable ``RunnableNode`` trees by
``assemble_suite``, which derives the position-based short ids and the
dash-joined full ids. ``collect_requirement_associations`` then walks the
trees in a fixed order and records which runnables claim each requirement.
"""

from __future__ import annotations

import importlib
import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from .errors import ConfigError

LOGGER = logging.getLogger(__name__)

SUITE_SHORT_ID = "suite"


class RunnableKind(str, Enum):
    SUITE = "suite"
    GROUP = "group"
    TEST = "test"


def normalize_requirement_ids(value: Any) -> Tuple[str, ...]:
    """Coerce None, a single key, or a collection of keys into a tuple of strings."""

    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


@dataclass
class RunnableDefinition:
    """Declaration of a suite, group or test before ids are assigned."""

    kind: RunnableKind
    id: str
    title: str = ""
    children: List["RunnableDefinition"] = field(default_factory=list)
    verifies_requirements: List[str] = field(default_factory=list)
    short_id: Optional[str] = None
    full_id: Optional[str] = None

    def verifies(self, *requirement_ids: Any) -> List[str]:
        """
        Get or set the requirement keys this runnable verifies.

        With no arguments the current list is returned. A single empty
        collection clears the list; anything else replaces it.
        """

        if not requirement_ids:
            return list(self.verifies_requirements)
        if len(requirement_ids) == 1 and not isinstance(requirement_ids[0], str):
            self.verifies_requirements = list(normalize_requirement_ids(requirement_ids[0]))
        else:
            self.verifies_requirements = [str(r) for r in requirement_ids]
        return list(self.verifies_requirements)


def define_suite(id: str, title: str = "", *children: RunnableDefinition, verifies: Any = None) -> RunnableDefinition:
    return RunnableDefinition(
        RunnableKind.SUITE, id, title, list(children), list(normalize_requirement_ids(verifies))
    )


def define_group(id: str, title: str = "", *children: RunnableDefinition, verifies: Any = None, short_id: Optional[str] = None) -> RunnableDefinition:
    return RunnableDefinition(
        RunnableKind.GROUP, id, title, list(children), list(normalize_requirement_ids(verifies)), short_id=short_id
    )


def define_test(
    id: str,
    title: str = "",
    *,
    verifies: Any = None,
    short_id: Optional[str] = None,
    full_id: Optional[str] = None,
) -> RunnableDefinition:
    return RunnableDefinition(
        RunnableKind.TEST, id, title, [], list(normalize_requirement_ids(verifies)), short_id=short_id, full_id=full_id
    )


@dataclass(frozen=True)
class RunnableNode:
    kind: RunnableKind
    id: str
    title: str
    short_id: str
    full_id: str
    suite_id: str
    verifies_requirements: Tuple[str, ...] = ()
    children: Tuple["RunnableNode", ...] = ()

    @property
    def groups(self) -> Tuple["RunnableNode", ...]:
        return tuple(c for c in self.children if c.kind is RunnableKind.GROUP)

    @property
    def tests(self) -> Tuple["RunnableNode", ...]:
        return tuple(c for c in self.children if c.kind is RunnableKind.TEST)

    def walk(self) -> Iterable["RunnableNode"]:
        """Yield this node, then its tests, then each subgroup recursively."""

        yield self
        for child in self.tests:
            yield child
        for child in self.groups:
            yield from child.walk()


def _assemble(
    definition: RunnableDefinition,
    parent_short_id: Optional[str],
    parent_full_id: str,
    position: int,
    suite_id: str,
) -> RunnableNode:
    if definition.kind is RunnableKind.SUITE:
        raise ConfigError(f"Suite '{definition.id}' cannot be nested inside '{parent_full_id}'")

    if definition.kind is RunnableKind.TEST:
        if parent_short_id is None:
            derived_short = f"{position:02d}"
        else:
            derived_short = f"{parent_short_id}.{position:02d}"
    elif parent_short_id is None:
        derived_short = str(position)
    else:
        derived_short = f"{parent_short_id}.{position}"

    short_id = definition.short_id or derived_short
    full_id = definition.full_id or f"{parent_full_id}-{definition.id}"
    return RunnableNode(
        kind=definition.kind,
        id=definition.id,
        title=definition.title,
        short_id=short_id,
        full_id=full_id,
        suite_id=suite_id,
        verifies_requirements=normalize_requirement_ids(definition.verifies_requirements),
        children=_assemble_children(definition.children, short_id, full_id, suite_id),
    )


def _assemble_children(
    children: Sequence[RunnableDefinition],
    parent_short_id: Optional[str],
    parent_full_id: str,
    suite_id: str,
) -> Tuple[RunnableNode, ...]:
    # Groups and tests are numbered independently, like the test runner does.
    counters: Dict[RunnableKind, int] = {RunnableKind.GROUP: 0, RunnableKind.TEST: 0}
    nodes: List[RunnableNode] = []
    for child in children:
        counters[child.kind] = counters.get(child.kind, 0) + 1
        nodes.append(_assemble(child, parent_short_id, parent_full_id, counters[child.kind], suite_id))
    return tuple(nodes)


def assemble_suite(definition: RunnableDefinition) -> RunnableNode:
    """Turn a suite declaration into an immutable tree with derived ids."""

    if definition.kind is not RunnableKind.SUITE:
        raise ConfigError(f"'{definition.id}' is a {definition.kind.value}, not a suite")

    full_id = definition.full_id or definition.id
    return RunnableNode(
        kind=RunnableKind.SUITE,
        id=definition.id,
        title=definition.title or definition.id,
        short_id=SUITE_SHORT_ID,
        full_id=full_id,
        suite_id=definition.id,
        verifies_requirements=normalize_requirement_ids(definition.verifies_requirements),
        children=_assemble_children(definition.children, None, full_id, definition.id),
    )


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def _definition_from_mapping(data: Mapping[str, Any], kind: RunnableKind) -> RunnableDefinition:
    if not isinstance(data, Mapping):
        raise ConfigError(f"{kind.value} entries must be mappings, received: {data!r}")
    node_id = data.get("id")
    if not node_id:
        raise ConfigError(f"{kind.value} entry is missing 'id': {dict(data)}")

    children: List[RunnableDefinition] = []
    if kind is not RunnableKind.TEST:
        children.extend(_definition_from_mapping(g, RunnableKind.GROUP) for g in data.get("groups") or [])
        children.extend(_definition_from_mapping(t, RunnableKind.TEST) for t in data.get("tests") or [])

    return RunnableDefinition(
        kind=kind,
        id=str(node_id),
        title=str(data.get("title") or ""),
        children=children,
        verifies_requirements=list(normalize_requirement_ids(data.get("verifies_requirements"))),
        short_id=_optional_str(data.get("short_id")),
        full_id=_optional_str(data.get("full_id")),
    )


def _import_suites(target: str) -> Sequence[Any]:
    module_name, sep, attribute = target.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigError(f"Suite import path must look like 'package.module:ATTRIBUTE', got '{target}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Could not import suite module '{module_name}'") from exc
    try:
        value = getattr(module, attribute)
    except AttributeError as exc:
        raise ConfigError(f"Module '{module_name}' has no attribute '{attribute}'") from exc
    if callable(value):
        value = value()
    if isinstance(value, (RunnableDefinition, RunnableNode)):
        return [value]
    return list(value)


def _coerce_suite(item: Any) -> RunnableNode:
    if isinstance(item, RunnableNode):
        if item.kind is not RunnableKind.SUITE:
            raise ConfigError(f"'{item.id}' is a {item.kind.value}, not a suite")
        return item
    if isinstance(item, RunnableDefinition):
        return assemble_suite(item)
    if isinstance(item, Mapping):
        return assemble_suite(_definition_from_mapping(item, RunnableKind.SUITE))
    raise ConfigError(f"Unsupported suite definition: {item!r}")


def suites_from_config(value: Union[str, Sequence[Any], None], base_dir: Optional[Path] = None) -> List[RunnableNode]:
    """
    Build suite trees from config: an import path or an inline list.

    Import paths are resolved with ``base_dir`` importable so kit-local
    modules can be referenced without installing them.
    """

    if value is None:
        raise ConfigError("`suites` must be configured to compute requirements coverage.")

    if isinstance(value, str):
        added = base_dir is not None and str(base_dir) not in sys.path
        if added:
            sys.path.insert(0, str(base_dir))
        try:
            items = _import_suites(value)
        finally:
            if added:
                sys.path.remove(str(base_dir))
    else:
        items = list(value)

    suites = [_coerce_suite(item) for item in items]
    LOGGER.debug("Loaded %d suite(s): %s", len(suites), ", ".join(s.id for s in suites))
    return suites


class Association(NamedTuple):
    short_id: str
    full_id: str
    suite_id: str


RequirementsMap = Dict[str, List[Association]]


def collect_requirement_associations(suites: Iterable[RunnableNode]) -> RequirementsMap:
    """
    Map each declared requirement key to the runnables that claim it.

    Shape::

        {
            "set@req-1": [Association(short_id="1.01", full_id="suite-grp-t1", suite_id="suite")],
            ...
        }

    Keys and association lists follow visit order: each suite, then each
    group followed by its tests and subgroups.
    """

    requirements_map: RequirementsMap = {}
    for suite_node in suites:
        for node in suite_node.walk():
            for requirement_id in node.verifies_requirements:
                requirements_map.setdefault(str(requirement_id), []).append(
                    Association(short_id=node.short_id, full_id=node.full_id, suite_id=node.suite_id)
                )
    return requirements_map
