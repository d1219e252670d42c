"""Compare generated artifacts with what is on disk and write only on change."""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

LOGGER = logging.getLogger(__name__)

ENCODING = "utf-8"


class ArtifactState(str, Enum):
    NO_OUTPUT = "no_output"
    UP_TO_DATE = "up_to_date"
    STALE = "stale"
    WRITTEN = "written"


@dataclass(frozen=True)
class Artifact:
    """Generated file content (BOM included) and where it belongs."""

    path: Path
    content: str
    description: str = "Artifact"

    @property
    def name(self) -> str:
        return self.path.name

    def encoded(self) -> bytes:
        return self.content.encode(ENCODING)


def artifact_state(artifact: Artifact) -> ArtifactState:
    """Byte-for-byte comparison of the new content against the persisted file."""

    if not artifact.path.exists():
        return ArtifactState.NO_OUTPUT
    if artifact.path.read_bytes() == artifact.encoded():
        return ArtifactState.UP_TO_DATE
    return ArtifactState.STALE


def write_artifact(artifact: Artifact) -> None:
    """Replace the target file in one step so readers never see a partial write."""

    artifact.path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{artifact.name}.", suffix=".tmp", dir=artifact.path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(artifact.encoded())
        os.replace(tmp_name, artifact.path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def sync_artifact(artifact: Artifact) -> ArtifactState:
    """Write the artifact unless the file on disk already matches it."""

    state = artifact_state(artifact)
    if state is ArtifactState.UP_TO_DATE:
        LOGGER.info("'%s' file is up to date.", artifact.name)
        return state

    if state is ArtifactState.STALE:
        LOGGER.info("%s has changed.", artifact.description)
    else:
        LOGGER.info("No existing %s.", artifact.name)

    LOGGER.info("Writing to file %s...", artifact.path)
    write_artifact(artifact)
    return ArtifactState.WRITTEN


def check_artifact(artifact: Artifact) -> ArtifactState:
    """Report whether the artifact is current without touching the file."""

    state = artifact_state(artifact)
    if state is ArtifactState.UP_TO_DATE:
        LOGGER.info("'%s' file is up to date.", artifact.name)
    elif state is ArtifactState.STALE:
        LOGGER.error("%s file is out of date.", artifact.name)
    else:
        LOGGER.error("No existing %s file.", artifact.name)
    return state
