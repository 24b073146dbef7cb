"""Artifact models: a generated UI source file tracked by the registry."""

import os
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ArtifactKind(str, Enum):
    """Atomic-design level of a generated artifact."""

    LEAF_ELEMENT = "leaf-element"
    COMPOSITE = "composite"
    COMPLEX_MODULE = "complex-module"
    ICON = "icon"


# On-disk directory for each kind, relative to the artifact root
KIND_DIRECTORIES = {
    ArtifactKind.LEAF_ELEMENT: "elements",
    ArtifactKind.COMPOSITE: "components",
    ArtifactKind.COMPLEX_MODULE: "modules",
    ArtifactKind.ICON: "icons",
}

DIRECTORY_KINDS = {directory: kind for kind, directory in KIND_DIRECTORIES.items()}


def normalize_path(path: str) -> str:
    """Absolute, normalized form used for every path comparison."""
    return os.path.normpath(os.path.abspath(path))


class Artifact(BaseModel):
    """A named, typed unit of generated source."""

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    name: str
    kind: ArtifactKind
    path: str
    import_path: Optional[str] = None

    @property
    def directory(self) -> str:
        return os.path.dirname(normalize_path(self.path))

    @property
    def nested(self) -> bool:
        """True for the `<kind-dir>/<Name>/<Name>.tsx` layout."""
        return os.path.basename(self.directory) == self.name

    @property
    def owned_root(self) -> str:
        """Directory (nested layout) or main file (flat layout) the artifact owns."""
        return self.directory if self.nested else normalize_path(self.path)

    def owns(self, file_path: str) -> bool:
        """Whether a diagnostic's file belongs to this artifact.

        Nested layout: anything under the artifact's own directory.
        Flat layout: the main file and siblings named `<Name>.<suffix>`
        (stories, tests). Matching respects path-component boundaries.
        """
        candidate = normalize_path(file_path)
        if self.nested:
            return candidate == self.directory or candidate.startswith(self.directory + os.sep)
        if candidate == normalize_path(self.path):
            return True
        return (
            os.path.dirname(candidate) == self.directory
            and os.path.basename(candidate).startswith(self.name + ".")
        )

    def ownership_depth(self) -> int:
        """Length of the owned prefix, used to prefer the most specific owner."""
        return len(self.owned_root)
