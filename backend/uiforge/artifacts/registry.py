"""Artifact registry — authoritative map from artifact name to storage path and kind.

The registry is rebuilt from the filesystem at the start of every run so it
always matches what the generation phase wrote. Diagnostics for files the
registry does not own (scaffolding, app shell, config) are never reported.
"""

import os
import re
from pathlib import Path
from typing import Iterable, Iterator, Optional

import structlog

from uiforge.artifacts.models import (
    Artifact,
    ArtifactKind,
    DIRECTORY_KINDS,
    KIND_DIRECTORIES,
    normalize_path,
)

logger = structlog.get_logger()

SOURCE_SUFFIXES = (".tsx", ".jsx")

# Files that sit next to a component but are not components themselves
AUXILIARY_MARKERS = (".stories.", ".test.", ".spec.")

IMPORT_PATTERN = re.compile(r"""from\s+['"]@/ui/(\w+)/([\w-]+)(?:/[\w.-]+)?['"]""")


class ArtifactRegistry:
    """Read-only view over the generated artifacts of one run."""

    def __init__(self, artifacts: Iterable[Artifact] = (), import_prefix: str = "@/ui"):
        self._by_name: dict[str, Artifact] = {}
        self.import_prefix = import_prefix
        for artifact in artifacts:
            self._by_name[artifact.name] = artifact

    @classmethod
    def from_directory(cls, artifact_root: str | Path, import_prefix: str = "@/ui") -> "ArtifactRegistry":
        """Scan `<root>/{elements,components,modules,icons}` for component sources.

        Supports both `<kind-dir>/<Name>.tsx` and `<kind-dir>/<Name>/<Name>.tsx`.
        """
        root = Path(artifact_root)
        artifacts: list[Artifact] = []

        for directory, kind in DIRECTORY_KINDS.items():
            kind_path = root / directory
            if not kind_path.is_dir():
                continue

            for entry in sorted(kind_path.iterdir()):
                source = _component_source(entry)
                if source is None:
                    continue
                name = entry.name if entry.is_dir() else _stem(entry.name)
                artifacts.append(
                    Artifact(
                        name=name,
                        kind=kind,
                        path=normalize_path(str(source)),
                        import_path=f"{import_prefix}/{directory}/{name}",
                    )
                )

        registry = cls(artifacts, import_prefix=import_prefix)
        logger.info(
            "registry_built",
            artifact_root=str(root),
            total=len(registry),
            by_kind={kind.value: len(registry.by_kind(kind)) for kind in ArtifactKind},
        )
        return registry

    # ── Queries ──

    def list_artifacts(self) -> list[Artifact]:
        return list(self._by_name.values())

    def find_by_name(self, name: str) -> Optional[Artifact]:
        return self._by_name.get(name)

    def by_kind(self, kind: ArtifactKind) -> list[Artifact]:
        return [a for a in self._by_name.values() if a.kind == kind]

    def owner_of(self, file_path: str) -> Optional[Artifact]:
        """Resolve the artifact owning a file; the most specific owner wins."""
        owners = [a for a in self._by_name.values() if a.owns(file_path)]
        if not owners:
            return None
        return max(owners, key=lambda a: a.ownership_depth())

    def dependencies_of(self, artifact: Artifact, source: str) -> list[Artifact]:
        """Registry artifacts imported by `source` through the `@/ui/...` alias."""
        found: list[Artifact] = []
        for directory, name in IMPORT_PATTERN.findall(source):
            dependency = self._by_name.get(name)
            if dependency is None or dependency.name == artifact.name:
                continue
            if KIND_DIRECTORIES.get(dependency.kind) != directory:
                continue
            if dependency not in found:
                found.append(dependency)
        return found

    def __len__(self) -> int:
        return len(self._by_name)

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self._by_name.values())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


def _stem(filename: str) -> str:
    return filename.split(".", 1)[0]


def _is_auxiliary(filename: str) -> bool:
    return any(marker in filename for marker in AUXILIARY_MARKERS)


def _component_source(entry: Path) -> Optional[Path]:
    """Main source file for a directory entry, or None if it is not a component."""
    if entry.is_file():
        if entry.suffix in SOURCE_SUFFIXES and not _is_auxiliary(entry.name):
            return entry
        return None

    if entry.is_dir():
        for suffix in SOURCE_SUFFIXES:
            candidate = entry / f"{entry.name}{suffix}"
            if candidate.is_file():
                return candidate
        index = [p for p in (entry / f"index{s}" for s in SOURCE_SUFFIXES) if p.is_file()]
        if index:
            return index[0]
    return None


def relative_to_root(path: str, root: str) -> str:
    """Display helper: path relative to the artifact root when possible."""
    try:
        return os.path.relpath(normalize_path(path), normalize_path(root))
    except ValueError:
        return path
