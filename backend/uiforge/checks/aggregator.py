"""Failure aggregation: per-file diagnostics to per-artifact failure records."""

import structlog

from uiforge.artifacts.registry import ArtifactRegistry
from uiforge.checks.models import FailureRecord, IssueRecord, IssuesByFile

logger = structlog.get_logger()


def aggregate(
    type_issues: IssuesByFile,
    lint_issues: IssuesByFile,
    registry: ArtifactRegistry,
) -> dict[str, FailureRecord]:
    """Group diagnostics by owning artifact.

    Type issues come before lint issues within a record. Artifacts with only
    warnings are left out. Diagnostics no artifact owns are dropped. Keys are
    sorted by artifact name so the same input always yields the same map.
    """
    grouped: dict[str, list[IssueRecord]] = {}
    unowned = 0

    for issues_by_file in (type_issues, lint_issues):
        for file_path in sorted(issues_by_file):
            owner = registry.owner_of(file_path)
            if owner is None:
                unowned += len(issues_by_file[file_path])
                continue
            grouped.setdefault(owner.name, []).extend(issues_by_file[file_path])

    failures: dict[str, FailureRecord] = {}
    for name in sorted(grouped):
        issues = grouped[name]
        if not any(issue.is_error for issue in issues):
            continue
        artifact = registry.find_by_name(name)
        failures[name] = FailureRecord(
            artifact_name=artifact.name,
            artifact_path=artifact.path,
            artifact_kind=artifact.kind,
            issues=tuple(issues),
        )

    if unowned:
        logger.debug("unowned_diagnostics_dropped", count=unowned)
    logger.info(
        "failures_aggregated",
        failing_artifacts=len(failures),
        warning_only_artifacts=len(grouped) - len(failures),
    )
    return failures
