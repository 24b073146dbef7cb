"""Structural checks for generated UI artifacts.

Usage:
    from uiforge.checks import CheckRunner, aggregate

    report = await runner.run_checks(registry.list_artifacts())
    failures = aggregate(report.type_issues, report.lint_issues, registry)
"""

from uiforge.checks.aggregator import aggregate
from uiforge.checks.models import CheckReport, FailureRecord, IssueRecord, Severity, SourceCheck
from uiforge.checks.runner import CheckRunner

__all__ = [
    "CheckRunner",
    "aggregate",
    "CheckReport",
    "FailureRecord",
    "IssueRecord",
    "Severity",
    "SourceCheck",
]
