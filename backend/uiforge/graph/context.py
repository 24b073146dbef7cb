"""Per-run collaborators handed to the graph nodes through the runnable config."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from uiforge.agents.quality_agent import QualityReviewAgent
from uiforge.agents.repair_agent import RepairAgent
from uiforge.agents.search_help import SearchHelpAgent
from uiforge.artifacts.registry import ArtifactRegistry
from uiforge.checks.runner import CheckRunner
from uiforge.config import Settings, get_settings
from uiforge.services.event_bus import event_bus
from uiforge.validation.coordinator import RepairCoordinator
from uiforge.validation.quality_pass import QualityPass, QualityScope

logger = structlog.get_logger()


@dataclass
class ValidationContext:
    artifact_root: str
    registry: ArtifactRegistry
    check_runner: CheckRunner
    coordinator: RepairCoordinator
    quality_pass: Optional[QualityPass]
    max_attempts: int = 3
    quality_scope: QualityScope = QualityScope.FAILING_ON_RETRY


def build_context(
    artifact_root: str | Path,
    project_root: Optional[str | Path] = None,
    settings: Optional[Settings] = None,
    run_id: Optional[str] = None,
) -> ValidationContext:
    """Wire the registry, checkers and LLM agents for one run.

    `project_root` (where tsconfig and the eslint config live) defaults to the
    parent of the artifact root.
    """
    settings = settings or get_settings()
    artifact_root = Path(artifact_root).resolve()
    project_root = Path(project_root).resolve() if project_root else artifact_root.parent
    callback = event_bus.create_callback(run_id) if run_id else None

    registry = ArtifactRegistry.from_directory(artifact_root)
    check_runner = CheckRunner(project_root, artifact_root)

    coordinator = RepairCoordinator(
        registry,
        check_runner,
        RepairAgent(registry, event_callback=callback),
        help_search=SearchHelpAgent(event_callback=callback),
        max_turns=settings.REPAIR_MAX_TURNS,
        stuck_threshold=settings.STUCK_THRESHOLD,
        concurrency=settings.REPAIR_CONCURRENCY,
    )
    quality_pass = QualityPass(
        QualityReviewAgent(registry, event_callback=callback),
        check_runner,
        max_turns=settings.QUALITY_MAX_TURNS,
    )

    logger.info(
        "validation_context_built",
        artifact_root=str(artifact_root),
        project_root=str(project_root),
        artifacts=len(registry),
    )
    return ValidationContext(
        artifact_root=str(artifact_root),
        registry=registry,
        check_runner=check_runner,
        coordinator=coordinator,
        quality_pass=quality_pass,
        max_attempts=settings.MAX_VALIDATION_ATTEMPTS,
        quality_scope=QualityScope(settings.QUALITY_RETRY_SCOPE),
    )
