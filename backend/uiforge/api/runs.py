"""Runs API: start a validation run, poll its status, fetch its report."""

import uuid
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request

from uiforge.errors import ToolInvocationError
from uiforge.graph.context import build_context
from uiforge.graph.workflow import run_validation
from uiforge.models.requests import CreateRunRequest
from uiforge.models.responses import CreateRunResponse, RunReportResponse, RunStatusResponse
from uiforge.services.rate_limiter import rate_limiter
from uiforge.services.run_store import RunStore
from uiforge.validation.report import ValidationReport, render_markdown

logger = structlog.get_logger()

router = APIRouter()

FINISHED_STATUSES = ("passed", "failed", "error")


def _generate_run_id() -> str:
    return f"run_{uuid.uuid4().hex[:8]}"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get_store(request: Request) -> RunStore:
    return request.app.state.run_store


async def execute_run(run_id: str, body: CreateRunRequest, run_store: RunStore) -> None:
    """Background body of a run. Failures are recorded on the run, never raised."""
    await run_store.update(run_id, {"status": "running"})

    try:
        context = build_context(body.artifact_root, body.project_root, run_id=run_id)
        if body.max_attempts:
            context.max_attempts = body.max_attempts

        outcome = await run_validation(None if body.initial_scan else {}, context, run_id=run_id)
        report = ValidationReport.build(outcome, context.max_attempts)
    except ToolInvocationError as e:
        logger.error("run_tool_failed", run_id=run_id, tool=e.tool, error=str(e))
        await run_store.update(run_id, {"status": "error", "error": str(e), "completed_at": _now()})
        return
    except Exception as e:
        logger.error("run_background_error", run_id=run_id, error=str(e), error_type=type(e).__name__)
        await run_store.update(run_id, {"status": "error", "error": str(e), "completed_at": _now()})
        return

    await run_store.update(run_id, {
        "status": "passed" if outcome.passed else "failed",
        "attempt": outcome.attempt,
        "report": report.model_dump(mode="json"),
        "rendered_markdown": render_markdown(report, context.artifact_root),
        "completed_at": _now(),
    })


@router.post("/runs", status_code=202, response_model=CreateRunResponse)
async def create_run(body: CreateRunRequest, background_tasks: BackgroundTasks, request: Request):
    """Start validating an artifact tree. Progress streams over the WebSocket endpoint."""
    client_ip = request.client.host if request.client else "unknown"
    if not rate_limiter.allow_request(client_ip):
        raise HTTPException(
            status_code=429,
            detail={
                "error": "Rate limit exceeded",
                "message": f"Maximum {rate_limiter.max_tokens} runs per window. Try again later.",
                "remaining": rate_limiter.remaining_tokens(client_ip),
                "retry_after_seconds": int(rate_limiter.reset_time(client_ip)) + 1,
            },
        )

    run_id = _generate_run_id()
    now = datetime.now(timezone.utc)
    run_store = _get_store(request)

    await run_store.create(run_id, {
        "run_id": run_id,
        "status": "queued",
        "artifact_root": body.artifact_root,
        "project_root": body.project_root,
        "client_ip": client_ip,
        "created_at": now.isoformat(),
        "completed_at": None,
    })

    background_tasks.add_task(execute_run, run_id, body, run_store)

    logger.info("run_queued", run_id=run_id, artifact_root=body.artifact_root, client_ip=client_ip)

    return CreateRunResponse(
        run_id=run_id,
        status="queued",
        created_at=now,
        websocket_url=f"/ws/runs/{run_id}",
    )


def _status_response(run: dict) -> RunStatusResponse:
    return RunStatusResponse(
        run_id=run["run_id"],
        status=run.get("status", "queued"),
        artifact_root=run.get("artifact_root", ""),
        attempt=run.get("attempt"),
        error=run.get("error"),
        report=run.get("report"),
        created_at=run.get("created_at") or _now(),
        completed_at=run.get("completed_at"),
    )


@router.get("/runs/{run_id}", response_model=RunStatusResponse)
async def get_run(run_id: str, request: Request):
    run = await _get_store(request).get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")
    return _status_response(run)


@router.get("/runs/{run_id}/report", response_model=RunReportResponse)
async def get_run_report(run_id: str, request: Request):
    """Rendered markdown report of a finished run."""
    run = await _get_store(request).get(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Run {run_id} not found")

    if run.get("status") not in ("passed", "failed"):
        raise HTTPException(
            status_code=409,
            detail=f"Run has no report. Current status: {run.get('status')}",
        )

    return RunReportResponse(
        run_id=run_id,
        passed=run["status"] == "passed",
        document=run.get("rendered_markdown") or "# No report generated",
    )


@router.get("/runs", response_model=list[RunStatusResponse])
async def list_runs(request: Request, limit: int = Query(default=20, ge=1, le=100)):
    run_store = _get_store(request)
    runs = []
    for run_id in await run_store.list_recent(limit):
        run = await run_store.get(run_id)
        if run is not None:
            runs.append(_status_response(run))
    return runs
