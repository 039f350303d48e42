"""Automations API Endpoints"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from automation_engine.api.dependencies import require_invocation_token
from automation_engine.api.middleware import cors_headers
from automation_engine.core.database import get_db
from automation_engine.core.logging_config import get_logger
from automation_engine.schemas.automation import parse_schedule_config
from automation_engine.schemas.invocation import (
    NothingToProcessResponse,
    ProcessAutomationsRequest,
    ProcessAutomationsResponse,
    SchedulePreviewRequest,
    SchedulePreviewResponse,
)
from automation_engine.services.action_dispatcher import ActionDispatcher
from automation_engine.services.automation_store import AutomationStore
from automation_engine.services.calendar_resolver import (
    describe_schedule,
    effective_timezone_name,
    preview_fire_instants,
)
from automation_engine.services.mail_transport import SMTPMailTransport
from automation_engine.services.run_orchestrator import (
    Invocation,
    ManualInvocation,
    RunOrchestrator,
    ScheduledInvocation,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/automations", tags=["automations"])


def get_mail_transport() -> SMTPMailTransport:
    return SMTPMailTransport()


async def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    mail_transport: SMTPMailTransport = Depends(get_mail_transport)
) -> RunOrchestrator:
    store = AutomationStore(db)
    return RunOrchestrator(store, ActionDispatcher(store, mail_transport))


async def read_invocation(request: Request) -> Invocation:
    """
    Decide the processing mode from the raw request body.

    An empty body, a body that is not a JSON object or one without an
    automation_id all mean a scheduled sweep.
    """
    raw = await request.body()
    if not raw.strip():
        return ScheduledInvocation()

    try:
        body = ProcessAutomationsRequest.model_validate_json(raw)
    except ValidationError:
        logger.debug("invocation_body_ignored", body_length=len(raw))
        return ScheduledInvocation()

    if body.automation_id:
        return ManualInvocation(automation_id=body.automation_id)
    return ScheduledInvocation()


@router.options("/process", status_code=status.HTTP_204_NO_CONTENT)
async def process_automations_preflight() -> Response:
    """CORS preflight for callers that reach the endpoint directly"""
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=cors_headers(preflight=True))


@router.post(
    "/process",
    responses={
        200: {"model": ProcessAutomationsResponse},
        401: {"description": "Missing or invalid bearer token"},
        500: {"description": "Automations could not be queried"},
    }
)
async def process_automations(
    request: Request,
    token: Dict[str, Any] = Depends(require_invocation_token),
    orchestrator: RunOrchestrator = Depends(get_orchestrator)
) -> JSONResponse:
    """
    Process due automations.

    - Empty body: every active automation whose next_run_at has passed
    - `{"automation_id": "..."}`: that one automation, even if paused

    Returns `{processed, failed, total}`, or `{processed: 0, message}` when
    nothing was due or the automation does not exist.
    """
    invocation = await read_invocation(request)

    logger.info(
        "automation_invocation_received",
        mode=invocation.mode,
        automation_id=getattr(invocation, "automation_id", None),
        caller=token.get("sub")
    )

    summary = await orchestrator.process_due_automations(invocation)

    if summary.message is not None:
        content = NothingToProcessResponse(message=summary.message).model_dump()
    else:
        content = ProcessAutomationsResponse(
            processed=summary.processed,
            failed=summary.failed,
            total=summary.total
        ).model_dump()

    return JSONResponse(status_code=status.HTTP_200_OK, content=content, headers=cors_headers())


@router.post("/schedule-preview", response_model=SchedulePreviewResponse)
async def preview_schedule(request: SchedulePreviewRequest) -> SchedulePreviewResponse:
    """
    Preview the next fire instants of a schedule.

    Uses the same resolver as the execution engine, so the preview always
    matches what will actually run. Unknown timezones are reported as UTC.
    """
    spec, _ = parse_schedule_config(request.trigger_config)
    now = request.now or datetime.now(timezone.utc)

    return SchedulePreviewResponse(
        timezone=effective_timezone_name(spec.timezone),
        description=describe_schedule(spec),
        next_runs=preview_fire_instants(spec, request.count, now)
    )
