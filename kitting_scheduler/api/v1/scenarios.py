"""What-if scenario API endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from kitting_scheduler.core.database import get_db
from kitting_scheduler.core.events import (
    SCENARIO_ACTIVATED,
    SCENARIO_CHANGED,
    SCENARIO_COMMITTED,
    SCENARIO_CREATED,
    SCENARIO_DISCARDED,
    EventBus,
    get_event_bus,
)
from kitting_scheduler.models.scenario import Scenario, ScenarioChange
from kitting_scheduler.schemas.scenario import (
    CommitResult,
    OverlayResponse,
    ScenarioChangeCreate,
    ScenarioChangeResponse,
    ScenarioCreate,
    ScenarioResponse,
)
from kitting_scheduler.services.job_durations import JobDurationError
from kitting_scheduler.services.scenario_engine import (
    ScenarioCommitError,
    ScenarioError,
    scenario_only,
)
from kitting_scheduler.services.scenario_service import ScenarioService

router = APIRouter(prefix="/scenarios", tags=["scenarios"])


def _http_error(exc: ScenarioError) -> HTTPException:
    # Anything other than a failed commit is a missing scenario or job.
    if isinstance(exc, ScenarioCommitError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=404, detail=str(exc))


@router.get("", response_model=list[ScenarioResponse])
async def list_scenarios(db: AsyncSession = Depends(get_db)) -> list[Scenario]:
    return await ScenarioService(db).list_scenarios()


@router.post("", response_model=ScenarioResponse, status_code=status.HTTP_201_CREATED)
async def create_scenario(
    payload: ScenarioCreate,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> Scenario:
    try:
        scenario = await ScenarioService(db).create_scenario(
            payload.name, payload.description, payload.seed_job_id
        )
    except ScenarioError as exc:
        raise _http_error(exc)
    await events.publish_committed(db, SCENARIO_CREATED, {"scenario_id": str(scenario.id), "name": scenario.name})
    return scenario


@router.get("/active", response_model=ScenarioResponse | None)
async def get_active_scenario(db: AsyncSession = Depends(get_db)) -> Scenario | None:
    """The scenario currently in what-if mode, or null for production mode."""
    return await ScenarioService(db).get_active()


@router.post("/deactivate", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_scenarios(
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> None:
    """Leave what-if mode."""
    await ScenarioService(db).deactivate_all()
    await events.publish_committed(db, SCENARIO_ACTIVATED, {"scenario_id": None})


@router.get("/{scenario_id}", response_model=ScenarioResponse)
async def get_scenario(
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> Scenario:
    try:
        return await ScenarioService(db).get_scenario(scenario_id)
    except ScenarioError as exc:
        raise _http_error(exc)


@router.patch("/{scenario_id}/activate", response_model=ScenarioResponse)
async def activate_scenario(
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> Scenario:
    """Enter what-if mode on this scenario; any other active scenario is deactivated."""
    try:
        scenario = await ScenarioService(db).activate_scenario(scenario_id)
    except ScenarioError as exc:
        raise _http_error(exc)
    await events.publish_committed(db, SCENARIO_ACTIVATED, {"scenario_id": str(scenario.id)})
    return scenario


@router.post(
    "/{scenario_id}/changes",
    response_model=ScenarioChangeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_scenario_change(
    scenario_id: uuid.UUID,
    payload: ScenarioChangeCreate,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> ScenarioChange:
    """Record an ADD, MODIFY or DELETE. Repeated MODIFYs of one job merge."""
    try:
        change = await ScenarioService(db).add_change(
            scenario_id,
            payload.operation,
            payload.job_id,
            payload.change_data,
            payload.original_data,
        )
    except ScenarioError as exc:
        raise _http_error(exc)
    await events.publish_committed(
        db,
        SCENARIO_CHANGED,
        {
            "scenario_id": str(scenario_id),
            "change_id": str(change.id),
            "operation": change.operation,
            "job_id": str(change.job_id) if change.job_id else None,
        },
    )
    return change


@router.get("/{scenario_id}/overlay", response_model=OverlayResponse)
async def get_scenario_overlay(
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
) -> OverlayResponse:
    """The job set as it would look with this scenario applied."""
    try:
        scenario, overlay = await ScenarioService(db).get_overlay(scenario_id)
    except ScenarioError as exc:
        raise _http_error(exc)
    except JobDurationError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return OverlayResponse(
        scenario_id=scenario.id,
        scenario_name=scenario.name,
        jobs=[item.to_dict() for item in overlay],
        changed_jobs=len(scenario_only(overlay)),
    )


@router.post("/{scenario_id}/commit", response_model=CommitResult)
async def commit_scenario(
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> CommitResult:
    """Apply all changes to production in one transaction and remove the scenario."""
    try:
        counts = await ScenarioService(db).commit_scenario(scenario_id)
    except ScenarioError as exc:
        raise _http_error(exc)
    await events.publish_committed(db, SCENARIO_COMMITTED, {"scenario_id": str(scenario_id), **counts})
    return CommitResult(scenario_id=scenario_id, **counts)


@router.delete("/{scenario_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_scenario(
    scenario_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    events: EventBus = Depends(get_event_bus),
) -> None:
    """Throw a scenario away; production is unaffected."""
    try:
        await ScenarioService(db).discard_scenario(scenario_id)
    except ScenarioError as exc:
        raise _http_error(exc)
    await events.publish_committed(db, SCENARIO_DISCARDED, {"scenario_id": str(scenario_id)})
