"""Live statistics, closing reports and attendance read-outs."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.encoders import jsonable_encoder

from spa_operations.api.auth import get_container, require_dashboard
from spa_operations.api.schemas import closing_view
from spa_operations.containers import AppContainer

router = APIRouter(
    prefix="/api", tags=["reports"], dependencies=[Depends(require_dashboard)]
)


@router.get("/stats")
def dashboard_stats(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Totals for the live dashboard header."""
    return jsonable_encoder(container.stats_service.dashboard())


@router.get("/stats/closing")
def closing_report(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    return closing_view(container.stats_service.closing())


@router.get("/stats/monthly")
def monthly_report(
    year: int | None = None,
    month: int | None = Query(default=None, ge=1, le=12),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Per-day closing rows for a month; defaults to the current month."""
    today = container.stats_service.today()
    if (year is None) != (month is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Pass both year and month, or neither",
        )
    summary = container.stats_service.get_month(
        year or today.year, month or today.month
    )
    return jsonable_encoder(summary)


@router.get("/attendance")
def attendance_records(
    day: date | None = None, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    """Check-in and departure records kept for ``day`` (default today)."""
    records = container.attendance_service.records(day)
    return {"records": jsonable_encoder(records)}


@router.get("/attendance/hours")
def working_hours(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    hours = container.attendance_service.working_hours()
    return {
        "hours": {
            str(therapist_id): {
                "total_minutes": worked.total_minutes,
                "formatted": worked.formatted,
            }
            for therapist_id, worked in hours.items()
        }
    }
