"""Pydantic request bodies and JSON views of domain objects."""

from datetime import datetime
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from spa_operations.domain.models import (
    ExpenseType,
    Session,
    Therapist,
    TherapistStatus,
    WalkOutReason,
)
from spa_operations.domain.state import AppState, Phase
from spa_operations.domain.stats import ClosingStats, TherapistSummary, WorkingHours
from spa_operations.services.sessions import CompletionSummary


class PhaseChange(BaseModel):
    """Requested dashboard phase."""

    phase: Phase


class ExpenseCreate(BaseModel):
    """Expense charged to a roster therapist."""

    type: ExpenseType
    amount: float = Field(gt=0)
    description: str = ""


class StatusChange(BaseModel):
    status: TherapistStatus


class StatsCorrection(BaseModel):
    earnings: float = Field(ge=0)
    sessions: int = Field(ge=0)


class BookingCreate(BaseModel):
    """A new session picked at the front desk."""

    service_id: UUID
    therapist_ids: list[UUID] = Field(min_length=1)
    room_id: UUID
    discount: float = 0.0


class ManualSessionCreate(BookingCreate):
    """A session that already happened and is entered after the fact."""

    start_time: datetime
    end_time: datetime | None = None


class SessionUpdate(BaseModel):
    discount: float | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None


class CancelRequest(BaseModel):
    no_show: bool = False


class WalkOutCreate(BaseModel):
    """A customer (or group) that left without a session."""

    reason: WalkOutReason
    count: int | None = Field(default=None, ge=1)
    service_id: UUID | None = None
    therapist_ids: list[UUID] = Field(default_factory=list)
    total_amount: float | None = Field(default=None, ge=0)


class UndoRequest(BaseModel):
    confirmed: bool = False


class ConnectivityChange(BaseModel):
    online: bool


def _hours(worked: WorkingHours | None) -> dict[str, object] | None:
    if worked is None:
        return None
    return {
        "hours": worked.hours,
        "minutes": worked.minutes,
        "total_minutes": worked.total_minutes,
        "formatted": worked.formatted,
    }


def therapist_view(therapist: Therapist) -> dict[str, object]:
    """Therapist fields plus the derived expense and payout totals."""
    view = jsonable_encoder(therapist)
    view["total_expenses"] = therapist.total_expenses
    view["net_payout"] = therapist.net_payout
    return view


def session_view(session: Session) -> dict[str, object]:
    return jsonable_encoder(session)


def summary_view(summary: TherapistSummary) -> dict[str, object]:
    view = jsonable_encoder(summary)
    view["working_hours"] = _hours(summary.working_hours)
    return view


def closing_view(closing: ClosingStats) -> dict[str, object]:
    view = jsonable_encoder(closing)
    view["therapists"] = [summary_view(item) for item in closing.therapists]
    return view


def completion_view(summary: CompletionSummary) -> dict[str, object]:
    return {
        "session": session_view(summary.session),
        "actual_duration": summary.actual_duration,
        "early": summary.early,
        "already_completed": summary.already_completed,
    }


def state_view(state: AppState) -> dict[str, object]:
    """The day state without undo snapshots."""
    top = state.undo_stack[-1] if state.undo_stack else None
    return {
        "phase": state.phase.value,
        "therapists": [therapist_view(t) for t in state.therapists],
        "roster": [therapist_view(t) for t in state.roster],
        "rooms": jsonable_encoder(state.rooms),
        "services": jsonable_encoder(state.services),
        "sessions": [session_view(s) for s in state.sessions],
        "walk_outs": jsonable_encoder(state.walk_outs),
        "history": jsonable_encoder(state.history),
        "undo": {
            "available": top is not None,
            "depth": len(state.undo_stack),
            "description": top.description if top else None,
            "modifies_database": top.modifies_database if top else False,
        },
    }
