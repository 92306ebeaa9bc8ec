"""Domain models for day-to-day spa operations."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from uuid import UUID


class TherapistStatus(StrEnum):
    """Lifecycle of a therapist during the business day."""

    INACTIVE = "inactive"
    AVAILABLE = "available"
    IN_SESSION = "in-session"
    DEPARTED = "departed"


class ServiceCategory(StrEnum):
    """Service categories; Double and Couple need two therapists."""

    SINGLE = "Single"
    DOUBLE = "Double"
    COUPLE = "Couple"

    @property
    def therapist_count(self) -> int:
        return 1 if self is ServiceCategory.SINGLE else 2


class RoomType(StrEnum):
    """Room types a service can be booked into."""

    SHOWER = "Shower"
    VIP_JACUZZI = "VIP Jacuzzi"
    DOUBLE_BED_SHOWER = "Double Bed Shower (large)"
    SINGLE_BED_SHOWER = "Single Bed Shower (large)"


class RoomStatus(StrEnum):
    """Availability of a room."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"


class SessionStatus(StrEnum):
    """Lifecycle of a booked session."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    @property
    def is_active(self) -> bool:
        return self in {SessionStatus.SCHEDULED, SessionStatus.IN_PROGRESS}

    @property
    def is_billable(self) -> bool:
        return self not in {SessionStatus.CANCELLED, SessionStatus.NO_SHOW}


class WalkOutReason(StrEnum):
    """Why a prospective customer left without a session."""

    NO_ROOMS = "No Rooms"
    NO_LADIES = "No Ladies"
    PRICE_TOO_HIGH = "Price Too High"
    CLIENT_TOO_PICKY = "Client Too Picky"
    CHINESE = "Chinese"
    LAOWAI = "Laowai"


class ExpenseType(StrEnum):
    """Shop items a therapist can buy during the day."""

    CONDOM_12 = "Condom 12"
    CONDOM_24 = "Condom 24"
    CONDOM_36 = "Condom 36"
    CONDOM_48 = "Condom 48"
    LUBE = "Lube"
    TOWEL = "Towel"
    OTHER = "Other"


@dataclass(frozen=True)
class Expense:
    """A purchase deducted from a therapist's payout."""

    id: UUID
    therapist_id: UUID
    amount: float
    type: ExpenseType
    description: str = ""
    created_at: datetime | None = None


@dataclass(frozen=True)
class Therapist:
    """A therapist in the master list or today's roster."""

    id: UUID
    name: str
    status: TherapistStatus = TherapistStatus.INACTIVE
    total_earnings: float = 0.0
    total_sessions: int = 0
    expenses: tuple[Expense, ...] = ()
    check_in_time: datetime | None = None
    departure_time: datetime | None = None
    current_session_id: UUID | None = None

    @property
    def total_expenses(self) -> float:
        return sum(expense.amount for expense in self.expenses)

    @property
    def net_payout(self) -> float:
        return self.total_earnings - self.total_expenses


@dataclass(frozen=True)
class Service:
    """A priced catalog entry."""

    id: UUID
    name: str
    category: ServiceCategory
    room_type: RoomType
    duration: int
    price: float
    lady_payout: float
    shop_revenue: float
    description: str = ""


@dataclass(frozen=True)
class Room:
    """A bookable room."""

    id: UUID
    name: str
    type: RoomType
    status: RoomStatus = RoomStatus.AVAILABLE
    current_session_id: UUID | None = None


@dataclass(frozen=True)
class Session:
    """A service engagement between therapists, a room and a customer."""

    id: UUID
    therapist_ids: tuple[UUID, ...]
    service: Service
    room_id: UUID
    status: SessionStatus = SessionStatus.SCHEDULED
    discount: float = 0.0
    total_price: float = 0.0
    start_time: datetime | None = None
    end_time: datetime | None = None
    prep_start_time: datetime | None = None
    session_start_time: datetime | None = None
    is_in_prep_phase: bool = False
    actual_end_time: datetime | None = None
    actual_duration: int | None = None


@dataclass(frozen=True)
class WalkOut:
    """A prospective session that did not convert."""

    id: UUID
    reason: WalkOutReason
    timestamp: datetime
    count: int | None = None
    service: Service | None = None
    therapist_ids: tuple[UUID, ...] = ()
    total_amount: float = 0.0
    session_id: UUID | None = None


@dataclass(frozen=True)
class RosterEntry:
    """A therapist's presence on one day's roster."""

    therapist_id: UUID
    day: date
    status: TherapistStatus = TherapistStatus.INACTIVE
    total_earnings: float = 0.0
    total_sessions: int = 0
    current_session_id: UUID | None = None


@dataclass(frozen=True)
class AttendanceRecord:
    """Local record of one therapist's check-in and departure for a day."""

    therapist_id: UUID
    name: str
    day: date
    check_in_time: datetime
    departure_time: datetime | None = None
    working_minutes: int | None = None
