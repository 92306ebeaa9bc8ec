"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from spa_operations.config import Settings
from spa_operations.containers import AppContainer
from spa_operations.domain.models import (
    Expense,
    Room,
    RoomType,
    RosterEntry,
    Service,
    ServiceCategory,
    Session,
    Therapist,
    WalkOut,
)
from spa_operations.domain.stats import DailyStats
from spa_operations.services.attendance import AttendanceService
from spa_operations.services.day import DayService
from spa_operations.services.errors import ErrorHandler, NotificationCenter
from spa_operations.services.local_store import InMemoryLocalStore
from spa_operations.services.outbox import Outbox, RemoteIntent, SyncWorker, TableWriter
from spa_operations.services.receipts import ReceiptService
from spa_operations.services.rooms import RoomRepository, RoomService
from spa_operations.services.roster import (
    ExpenseRepository,
    RosterRepository,
    RosterService,
    ServiceRepository,
    TherapistRepository,
)
from spa_operations.services.sessions import SessionRepository, SessionService
from spa_operations.services.stats import DailyStatsRepository, StatsService
from spa_operations.services.store import Store
from spa_operations.services.timers import AttendanceTracker
from spa_operations.services.walkouts import WalkOutRepository, WalkOutService

# 10:00 in Bangkok
START = datetime(2026, 3, 10, 3, 0, tzinfo=UTC)
TODAY = date(2026, 3, 10)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def make_service(  # noqa: PLR0913
    name: str = "Thai Massage 60",
    *,
    category: ServiceCategory = ServiceCategory.SINGLE,
    room_type: RoomType = RoomType.SHOWER,
    duration: int = 60,
    price: float = 1000.0,
    lady_payout: float = 400.0,
    shop_revenue: float = 600.0,
) -> Service:
    return Service(
        id=uuid4(),
        name=name,
        category=category,
        room_type=room_type,
        duration=duration,
        price=price,
        lady_payout=lady_payout,
        shop_revenue=shop_revenue,
    )


def make_session(
    service: Service, *, discount: float = 0.0, **kwargs: object
) -> Session:
    kwargs.setdefault("therapist_ids", (uuid4(),))
    kwargs.setdefault("room_id", uuid4())
    return Session(
        id=uuid4(),
        service=service,
        discount=discount,
        total_price=max(0.0, service.price - discount),
        **kwargs,
    )


@dataclass
class _Switch:
    """Makes a fake repository raise while ``failing`` is set."""

    failing: bool = False

    def check(self) -> None:
        if self.failing:
            raise ConnectionError("database unreachable")


@dataclass
class InMemoryTherapistRepository(_Switch, TherapistRepository):
    therapists: list[Therapist] = field(default_factory=list)

    def list_therapists(self) -> list[Therapist]:
        self.check()
        return sorted(self.therapists, key=lambda t: t.name)


@dataclass
class InMemoryServiceRepository(_Switch, ServiceRepository):
    services: list[Service] = field(default_factory=list)

    def list_services(self) -> list[Service]:
        self.check()
        return list(self.services)


@dataclass
class InMemoryRoomRepository(_Switch, RoomRepository):
    rooms: list[Room] = field(default_factory=list)

    def list_rooms(self) -> list[Room]:
        self.check()
        return sorted(self.rooms, key=lambda room: room.name)


@dataclass
class InMemoryRosterRepository(_Switch, RosterRepository):
    entries: list[RosterEntry] = field(default_factory=list)

    def list_roster(self, day: date) -> list[RosterEntry]:
        self.check()
        return [entry for entry in self.entries if entry.day == day]


@dataclass
class InMemoryExpenseRepository(_Switch, ExpenseRepository):
    expenses: list[Expense] = field(default_factory=list)

    def list_expenses(self, day: date) -> list[Expense]:
        self.check()
        return [
            e for e in self.expenses if e.created_at and e.created_at.date() == day
        ]


@dataclass
class InMemorySessionRepository(_Switch, SessionRepository):
    sessions: list[Session] = field(default_factory=list)

    def list_sessions(
        self, start: datetime, end: datetime, services: dict[UUID, Service]
    ) -> list[Session]:
        self.check()
        return [
            s
            for s in self.sessions
            if s.start_time is not None and start <= s.start_time < end
        ]


@dataclass
class InMemoryWalkOutRepository(_Switch, WalkOutRepository):
    walk_outs: list[WalkOut] = field(default_factory=list)

    def list_walk_outs(
        self, start: datetime, end: datetime, services: dict[UUID, Service]
    ) -> list[WalkOut]:
        self.check()
        return [w for w in self.walk_outs if start <= w.timestamp < end]


@dataclass
class InMemoryDailyStatsRepository(DailyStatsRepository):
    rows: dict[date, DailyStats] = field(default_factory=dict)

    def add(self, stats: DailyStats) -> None:
        self.rows[stats.day] = stats

    def list_between(self, start: date, end: date) -> list[DailyStats]:
        return [self.rows[day] for day in sorted(self.rows) if start <= day <= end]


@dataclass
class RecordingTableWriter(TableWriter):
    """Table writer that records applied intents and can be switched off."""

    applied: list[RemoteIntent] = field(default_factory=list)
    failing: bool = False

    def apply(self, intent: RemoteIntent) -> None:
        if self.failing:
            raise ConnectionError("database unreachable")
        self.applied.append(intent)

    def tables(self) -> list[tuple[str, str]]:
        return [(intent.table, intent.operation.value) for intent in self.applied]


@dataclass
class FakePrintNodeClient:
    jobs: list[tuple[str, str, int]] = field(default_factory=list)

    async def submit_job(self, title: str, content: str, copies: int = 1) -> int:
        self.jobs.append((title, content, copies))
        return len(self.jobs)


@pytest.fixture
def settings(tmp_path) -> Settings:  # type: ignore[no-untyped-def]
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="test.service.key",
        dashboard_token="dashboard-token",
        local_store_path=str(tmp_path / "local-store.json"),
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> Store:
    return Store(clock=clock)


@pytest.fixture
def local_store() -> InMemoryLocalStore:
    return InMemoryLocalStore()


@pytest.fixture
def writer() -> RecordingTableWriter:
    return RecordingTableWriter()


@pytest.fixture
def outbox(writer: RecordingTableWriter, local_store: InMemoryLocalStore) -> Outbox:
    return Outbox(writer, local_store)


@pytest.fixture
def single_service() -> Service:
    return make_service()


@pytest.fixture
def double_service() -> Service:
    return make_service(
        "Four Hands 90",
        category=ServiceCategory.DOUBLE,
        room_type=RoomType.VIP_JACUZZI,
        duration=90,
        price=2400.0,
        lady_payout=1000.0,
        shop_revenue=1400.0,
    )


@pytest.fixture
def therapist_repository() -> InMemoryTherapistRepository:
    return InMemoryTherapistRepository(
        therapists=[
            Therapist(id=uuid4(), name="Bee"),
            Therapist(id=uuid4(), name="Am"),
            Therapist(id=uuid4(), name="Cherry"),
        ]
    )


@pytest.fixture
def service_repository(
    single_service: Service, double_service: Service
) -> InMemoryServiceRepository:
    return InMemoryServiceRepository(services=[single_service, double_service])


@pytest.fixture
def room_repository() -> InMemoryRoomRepository:
    return InMemoryRoomRepository(
        rooms=[
            Room(id=uuid4(), name="Room 2", type=RoomType.SHOWER),
            Room(id=uuid4(), name="Room 1", type=RoomType.SHOWER),
            Room(id=uuid4(), name="VIP 1", type=RoomType.VIP_JACUZZI),
        ]
    )


@pytest.fixture
def roster_service(  # noqa: PLR0913
    therapist_repository: InMemoryTherapistRepository,
    service_repository: InMemoryServiceRepository,
    store: Store,
    outbox: Outbox,
    local_store: InMemoryLocalStore,
) -> RosterService:
    return RosterService(
        therapist_repository=therapist_repository,
        service_repository=service_repository,
        roster_repository=InMemoryRosterRepository(),
        expense_repository=InMemoryExpenseRepository(),
        store=store,
        outbox=outbox,
        local_store=local_store,
    )


@pytest.fixture
def room_service(
    room_repository: InMemoryRoomRepository,
    store: Store,
    outbox: Outbox,
    local_store: InMemoryLocalStore,
) -> RoomService:
    return RoomService(
        repository=room_repository,
        store=store,
        outbox=outbox,
        local_store=local_store,
    )


@pytest.fixture
def attendance_service(
    store: Store,
    roster_service: RosterService,
    outbox: Outbox,
    local_store: InMemoryLocalStore,
) -> AttendanceService:
    return AttendanceService(
        store=store,
        roster_service=roster_service,
        outbox=outbox,
        local_store=local_store,
    )


@pytest.fixture
def session_service(  # noqa: PLR0913
    store: Store,
    outbox: Outbox,
    local_store: InMemoryLocalStore,
    roster_service: RosterService,
    room_service: RoomService,
) -> SessionService:
    return SessionService(
        repository=InMemorySessionRepository(),
        store=store,
        outbox=outbox,
        local_store=local_store,
        roster_service=roster_service,
        room_service=room_service,
    )


@pytest.fixture
def walk_out_service(
    store: Store, outbox: Outbox, local_store: InMemoryLocalStore
) -> WalkOutService:
    return WalkOutService(
        repository=InMemoryWalkOutRepository(),
        store=store,
        outbox=outbox,
        local_store=local_store,
    )


@pytest.fixture
def stats_service(store: Store, outbox: Outbox, clock: FakeClock) -> StatsService:
    return StatsService(
        repository=InMemoryDailyStatsRepository(),
        store=store,
        outbox=outbox,
        clock=clock,
    )


@pytest.fixture
def loaded(
    roster_service: RosterService, room_service: RoomService, store: Store
) -> Store:
    """Store with therapists, services and rooms loaded."""
    roster_service.load_reference_data()
    room_service.list_rooms()
    return store


@pytest.fixture
def on_duty(
    loaded: Store,
    roster_service: RosterService,
    attendance_service: AttendanceService,
) -> list[Therapist]:
    """Every therapist rostered and checked in, ordered by name."""
    for therapist in loaded.state.therapists:
        roster_service.add_to_roster(therapist.id)
        attendance_service.check_in(therapist.id)
    return list(loaded.state.roster)


def room_named(store: Store, name: str) -> Room:
    return next(room for room in store.state.rooms if room.name == name)


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    store: Store,
    outbox: Outbox,
    roster_service: RosterService,
    room_service: RoomService,
    attendance_service: AttendanceService,
    session_service: SessionService,
    walk_out_service: WalkOutService,
    stats_service: StatsService,
) -> AppContainer:
    notifications = NotificationCenter()
    error_handler = ErrorHandler(notifications)
    receipt_service = ReceiptService(store=store, client=FakePrintNodeClient())
    day_service = DayService(
        store=store,
        roster_service=roster_service,
        room_service=room_service,
        session_service=session_service,
        walk_out_service=walk_out_service,
        stats_service=stats_service,
    )
    attendance_tracker = AttendanceTracker(
        store,
        session_service.complete_session,
        on_error=error_handler.guard("Attendance sweep"),
        clock=store.now,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        store=store,
        outbox=outbox,
        sync_worker=SyncWorker(outbox, clock=store.now),
        notifications=notifications,
        error_handler=error_handler,
        roster_service=roster_service,
        room_service=room_service,
        attendance_service=attendance_service,
        session_service=session_service,
        walk_out_service=walk_out_service,
        stats_service=stats_service,
        receipt_service=receipt_service,
        day_service=day_service,
        attendance_tracker=attendance_tracker,
        periodic_tasks=[],
        close_resources=close_resources,
    )
