"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from spa_operations.adapters.printnode_client import HttpxPrintNodeClient
from spa_operations.adapters.supabase_daily_stats_repository import (
    SupabaseDailyStatsRepository,
)
from spa_operations.adapters.supabase_expense_repository import (
    SupabaseExpenseRepository,
)
from spa_operations.adapters.supabase_room_repository import SupabaseRoomRepository
from spa_operations.adapters.supabase_roster_repository import (
    SupabaseRosterRepository,
)
from spa_operations.adapters.supabase_service_repository import (
    SupabaseServiceRepository,
)
from spa_operations.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from spa_operations.adapters.supabase_table_writer import SupabaseTableWriter
from spa_operations.adapters.supabase_therapist_repository import (
    SupabaseTherapistRepository,
)
from spa_operations.adapters.supabase_walk_out_repository import (
    SupabaseWalkOutRepository,
)
from spa_operations.config import Settings
from spa_operations.services.attendance import AttendanceService
from spa_operations.services.day import DayService
from spa_operations.services.errors import ErrorHandler, NotificationCenter
from spa_operations.services.local_store import JsonFileStore
from spa_operations.services.outbox import Outbox, SyncWorker
from spa_operations.services.receipts import ReceiptService
from spa_operations.services.retry import RetryPolicy
from spa_operations.services.rooms import RoomService
from spa_operations.services.roster import RosterService
from spa_operations.services.sessions import SessionService
from spa_operations.services.stats import StatsService
from spa_operations.services.store import Store
from spa_operations.services.timers import AttendanceTracker, PeriodicTask
from spa_operations.services.walkouts import WalkOutService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: Store
    outbox: Outbox
    sync_worker: SyncWorker
    notifications: NotificationCenter
    error_handler: ErrorHandler
    roster_service: RosterService
    room_service: RoomService
    attendance_service: AttendanceService
    session_service: SessionService
    walk_out_service: WalkOutService
    stats_service: StatsService
    receipt_service: ReceiptService
    day_service: DayService
    attendance_tracker: AttendanceTracker
    periodic_tasks: list[PeriodicTask]
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    timezone_name = resolved_settings.timezone
    retry_policy = RetryPolicy(
        max_attempts=resolved_settings.retry_max_attempts,
        initial_delay=resolved_settings.retry_initial_delay,
        max_delay=resolved_settings.retry_max_delay,
    )
    store = Store(undo_limit=resolved_settings.undo_stack_limit)
    local_store = JsonFileStore(resolved_settings.local_store_path)
    outbox = Outbox(
        SupabaseTableWriter(supabase_client),
        local_store,
        max_attempts=resolved_settings.sync_max_attempts,
    )
    sync_worker = SyncWorker(outbox)
    notifications = NotificationCenter()
    error_handler = ErrorHandler(notifications)

    roster_service = RosterService(
        therapist_repository=SupabaseTherapistRepository(supabase_client),
        service_repository=SupabaseServiceRepository(supabase_client),
        roster_repository=SupabaseRosterRepository(supabase_client),
        expense_repository=SupabaseExpenseRepository(supabase_client),
        store=store,
        outbox=outbox,
        local_store=local_store,
        timezone_name=timezone_name,
        retry_policy=retry_policy,
    )
    room_service = RoomService(
        repository=SupabaseRoomRepository(supabase_client),
        store=store,
        outbox=outbox,
        local_store=local_store,
        retry_policy=retry_policy,
    )
    attendance_service = AttendanceService(
        store=store,
        roster_service=roster_service,
        outbox=outbox,
        local_store=local_store,
        timezone_name=timezone_name,
    )
    session_service = SessionService(
        repository=SupabaseSessionRepository(supabase_client),
        store=store,
        outbox=outbox,
        local_store=local_store,
        roster_service=roster_service,
        room_service=room_service,
        timezone_name=timezone_name,
        retry_policy=retry_policy,
    )
    walk_out_service = WalkOutService(
        repository=SupabaseWalkOutRepository(supabase_client),
        store=store,
        outbox=outbox,
        local_store=local_store,
        timezone_name=timezone_name,
        retry_policy=retry_policy,
    )
    stats_service = StatsService(
        repository=SupabaseDailyStatsRepository(supabase_client),
        store=store,
        outbox=outbox,
        timezone_name=timezone_name,
    )
    printnode_client = None
    if resolved_settings.printing_enabled:
        printnode_client = HttpxPrintNodeClient.create(
            api_key=resolved_settings.printnode_api_key or "",
            printer_id=resolved_settings.printnode_printer_id or 0,
            base_url=resolved_settings.printnode_base_url,
        )
    receipt_service = ReceiptService(
        store=store,
        client=printnode_client,
        business_name=resolved_settings.business_name,
        timezone_name=timezone_name,
    )
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
        auto_complete=resolved_settings.auto_complete_sessions,
    )
    periodic_tasks = [
        PeriodicTask(
            "attendance-sweep",
            resolved_settings.attendance_sweep_seconds,
            attendance_tracker.sweep,
        ),
        PeriodicTask(
            "sync-reconcile",
            resolved_settings.sync_interval_seconds,
            sync_worker.reconcile,
        ),
    ]

    async def close_resources() -> None:
        for task in periodic_tasks:
            await task.stop()
        if printnode_client is not None:
            await printnode_client.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        outbox=outbox,
        sync_worker=sync_worker,
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
        periodic_tasks=periodic_tasks,
        close_resources=close_resources,
    )
