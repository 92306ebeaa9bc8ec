"""Sync status, notifications and receipt printing."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder

from spa_operations.api.auth import get_container, require_dashboard
from spa_operations.api.schemas import ConnectivityChange
from spa_operations.containers import AppContainer

router = APIRouter(prefix="/api", dependencies=[Depends(require_dashboard)])


@router.get("/sync")
def sync_status(container: AppContainer = Depends(get_container)) -> dict[str, object]:
    """Connectivity flag, pending writes and the last reconcile outcome."""
    return jsonable_encoder(container.sync_worker.status())


@router.post("/sync/reconcile")
def reconcile(container: AppContainer = Depends(get_container)) -> dict[str, object]:
    return jsonable_encoder(container.sync_worker.reconcile())


@router.put("/sync/online")
def set_online(
    body: ConnectivityChange, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    result = container.sync_worker.set_online(body.online)
    return {
        "online": body.online,
        "result": jsonable_encoder(result) if result else None,
    }


@router.get("/notifications")
def list_notifications(
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    return {"notifications": jsonable_encoder(container.notifications.list())}


@router.delete("/notifications/{notification_id}")
def dismiss_notification(
    notification_id: int, container: AppContainer = Depends(get_container)
) -> dict[str, str]:
    if not container.notifications.dismiss(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return {"status": "ok"}


@router.delete("/notifications")
def clear_notifications(
    container: AppContainer = Depends(get_container),
) -> dict[str, str]:
    container.notifications.clear()
    return {"status": "ok"}


@router.post("/print/sessions/{session_id}")
async def print_session_receipt(
    session_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    result = await container.receipt_service.print_session_receipt(session_id)
    return {"job_id": result.job_id, "copies": result.copies}


@router.post("/print/departures/{therapist_id}")
async def print_departure_summary(
    therapist_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, object]:
    result = await container.receipt_service.print_departure_summary(therapist_id)
    return {"job_id": result.job_id, "copies": result.copies}


@router.get("/receipts/sessions/{session_id}")
def preview_session_receipt(
    session_id: UUID, container: AppContainer = Depends(get_container)
) -> dict[str, str]:
    """Plain-text receipt as it would be printed."""
    session = container.session_service.get(session_id)
    return {"text": container.receipt_service.render_session_receipt(session)}
