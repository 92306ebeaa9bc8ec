"""Dashboard token check shared by every protected router."""

from fastapi import Depends, Header, HTTPException, Request, status

from spa_operations.containers import AppContainer


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def _get_dashboard_token(container: AppContainer = Depends(get_container)) -> str:
    return container.settings.dashboard_token


async def require_dashboard(
    x_dashboard_token: str | None = Header(default=None),
    dashboard_token: str = Depends(_get_dashboard_token),
) -> None:
    """Ensure requests include a valid dashboard token."""
    if not x_dashboard_token or x_dashboard_token != dashboard_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
