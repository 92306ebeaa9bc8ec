"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    dashboard_token: str
    environment: str = _ENVIRONMENT
    business_name: str = "Spa Operations"
    timezone: str = "Asia/Bangkok"
    local_store_path: str = ".spa-operations-cache.json"
    attendance_sweep_seconds: float = 30.0
    sync_interval_seconds: float = 30.0
    sync_max_attempts: int = 3
    undo_stack_limit: int = 10
    retry_max_attempts: int = 3
    retry_initial_delay: float = 0.5
    retry_max_delay: float = 5.0
    auto_complete_sessions: bool = True
    printnode_api_key: str | None = None
    printnode_printer_id: int | None = None
    printnode_base_url: str = "https://api.printnode.com"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def printing_enabled(self) -> bool:
        """Return True when PrintNode credentials are configured."""
        return bool(self.printnode_api_key) and self.printnode_printer_id is not None
