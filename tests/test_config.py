import pytest

from spa_operations.config import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("SUPABASE_URL", "SUPABASE_SERVICE_KEY", "DASHBOARD_TOKEN"):
        monkeypatch.delenv(name, raising=False)


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "key.from.env")
    monkeypatch.setenv("DASHBOARD_TOKEN", "secret")
    monkeypatch.setenv("UNDO_STACK_LIMIT", "5")

    settings = Settings(_env_file=None)

    assert settings.supabase_service_key == "key.from.env"
    assert settings.undo_stack_limit == 5
    assert settings.timezone == "Asia/Bangkok"
    assert not settings.printing_enabled


def test_printing_needs_key_and_printer() -> None:
    base = {
        "supabase_url": "https://example.supabase.co",
        "supabase_service_key": "test.service.key",
        "dashboard_token": "dashboard-token",
    }

    assert not Settings(printnode_api_key="key", **base).printing_enabled
    assert Settings(
        printnode_api_key="key", printnode_printer_id=12, **base
    ).printing_enabled
