from __future__ import annotations

import pytest
from pydantic import ValidationError

from recipe_ledger.app.config import Settings
from recipe_ledger.app.deps import build_recipe_store
from recipe_ledger.app.domain.errors import LedgerConfigurationError


class TestSettings:
    def test_defaults(self) -> None:
        config = Settings(_env_file=None)

        assert config.LEDGER_PERSISTENCE == "memory"
        assert config.EVENT_LOG_SIZE == 200
        assert config.supabase_configured is False
        assert config.validate_ledger() == []

    def test_supabase_persistence_requires_credentials(self) -> None:
        config = Settings(_env_file=None, LEDGER_PERSISTENCE="supabase")

        errors = config.validate_ledger()

        assert "SUPABASE_URL is required for supabase persistence" in errors
        assert "SUPABASE_SERVICE_ROLE_KEY is required for supabase persistence" in errors

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")
        monkeypatch.setenv("EVENT_LOG_SIZE", "10")

        config = Settings(_env_file=None)

        assert config.supabase_configured is True
        assert config.EVENT_LOG_SIZE == 10

    def test_unknown_persistence_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, LEDGER_PERSISTENCE="redis")


class TestBuildRecipeStore:
    def test_memory_store_records_events(self) -> None:
        store, event_log = build_recipe_store(Settings(_env_file=None, EVENT_LOG_SIZE=5))

        store.create_recipe(
            name="Soup", body="water", instructions="boil", category="Main", is_public=True, caller="alice"
        )

        assert len(event_log) == 1

    def test_invalid_configuration_raises(self) -> None:
        with pytest.raises(LedgerConfigurationError) as exc_info:
            build_recipe_store(Settings(_env_file=None, LEDGER_PERSISTENCE="supabase"))

        assert len(exc_info.value.errors) == 2
