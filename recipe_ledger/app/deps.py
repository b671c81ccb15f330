# recipe_ledger/app/deps.py

from __future__ import annotations

import logging
import threading

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from recipe_ledger.app.config import Settings, settings
from recipe_ledger.app.domain.errors import LedgerConfigurationError
from recipe_ledger.app.infra.db.base import LedgerSnapshotRepository
from recipe_ledger.app.infra.db.memory_repo import InMemorySnapshotRepository
from recipe_ledger.app.infra.db.supabase_ledger_repo import SupabaseLedgerRepository
from recipe_ledger.app.services.events import RecentEventLog
from recipe_ledger.app.services.persistence import load_store
from recipe_ledger.app.services.recipe_store import RecipeStore

logger = logging.getLogger(__name__)

_client: Client | None = None
_store: RecipeStore | None = None
_event_log: RecentEventLog | None = None
_store_lock = threading.Lock()


def get_supabase() -> Client:
    global _client
    if _client is None:
        if not settings.supabase_configured:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication backend not configured",
            )
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def build_recipe_store(config: Settings) -> tuple[RecipeStore, RecentEventLog]:
    """Wire a store with its persistence backend and event history."""
    errors = config.validate_ledger()
    if errors:
        raise LedgerConfigurationError(errors)

    repository: LedgerSnapshotRepository
    if config.LEDGER_PERSISTENCE == "supabase":
        repository = SupabaseLedgerRepository(
            create_client(str(config.SUPABASE_URL), config.SUPABASE_SERVICE_ROLE_KEY)
        )
    else:
        repository = InMemorySnapshotRepository()

    store = load_store(repository)
    event_log = RecentEventLog(maxlen=config.EVENT_LOG_SIZE)
    store.events.subscribe(event_log)
    logger.info("Recipe store ready: persistence=%s", config.LEDGER_PERSISTENCE)
    return store, event_log


def _ensure_store() -> tuple[RecipeStore, RecentEventLog]:
    global _store, _event_log
    with _store_lock:
        if _store is None or _event_log is None:
            _store, _event_log = build_recipe_store(settings)
        return _store, _event_log


def get_recipe_store() -> RecipeStore:
    return _ensure_store()[0]


def get_event_log() -> RecentEventLog:
    return _ensure_store()[1]


auth_scheme = HTTPBearer(auto_error=False)

class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


def _resolve_user(token: str, supa: Client) -> CurrentUser:
    try:
        res = supa.auth.get_user(token)
        user = res.user
        if not user:
            raise HTTPException(status_code=401, detail="Invalid token")

        # metadata may carry a display name
        name = None
        meta = getattr(user, "user_metadata", None) or {}
        if isinstance(meta, dict):
            name = meta.get("name")

        return CurrentUser(id=str(user.id), email=user.email, name=name)
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired token")


async def get_current_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
) -> CurrentUser:
    """
    Takes Authorization: Bearer <access_token> issued by Supabase,
    validates it against GoTrue and returns the calling principal.
    """
    if cred is None or cred.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    return _resolve_user(cred.credentials, get_supabase())


async def get_optional_user(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
) -> CurrentUser | None:
    """Same as get_current_user, but anonymous requests resolve to None."""
    if cred is None or cred.scheme.lower() != "bearer":
        return None
    return _resolve_user(cred.credentials, get_supabase())
