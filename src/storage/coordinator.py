from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from football.models import Tournament
from storage.document_store import DocumentStore
from storage.local_cache import LocalCache
from storage.repair import IntegrityRepair, RepairReport
from storage.validation import InvalidTournamentError, drop_invalid, validate_tournament

logger = logging.getLogger(__name__)

OFFLINE_ADVISORY = "Using offline mode - changes will not sync"
SAVE_FAILED = "Failed to save tournament"
DELETE_FAILED = "Failed to delete tournament"
MIGRATION_FAILED = "Migration to cloud storage failed"
UNMIGRATED = "{} invalid tournament(s) were kept in local storage and not synced"


class Phase(str, Enum):
    INITIALIZING = "initializing"
    REMOTE_ACTIVE = "remote-active"
    LOCAL_FALLBACK = "local-fallback"


class MigrationError(RuntimeError):
    def __init__(self, tournament_id: str, migrated: int):
        super().__init__(f"Migration stopped at tournament {tournament_id!r} after {migrated} migrated")
        self.tournament_id = tournament_id
        self.migrated = migrated


# -- Backends ------------------------------------------------------------------
# Each mutation returns the refreshed tournament list.

@dataclass
class RemoteBackend:
    store: DocumentStore

    async def save(self, tournament: Tournament, current: List[Tournament]) -> List[Tournament]:
        await self.store.save(tournament)
        return drop_invalid(await self.store.list_all())

    async def delete(self, tournament_id: str, current: List[Tournament]) -> List[Tournament]:
        await self.store.delete(tournament_id)
        return [t for t in current if t.id != tournament_id]


@dataclass
class LocalBackend:
    cache: LocalCache
    key: str

    def load(self) -> List[Tournament]:
        return load_cached(self.cache, self.key)

    def _persist(self, tournaments: List[Tournament]):
        # Entries that never loaded are carried over untouched
        _, unloadable = parse_cached(self.cache.read(self.key, []))
        self.cache.write(self.key, [t.to_dict() for t in tournaments] + unloadable)

    async def save(self, tournament: Tournament, current: List[Tournament]) -> List[Tournament]:
        updated = [tournament if t.id == tournament.id else t for t in current]
        if not any(t.id == tournament.id for t in current):
            updated.append(tournament)
        self._persist(updated)
        return updated

    async def delete(self, tournament_id: str, current: List[Tournament]) -> List[Tournament]:
        updated = [t for t in current if t.id != tournament_id]
        self._persist(updated)
        return updated


Backend = Union[RemoteBackend, LocalBackend]


def parse_cached(raw) -> Tuple[List[Tuple[Tournament, Any]], List[Any]]:
    """Split a cached list into (tournament, raw entry) pairs and unloadable raw entries."""
    if not isinstance(raw, list):
        logger.warning("Local cache does not hold a list, ignoring it")
        return [], [raw]
    loaded, unloadable = [], []
    for item in raw:
        if not isinstance(item, dict):
            logger.warning("Skipping malformed cached tournament: %r", item)
            unloadable.append(item)
            continue
        t = Tournament.from_dict(item)
        if not t.id or not t.name:
            logger.warning("Invalid cached tournament ignored: id=%r name=%r", t.id, t.name)
            unloadable.append(item)
            continue
        loaded.append((t, item))
    return loaded, unloadable


def load_cached(cache: LocalCache, key: str) -> List[Tournament]:
    loaded, _ = parse_cached(cache.read(key, []))
    return [t for t, _ in loaded]


class TournamentStorage:
    """The one entry point the application uses to read and persist tournaments.

    On startup the remote store is tried first. If it answers it becomes the
    active backend, and any tournaments left in the local cache are migrated
    to it when it is empty. If it fails the local cache takes over and an
    offline advisory is published in `last_error`.

    The in-memory list is only replaced by the methods below; callers get
    copies from `list()`.
    """

    def __init__(
        self,
        store: DocumentStore,
        cache: LocalCache,
        cache_key: str = "tournaments",
        repair: Optional[IntegrityRepair] = None,
        repair_on_load: bool = True,
    ):
        self._store = store
        self._cache = cache
        self._cache_key = cache_key
        self._repair = repair
        self._repair_on_load = repair_on_load
        self._repair_task: Optional[asyncio.Task] = None

        self._backend: Optional[Backend] = None
        self._tournaments: List[Tournament] = []
        self.phase = Phase.INITIALIZING
        self.last_error: Optional[str] = None
        self.is_loading = False

    # -- Observable state -----------------------------------------------------

    @property
    def is_remote_active(self) -> bool:
        return isinstance(self._backend, RemoteBackend)

    def list(self) -> List[Tournament]:
        return copy.deepcopy(self._tournaments)

    def get(self, tournament_id: str) -> Optional[Tournament]:
        found = next((t for t in self._tournaments if t.id == tournament_id), None)
        return copy.deepcopy(found)

    def pending_local(self) -> List[Tournament]:
        return load_cached(self._cache, self._cache_key)

    def status(self) -> dict:
        return {
            "phase": self.phase.value,
            "isRemoteActive": self.is_remote_active,
            "lastError": self.last_error,
            "isLoading": self.is_loading,
            "tournamentCount": len(self._tournaments),
            "pendingLocalCount": len(self.pending_local()),
        }

    # -- Startup --------------------------------------------------------------

    async def initialize(self):
        self.phase = Phase.INITIALIZING
        self.is_loading = True
        self.last_error = None
        try:
            await self._store.ensure_schema()
            self._use_remote(drop_invalid(await self._store.list_all()))

            pending = self.pending_local()
            if not self._tournaments and pending:
                logger.info("Migrating %d local tournament(s) to the remote store", len(pending))
                await self._migrate()

            if self._tournaments:
                self._schedule_repair()
        except MigrationError as exc:
            logger.error("Migration to the remote store failed: %s", exc.__cause__ or exc)
            self._use_local()
            self.last_error = MIGRATION_FAILED
        except Exception as exc:
            logger.warning("Remote store unavailable, using local cache: %s", exc)
            self._use_local()
            self.last_error = OFFLINE_ADVISORY
        finally:
            self.is_loading = False

    async def retry_connection(self):
        await self.initialize()

    def _use_remote(self, tournaments: List[Tournament]):
        self._backend = RemoteBackend(self._store)
        self._tournaments = tournaments
        self.phase = Phase.REMOTE_ACTIVE

    def _use_local(self):
        backend = LocalBackend(self._cache, self._cache_key)
        self._backend = backend
        self._tournaments = backend.load()
        self.phase = Phase.LOCAL_FALLBACK

    # -- Migration ------------------------------------------------------------

    async def migrate_now(self):
        self.is_loading = True
        try:
            await self._migrate()
        except Exception:
            self.last_error = MIGRATION_FAILED
            raise
        finally:
            self.is_loading = False

    async def _migrate(self):
        # Sequential: on failure the cache is left exactly as it was for a retry
        loaded, leftovers = parse_cached(self._cache.read(self._cache_key, []))
        migrated = 0
        for tournament, entry in loaded:
            try:
                cleaned = validate_tournament(tournament)
            except InvalidTournamentError as exc:
                logger.warning("Keeping invalid tournament %r in the local cache: %s", tournament.id, exc)
                leftovers.append(entry)
                continue
            try:
                await self._store.save(cleaned)
            except Exception as exc:
                raise MigrationError(tournament.id, migrated) from exc
            migrated += 1

        logger.info("Successfully migrated %d tournament(s) to the remote store", migrated)
        if leftovers:
            logger.warning("%d cached entries could not be migrated and stay in the local cache", len(leftovers))
            self._cache.write(self._cache_key, leftovers)
        else:
            self._cache.clear(self._cache_key)
        self._use_remote(drop_invalid(await self._store.list_all()))
        self.last_error = UNMIGRATED.format(len(leftovers)) if leftovers else None

    # -- Integrity repair -----------------------------------------------------

    def _schedule_repair(self):
        if self._repair is None or not self._repair_on_load:
            return
        if self._repair_task is not None and not self._repair_task.done():
            return
        self._repair_task = asyncio.create_task(self._run_repair())

    async def _run_repair(self):
        try:
            report = await self._repair.run()
            logger.info("Integrity repair finished: %s", report)
        except Exception as exc:
            logger.warning("Data cleanup failed: %s", exc)

    async def wait_for_repair(self):
        if self._repair_task is not None:
            await self._repair_task

    async def cleanup(self) -> Optional[RepairReport]:
        if not self.is_remote_active or self._repair is None:
            return None
        try:
            report = await self._repair.run()
            self._tournaments = drop_invalid(await self._store.list_all())
        except Exception:
            logger.exception("Cleanup failed")
            raise
        return report

    # -- Mutations ------------------------------------------------------------

    def _require_backend(self) -> Backend:
        if self._backend is None:
            raise RuntimeError("Tournament storage has not been initialized")
        return self._backend

    async def save(self, tournament: Tournament):
        cleaned = validate_tournament(tournament)
        backend = self._require_backend()
        try:
            self._tournaments = await backend.save(cleaned, self._tournaments)
        except Exception:
            logger.exception("Error saving tournament %s", cleaned.id)
            self.last_error = SAVE_FAILED
            raise

    async def delete(self, tournament_id: str):
        backend = self._require_backend()
        try:
            self._tournaments = await backend.delete(tournament_id, self._tournaments)
        except Exception:
            logger.exception("Error deleting tournament %s", tournament_id)
            self.last_error = DELETE_FAILED
            raise
