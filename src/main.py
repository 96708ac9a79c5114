import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from database import make_engine
from football.router import router as tournaments_router
from settings import DATABASE_URL, LOCAL_CACHE_DIR, LOCAL_CACHE_KEY, LOG_LEVEL, REPAIR_ON_LOAD
from storage.coordinator import TournamentStorage
from storage.document_store import DocumentStore
from storage.local_cache import LocalCache
from storage.repair import IntegrityRepair
from storage.router import router as storage_router

logging.basicConfig(level=LOG_LEVEL)


def create_app(
    database_url: str = DATABASE_URL,
    cache_dir: str = LOCAL_CACHE_DIR,
    cache_key: str = LOCAL_CACHE_KEY,
    repair_on_load: bool = REPAIR_ON_LOAD,
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = make_engine(database_url)
        store = DocumentStore(engine)
        storage = TournamentStorage(
            store,
            LocalCache(cache_dir),
            cache_key=cache_key,
            repair=IntegrityRepair(store.sessions),
            repair_on_load=repair_on_load,
        )
        await storage.initialize()
        app.state.storage = storage
        try:
            yield
        finally:
            await storage.wait_for_repair()
            await engine.dispose()

    app = FastAPI(title="Football Tournament Manager", lifespan=lifespan)
    app.include_router(tournaments_router)
    app.include_router(storage_router)
    return app


app = create_app()
