from fastapi import APIRouter, Depends, HTTPException, Request

from storage.coordinator import MigrationError, TournamentStorage
from storage.validation import check_integrity

router = APIRouter(prefix="/api/storage", tags=["Storage"])


def get_storage(request: Request) -> TournamentStorage:
    return request.app.state.storage


@router.get("/status")
async def storage_status(storage: TournamentStorage = Depends(get_storage)):
    return storage.status()


@router.post("/retry")
async def retry_connection(storage: TournamentStorage = Depends(get_storage)):
    await storage.retry_connection()
    return storage.status()


@router.post("/migrate")
async def migrate_now(storage: TournamentStorage = Depends(get_storage)):
    try:
        await storage.migrate_now()
    except MigrationError as exc:
        raise HTTPException(status_code=503, detail=f"{storage.last_error}: {exc}")
    except Exception:
        raise HTTPException(status_code=503, detail=storage.last_error)
    return storage.status()


@router.post("/cleanup")
async def cleanup(storage: TournamentStorage = Depends(get_storage)):
    if not storage.is_remote_active:
        return {"success": False, "message": "Cloud storage not available"}
    try:
        report = await storage.cleanup()
    except Exception:
        raise HTTPException(status_code=503, detail="Cleanup failed")
    return {"success": True, "message": "Data cleanup completed", **report.to_dict()}


@router.get("/integrity")
async def integrity(storage: TournamentStorage = Depends(get_storage)):
    issues = check_integrity(storage.list())
    return {"ok": not issues, "issues": issues}
