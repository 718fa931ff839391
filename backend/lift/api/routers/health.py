from fastapi import APIRouter

from lift import __version__, config

router = APIRouter()


@router.get("/api/health")
async def health_check():
    return {"status": "ok", "model": config.MODEL, "version": __version__}
