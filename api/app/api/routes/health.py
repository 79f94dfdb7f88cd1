from fastapi import APIRouter, Depends, HTTPException, status

from app.core.config import Settings, get_settings, resolve_intake_config
from app.services.repository import RepositoryError, get_repository

router = APIRouter()


@router.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/healthz/db")
async def healthz_db(repository=Depends(get_repository)) -> dict[str, str]:
    try:
        await repository.ping()
    except RepositoryError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {"status": "ok", "database": "reachable"}


@router.get("/api/ping")
async def ping(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"message": settings.ping_message}


@router.get("/api/demo")
async def demo(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"message": f"Hello from {settings.app_name}"}


@router.get("/api/config-status")
async def config_status(settings: Settings = Depends(get_settings)) -> dict[str, str | bool]:
    """Report which integrations are configured. Values themselves are never echoed."""
    config = resolve_intake_config(settings)
    return {
        "environment": settings.environment,
        "databaseConfigured": config.connection_string is not None,
        "databaseSource": config.connection_env_name,
        "encryptedTransport": config.use_encrypted_transport,
        "redditConfigured": bool(config.identity_client_id and config.identity_client_secret),
    }
