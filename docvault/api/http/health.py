from fastapi import APIRouter, Depends

from docvault.api.http.deps import get_vault
from docvault.client import DocVault

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(vault: DocVault = Depends(get_vault)):
    """Проверка состояния сервиса"""
    session = vault.sessions.current
    return {
        "status": "ok",
        "backend": vault.settings.store_backend,
        "peer_id": vault.peer_id,
        "signed_in": session is not None,
        "ready": bool(session and session.is_ready),
    }
