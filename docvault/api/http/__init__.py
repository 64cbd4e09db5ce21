from docvault.api.http.health import router as health_router
from docvault.api.http.auth import router as auth_router
from docvault.api.http.documents import router as documents_router
from docvault.api.http.sharing import router as sharing_router
from docvault.api.http.branches import router as branches_router

__all__ = [
    "health_router",
    "auth_router",
    "documents_router",
    "sharing_router",
    "branches_router"
]
