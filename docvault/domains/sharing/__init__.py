from docvault.domains.sharing.schemas import ShareRequest, AccessGrantResponse, SharedDocResponse
from docvault.domains.sharing.services import SharingService

__all__ = ["ShareRequest", "AccessGrantResponse", "SharedDocResponse", "SharingService"]
