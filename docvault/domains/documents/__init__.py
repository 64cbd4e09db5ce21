from docvault.domains.documents.entities import (
    AccessGrant, Document, DocumentListItem, SharedDocNotification, StoredDocument
)
from docvault.domains.documents.codec import DocumentCodec, FieldCodec
from docvault.domains.documents.keys import DocumentKeyManager
from docvault.domains.documents.schemas import (
    DocumentCreate, DocumentUpdate, DocumentVisibilityUpdate, DocumentResponse,
    DocumentListItemResponse, DocumentMetadataResponse, DocumentKeyResponse
)
from docvault.domains.documents.services import DocumentService

__all__ = [
    "AccessGrant", "Document", "DocumentListItem", "SharedDocNotification", "StoredDocument",
    "DocumentCodec", "FieldCodec", "DocumentKeyManager",
    "DocumentCreate", "DocumentUpdate", "DocumentVisibilityUpdate", "DocumentResponse",
    "DocumentListItemResponse", "DocumentMetadataResponse", "DocumentKeyResponse",
    "DocumentService"
]
