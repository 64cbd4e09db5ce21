from docvault.db.repositories.graph_repository import GraphRepository
from docvault.db.repositories.document_repository import DocumentRepository

__all__ = ["GraphRepository", "DocumentRepository"]
