import logging
from typing import List, Optional

from docvault.core.errors import NotFound, ValidationError, returns_result
from docvault.core.retry import retry_call
from docvault.db.repositories.document_repository import DocumentRepository
from docvault.domains.documents.codec import DocumentCodec
from docvault.domains.documents.entities import Document, StoredDocument, utcnow_iso
from docvault.domains.documents.keys import DocumentKeyManager
from docvault.domains.identity.sessions import SessionManager
from docvault.graph.store import GraphStore

logger = logging.getLogger(__name__)


class BranchService:
    """
    Ветки документов.

    Ветка хранит parent (непосредственный предок) и original (корень линии)
    и шифруется ключом корня, новый ключ для ветки не создается.
    """

    def __init__(
        self,
        store: GraphStore,
        sessions: SessionManager,
        keys: DocumentKeyManager,
        codec: DocumentCodec,
        retry_options: Optional[dict] = None,
    ):
        self.store = store
        self.sessions = sessions
        self.keys = keys
        self.codec = codec
        self.retry_options = retry_options or {}

    def repository(self) -> DocumentRepository:
        return DocumentRepository(self.store, self.sessions.require().pub)

    async def _require(self, repository: DocumentRepository, doc_id: str) -> StoredDocument:
        stored = await repository.get_by_id(doc_id)
        if stored is None:
            raise NotFound(f"Document {doc_id} not found")
        return stored

    async def _open(self, stored: StoredDocument, owner_pub: str) -> Document:
        key = None if stored.is_public else await self.keys.read_key(stored.key_id)
        return self.codec.open(stored, key, owner_pub=owner_pub)

    @returns_result
    async def create_branch(self, source_id: str) -> Document:
        """Создание ветки от документа или другой ветки"""
        repository = self.repository()
        source = await self._require(repository, source_id)

        key = None if source.is_public else await self.keys.read_key(source.key_id)
        title, content, tags = self.codec.open_fields(source, key)
        fields = self.codec.seal(title, content, tags, key)

        branch_id = Document.new_id()
        now = utcnow_iso()
        branch = StoredDocument(
            id=branch_id,
            soul=repository.soul_for(branch_id),
            title=fields["title"],
            content=fields["content"],
            tags=fields["tags"],
            created_at=now,
            updated_at=now,
            is_public=source.is_public,
            parent=source.id,
            original=source.key_id,
        )
        await retry_call(lambda: repository.create(branch), self.retry_options)

        logger.info(f"Created branch {branch_id} of {source_id}")
        return self.codec.open(branch, key, owner_pub=repository.owner_pub)

    @returns_result
    async def get_branch(self, branch_id: str) -> Document:
        repository = self.repository()
        stored = await self._require(repository, branch_id)
        if not stored.is_branch:
            raise ValidationError("Not a branch")
        return await self._open(stored, repository.owner_pub)

    @returns_result
    async def list_branches(self, doc_id: str) -> List[Document]:
        """Прямые ветки документа (одно поколение)"""
        repository = self.repository()
        await self._require(repository, doc_id)
        return [await self._open(stored, repository.owner_pub) for stored in await repository.get_children(doc_id)]

    @returns_result
    async def list_lineage(self, root_id: str) -> List[Document]:
        """Все ветки линии, включая вложенные"""
        repository = self.repository()
        root = await self._require(repository, root_id)
        if root.is_branch:
            raise ValidationError("Not a root document")
        return [await self._open(stored, repository.owner_pub) for stored in await repository.get_lineage(root_id)]

    @returns_result
    async def delete_branch(self, branch_id: str) -> bool:
        """Удаление только записи ветки; ключ линии не трогается"""
        repository = self.repository()
        stored = await self._require(repository, branch_id)
        if not stored.is_branch:
            raise ValidationError("Not a branch")

        await retry_call(lambda: repository.delete(branch_id), self.retry_options)
        logger.info(f"Deleted branch {branch_id}")
        return True
