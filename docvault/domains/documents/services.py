import logging
from typing import List, Optional

from docvault.core.errors import NotFound, ValidationError, returns_result
from docvault.core.retry import retry_call
from docvault.db.repositories.document_repository import DocumentRepository
from docvault.domains.documents.codec import DocumentCodec
from docvault.domains.documents.entities import (
    Document, DocumentListItem, StoredDocument, utcnow_iso
)
from docvault.domains.documents.keys import DocumentKeyManager
from docvault.domains.identity.sessions import SessionManager
from docvault.graph.store import GraphStore

logger = logging.getLogger(__name__)


class DocumentService:
    """Сервис для работы с документами владельца"""

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

    async def _key_for(self, stored: StoredDocument) -> Optional[str]:
        if stored.is_public:
            return None
        return await self.keys.read_key(stored.key_id)

    async def open_document(self, stored: StoredDocument) -> Document:
        """Расшифровка записи ключом ее линии"""
        key = await self._key_for(stored)
        return self.codec.open(stored, key, owner_pub=self.sessions.require().pub)

    @staticmethod
    def _validate_title(title) -> None:
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("Title is required")

    @returns_result
    async def create_document(
        self,
        title: str,
        content: str,
        tags: Optional[List[str]] = None,
        is_public: bool = False,
    ) -> Document:
        """Создание нового документа; для приватного документа создается ключ"""
        self._validate_title(title)
        if not isinstance(content, str):
            raise ValidationError("Content is required")
        tags = self.codec.fields.validate_tags(tags)

        repository = self.repository()
        doc_id = Document.new_id()
        key = None
        if not is_public:
            key = self.keys.generate_key()
            await self.keys.write_key(doc_id, key)

        now = utcnow_iso()
        fields = self.codec.seal(title, content, tags, key)
        stored = StoredDocument(
            id=doc_id,
            soul=repository.soul_for(doc_id),
            title=fields["title"],
            content=fields["content"],
            tags=fields["tags"],
            created_at=now,
            updated_at=now,
            is_public=is_public,
        )
        await retry_call(lambda: repository.create(stored), self.retry_options)

        logger.info(f"Created {'public' if is_public else 'private'} document {doc_id}")
        return Document(
            id=doc_id,
            title=title,
            content=content,
            tags=tags,
            created_at=now,
            updated_at=now,
            is_public=is_public,
            owner_pub=repository.owner_pub,
        )

    @returns_result
    async def get_document(self, doc_id: str) -> Optional[Document]:
        """Получение документа; отсутствующий документ - None"""
        stored = await self.repository().get_by_id(doc_id)
        if stored is None:
            return None
        return await self.open_document(stored)

    @returns_result
    async def update_document(
        self,
        doc_id: str,
        title: Optional[str] = None,
        content: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Document:
        """Обновление документа: перешифровываются только измененные поля"""
        changes = {}
        if title is not None:
            self._validate_title(title)
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        if tags is not None:
            changes["tags"] = self.codec.fields.validate_tags(tags)
        if not changes:
            raise ValidationError("No updates provided")

        repository = self.repository()
        stored = await self._require(repository, doc_id)
        key = await self._key_for(stored)

        fields = self.codec.seal_changes(changes, key)
        fields["updated_at"] = utcnow_iso()
        await retry_call(lambda: repository.update(doc_id, fields), self.retry_options)

        return await self.open_document(await self._require(repository, doc_id))

    @returns_result
    async def delete_document(self, doc_id: str) -> bool:
        """Удаление документа; для приватного корня удаляется и ключ"""
        repository = self.repository()
        stored = await self._require(repository, doc_id)

        if not stored.is_branch and await repository.get_lineage(doc_id):
            raise ValidationError("Document has branches; delete them first")

        await retry_call(lambda: repository.delete(doc_id), self.retry_options)
        if not stored.is_public and not stored.is_branch:
            await self.keys.delete_key(doc_id)

        logger.info(f"Deleted document {doc_id}")
        return True

    @returns_result
    async def list_documents(self) -> List[DocumentListItem]:
        """Список документов без расшифровки"""
        documents = await self.repository().list_by_owner()
        return [
            DocumentListItem(doc_id=doc.id, soul=doc.soul, created_at=doc.created_at, updated_at=doc.updated_at)
            for doc in documents
        ]

    @returns_result
    async def get_document_metadata(self, doc_id: str) -> dict:
        """Заголовок и теги документа"""
        stored = await self._require(self.repository(), doc_id)
        document = await self.open_document(stored)
        return {"id": document.id, "title": document.title, "tags": document.tags}

    async def _lineage(self, repository: DocumentRepository, doc_id: str) -> List[StoredDocument]:
        root = await self._require(repository, doc_id)
        if root.is_branch:
            raise ValidationError("Visibility can only be changed on the root document")
        return [root] + await repository.get_lineage(doc_id)

    @returns_result
    async def set_document_public(self, doc_id: str) -> Document:
        """Перевод линии документа в открытый вид и удаление ключа"""
        repository = self.repository()
        lineage = await self._lineage(repository, doc_id)
        root = lineage[0]
        if root.is_public:
            return await self.open_document(root)

        key = await self.keys.read_key(doc_id)
        for stored in lineage:
            title, content, tags = self.codec.open_fields(stored, key)
            fields = self.codec.seal(title, content, tags, None)
            fields.update({"is_public": True, "updated_at": utcnow_iso()})
            await retry_call(lambda: repository.update(stored.id, fields), self.retry_options)

        await self.keys.delete_key(doc_id)
        logger.info(f"Document {doc_id} and {len(lineage) - 1} branches made public")
        return await self.open_document(await self._require(repository, doc_id))

    @returns_result
    async def set_document_private(self, doc_id: str, key: Optional[str] = None) -> Document:
        """Шифрование линии документа новым или переданным ключом"""
        repository = self.repository()
        lineage = await self._lineage(repository, doc_id)
        root = lineage[0]
        if not root.is_public:
            return await self.open_document(root)

        key = key or self.keys.generate_key()
        await self.keys.write_key(doc_id, key)
        for stored in lineage:
            title, content, tags = self.codec.open_fields(stored, None)
            fields = self.codec.seal(title, content, tags, key)
            fields.update({"is_public": False, "updated_at": utcnow_iso()})
            await retry_call(lambda: repository.update(stored.id, fields), self.retry_options)

        logger.info(f"Document {doc_id} and {len(lineage) - 1} branches made private")
        return await self.open_document(await self._require(repository, doc_id))

    @returns_result
    async def get_document_key(self, doc_id: str) -> Optional[str]:
        """Экспорт ключа линии владельцем; None для публичных документов"""
        stored = await self._require(self.repository(), doc_id)
        return await self._key_for(stored)
