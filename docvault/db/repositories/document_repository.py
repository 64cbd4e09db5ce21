from typing import List, Optional, TYPE_CHECKING

from docvault.graph.store import GraphStore, Node

if TYPE_CHECKING:
    from docvault.domains.documents.entities import AccessGrant, StoredDocument

DOCS_SEGMENT = "docs"
ACCESS_SEGMENT = "access"


class DocumentRepository:
    """Репозиторий документов владельца в графе: ~{pub}/docs/{docId}"""

    def __init__(self, store: GraphStore, owner_pub: str):
        self.store = store
        self.owner_pub = owner_pub

    def _docs(self) -> Node:
        return self.store.user(self.owner_pub).get(DOCS_SEGMENT)

    def _node(self, doc_id: str) -> Node:
        return self._docs().get(doc_id)

    def soul_for(self, doc_id: str) -> str:
        return self._node(doc_id).soul

    async def create(self, document: "StoredDocument") -> "StoredDocument":
        """Создание записи документа"""
        await self._node(document.id).put(document.to_record())
        return document

    async def get_by_id(self, doc_id: str, with_access: bool = True) -> Optional["StoredDocument"]:
        """Получение записи документа"""
        node = self._node(doc_id)
        record = await node.once()
        if not isinstance(record, dict) or "title" not in record:
            return None

        access = await self.get_grants(doc_id) if with_access else []
        return self._to_domain(doc_id, node.soul, record, access)

    async def update(self, doc_id: str, fields: dict) -> None:
        """Обновление только переданных полей"""
        await self._node(doc_id).put(fields)

    async def delete(self, doc_id: str) -> None:
        await self._node(doc_id).put(None)

    async def list_by_owner(self) -> List["StoredDocument"]:
        """Все живые документы владельца"""
        documents = []
        for doc_id, record in await self.store.collect(self._docs()):
            if isinstance(record, dict) and "title" in record:
                documents.append(self._to_domain(doc_id, self.soul_for(doc_id), record, []))
        return documents

    async def get_children(self, parent_id: str) -> List["StoredDocument"]:
        """Прямые ветки документа"""
        return [doc for doc in await self.list_by_owner() if doc.parent == parent_id]

    async def get_lineage(self, root_id: str) -> List["StoredDocument"]:
        """Все документы, чей корень линии - root_id"""
        return [doc for doc in await self.list_by_owner() if doc.original == root_id]

    # ==================== Права доступа ====================

    async def add_grant(self, doc_id: str, grant: "AccessGrant") -> None:
        await self._node(doc_id).get(ACCESS_SEGMENT).get(grant.user_id).put(grant.to_record())

    async def get_grant(self, doc_id: str, user_id: str) -> Optional["AccessGrant"]:
        from docvault.domains.documents.entities import AccessGrant

        record = await self._node(doc_id).get(ACCESS_SEGMENT).get(user_id).once()
        if not isinstance(record, dict) or "user_id" not in record:
            return None
        return AccessGrant.from_record(record)

    async def get_grants(self, doc_id: str) -> List["AccessGrant"]:
        from docvault.domains.documents.entities import AccessGrant

        entries = await self.store.collect(self._node(doc_id).get(ACCESS_SEGMENT))
        return [AccessGrant.from_record(record) for _, record in entries if isinstance(record, dict) and "user_id" in record]

    async def remove_grant(self, doc_id: str, user_id: str) -> None:
        await self._node(doc_id).get(ACCESS_SEGMENT).get(user_id).put(None)

    def _to_domain(self, doc_id: str, soul: str, record: dict, access: List["AccessGrant"]) -> "StoredDocument":
        """Преобразование записи графа в доменную сущность"""
        from docvault.domains.documents.entities import StoredDocument

        return StoredDocument(
            id=record.get("id") or doc_id,
            soul=soul,
            title=record["title"],
            content=record.get("content") or "",
            tags=record.get("tags"),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
            is_public=bool(record.get("is_public")),
            parent=record.get("parent"),
            original=record.get("original"),
            access=access,
        )
