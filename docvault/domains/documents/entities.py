import json
import uuid
from datetime import datetime, timezone
from typing import List, Optional


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AccessGrant:
    """Право доступа получателя: ключ документа, зашифрованный общим ECDH-секретом"""

    def __init__(self, user_id: str, encrypted_doc_key: str, sender_epub: str, granted_at: Optional[str] = None):
        self.user_id = user_id
        self.encrypted_doc_key = encrypted_doc_key
        self.sender_epub = sender_epub
        self.granted_at = granted_at or utcnow_iso()

    def to_record(self) -> dict:
        return {
            "user_id": self.user_id,
            "encrypted_doc_key": self.encrypted_doc_key,
            "sender_epub": self.sender_epub,
            "granted_at": self.granted_at,
        }

    @classmethod
    def from_record(cls, record: dict) -> "AccessGrant":
        return cls(
            user_id=record["user_id"],
            encrypted_doc_key=record.get("encrypted_doc_key") or "",
            sender_epub=record.get("sender_epub") or "",
            granted_at=record.get("granted_at"),
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, AccessGrant):
            return False
        return self.user_id == other.user_id and self.encrypted_doc_key == other.encrypted_doc_key

    def __repr__(self) -> str:
        return f"AccessGrant(user_id={self.user_id})"


class StoredDocument:
    """
    Запись документа в том виде, в каком она лежит в графе.

    Для приватных документов title, content и tags - шифротекст ENC_...,
    tags хранится одной строкой.
    """

    def __init__(
        self,
        id: str,
        soul: str,
        title: str,
        content: str,
        tags: Optional[str],
        created_at: str,
        updated_at: str,
        is_public: bool = False,
        parent: Optional[str] = None,
        original: Optional[str] = None,
        access: Optional[List[AccessGrant]] = None,
    ):
        self.id = id
        self.soul = soul
        self.title = title
        self.content = content
        self.tags = tags
        self.created_at = created_at
        self.updated_at = updated_at
        self.is_public = is_public
        self.parent = parent
        self.original = original
        self.access = access or []

    @property
    def key_id(self) -> str:
        """Идентификатор корня линии, ключ которого шифрует документ"""
        return self.original or self.id

    @property
    def is_branch(self) -> bool:
        return self.parent is not None

    def to_record(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "tags": self.tags,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_public": self.is_public,
            "parent": self.parent,
            "original": self.original,
        }

    def __repr__(self) -> str:
        return f"StoredDocument(id={self.id}, is_public={self.is_public}, parent={self.parent})"


class Document:
    """Расшифрованный документ домена Documents"""

    def __init__(
        self,
        id: str,
        title: str,
        content: str,
        tags: Optional[List[str]] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
        is_public: bool = False,
        access: Optional[List[AccessGrant]] = None,
        parent: Optional[str] = None,
        original: Optional[str] = None,
        owner_pub: Optional[str] = None,
    ):
        self.id = id
        self.title = title
        self.content = content
        self.tags = list(tags or [])
        self.created_at = created_at or utcnow_iso()
        self.updated_at = updated_at or self.created_at
        self.is_public = is_public
        self.access = access or []
        self.parent = parent
        self.original = original
        self.owner_pub = owner_pub

    @property
    def is_branch(self) -> bool:
        return self.parent is not None

    @property
    def key_id(self) -> str:
        return self.original or self.id

    @staticmethod
    def new_id() -> str:
        return str(uuid.uuid4())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_public": self.is_public,
            "access": [grant.user_id for grant in self.access],
            "parent": self.parent,
            "original": self.original,
            "owner_pub": self.owner_pub,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Document):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"Document(id={self.id}, is_public={self.is_public}, parent={self.parent})"


class DocumentListItem:
    """Элемент списка документов без расшифровки"""

    def __init__(self, doc_id: str, soul: str, created_at: str, updated_at: str):
        self.doc_id = doc_id
        self.soul = soul
        self.created_at = created_at
        self.updated_at = updated_at

    def to_dict(self) -> dict:
        return {"doc_id": self.doc_id, "soul": self.soul, "created_at": self.created_at, "updated_at": self.updated_at}


class SharedDocNotification:
    """Уведомление получателю о новом доступе к документу"""

    def __init__(
        self,
        sender_alias: str,
        sender_pub: str,
        sender_epub: str,
        doc_id: str,
        is_public: bool,
        encrypted_doc_key: Optional[str] = None,
        shared_at: Optional[str] = None,
        recipient: Optional[str] = None,
    ):
        self.sender_alias = sender_alias
        self.sender_pub = sender_pub
        self.sender_epub = sender_epub
        self.doc_id = doc_id
        self.is_public = is_public
        self.encrypted_doc_key = encrypted_doc_key
        self.shared_at = shared_at or utcnow_iso()
        self.recipient = recipient

    def to_dict(self) -> dict:
        return {
            "sender_alias": self.sender_alias,
            "sender_pub": self.sender_pub,
            "sender_epub": self.sender_epub,
            "doc_id": self.doc_id,
            "is_public": self.is_public,
            "encrypted_doc_key": self.encrypted_doc_key,
            "shared_at": self.shared_at,
            "recipient": self.recipient,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, raw: str) -> "SharedDocNotification":
        data = json.loads(raw)
        return cls(
            sender_alias=data["sender_alias"],
            sender_pub=data["sender_pub"],
            sender_epub=data["sender_epub"],
            doc_id=data["doc_id"],
            is_public=bool(data.get("is_public")),
            encrypted_doc_key=data.get("encrypted_doc_key"),
            shared_at=data.get("shared_at"),
            recipient=data.get("recipient"),
        )

    def __repr__(self) -> str:
        return f"SharedDocNotification(doc_id={self.doc_id}, sender={self.sender_alias})"
