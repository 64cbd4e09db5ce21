from typing import Iterable, List, Optional, Tuple

from docvault.core.crypto import CryptoModule
from docvault.core.errors import ValidationError
from docvault.domains.documents.entities import Document, StoredDocument

TAG_DELIMITER = ","


class FieldCodec:
    """Шифрование отдельных полей документа и упаковка тегов"""

    def __init__(self, crypto: CryptoModule):
        self.crypto = crypto

    def encrypt_field(self, plaintext: str, key: str) -> str:
        return self.crypto.encrypt(plaintext, key)

    def decrypt_field(self, ciphertext: str, key: str) -> str:
        return self.crypto.decrypt(ciphertext, key)

    @staticmethod
    def validate_tags(tags: Optional[Iterable[str]]) -> List[str]:
        if tags is None:
            return []
        if isinstance(tags, str):
            raise ValidationError("Tags must be a list of strings")

        validated = []
        for tag in tags:
            if not isinstance(tag, str) or not tag:
                raise ValidationError("Tags must be non-empty strings")
            if TAG_DELIMITER in tag:
                raise ValidationError(f"Tag '{tag}' must not contain '{TAG_DELIMITER}'")
            validated.append(tag)
        return validated

    def encode_tags(self, tags: Optional[Iterable[str]]) -> Optional[str]:
        """Список тегов -> строка; пустой список хранится как None"""
        validated = self.validate_tags(tags)
        return TAG_DELIMITER.join(validated) if validated else None

    def decode_tags(self, encoded: Optional[str]) -> List[str]:
        if not encoded:
            return []
        return encoded.split(TAG_DELIMITER)


class DocumentCodec:
    """Шифрование документа целиком: каждое поле независимо одним ключом"""

    def __init__(self, fields: FieldCodec):
        self.fields = fields

    def seal(self, title: str, content: str, tags: Optional[Iterable[str]], key: Optional[str]) -> dict:
        """Поля для записи; key=None - публичный документ в открытом виде"""
        encoded_tags = self.fields.encode_tags(tags)
        if key is None:
            return {"title": title, "content": content, "tags": encoded_tags}

        return {
            "title": self.fields.encrypt_field(title, key),
            "content": self.fields.encrypt_field(content, key),
            "tags": self.fields.encrypt_field(encoded_tags, key) if encoded_tags is not None else None,
        }

    def seal_changes(self, changes: dict, key: Optional[str]) -> dict:
        """Шифрование только измененных полей"""
        sealed = {}
        for field, value in changes.items():
            if field == "tags":
                encoded = self.fields.encode_tags(value)
                sealed["tags"] = self.fields.encrypt_field(encoded, key) if key and encoded is not None else encoded
            else:
                sealed[field] = self.fields.encrypt_field(value, key) if key else value
        return sealed

    def open_fields(self, stored: StoredDocument, key: Optional[str]) -> Tuple[str, str, List[str]]:
        if key is None:
            return stored.title, stored.content, self.fields.decode_tags(stored.tags)

        title = self.fields.decrypt_field(stored.title, key)
        content = self.fields.decrypt_field(stored.content, key)
        tags = self.fields.decrypt_field(stored.tags, key) if stored.tags else None
        return title, content, self.fields.decode_tags(tags)

    def open(self, stored: StoredDocument, key: Optional[str], owner_pub: Optional[str] = None) -> Document:
        title, content, tags = self.open_fields(stored, key)
        return Document(
            id=stored.id,
            title=title,
            content=content,
            tags=tags,
            created_at=stored.created_at,
            updated_at=stored.updated_at,
            is_public=stored.is_public,
            access=stored.access,
            parent=stored.parent,
            original=stored.original,
            owner_pub=owner_pub,
        )
