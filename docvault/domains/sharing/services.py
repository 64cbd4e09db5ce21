"""
Обмен ключами документов между личностями.

Получатель находится по псевдониму, ключ документа шифруется общим
ECDH-секретом (epub получателя + пара отправителя) и сохраняется в
праве доступа корня линии: одно право открывает корень и все его ветки.
Получатель восстанавливает тот же секрет из sender_epub и своей пары.
"""

import logging
from typing import List, Optional

from docvault.core.crypto import CryptoModule, b64decode
from docvault.core.errors import (
    DecryptionError, NotFound, PermissionDenied, ValidationError, returns_result
)
from docvault.core.retry import retry_call
from docvault.db.repositories.document_repository import DocumentRepository
from docvault.domains.documents.codec import DocumentCodec
from docvault.domains.documents.entities import AccessGrant, Document, SharedDocNotification
from docvault.domains.documents.keys import DocumentKeyManager
from docvault.domains.identity.services import IdentityService
from docvault.domains.identity.sessions import SessionManager
from docvault.graph.private import PrivateNamespace
from docvault.graph.store import GraphStore, Node

logger = logging.getLogger(__name__)

SHARED_SEGMENT = "sharedDocs"


class SharingService:
    """Сервис выдачи и отзыва доступа к документам"""

    def __init__(
        self,
        store: GraphStore,
        sessions: SessionManager,
        identity: IdentityService,
        keys: DocumentKeyManager,
        codec: DocumentCodec,
        namespace: PrivateNamespace,
        crypto: CryptoModule,
        app_namespace: str = "docvault",
        retry_options: Optional[dict] = None,
    ):
        self.store = store
        self.sessions = sessions
        self.identity = identity
        self.keys = keys
        self.codec = codec
        self.namespace = namespace
        self.crypto = crypto
        self.app_namespace = app_namespace
        self.retry_options = retry_options or {}

    def _inbox(self, recipient_pub: str) -> Node:
        return self.store.get(f"{self.app_namespace}~inbox").get(recipient_pub)

    def _inbox_entry(self, recipient_pub: str, sender_pub: str, doc_id: str, secret: str) -> Node:
        """Запись ящика под ключом, который могут вычислить только отправитель и получатель"""
        token = self.crypto.keyed_hash(f"{sender_pub}:{doc_id}", b64decode(secret))
        return self._inbox(recipient_pub).get(token)

    async def _notify(self, recipient_pub: str, notification: SharedDocNotification, secret: str) -> None:
        await self._inbox_entry(recipient_pub, notification.sender_pub, notification.doc_id, secret).put({
            "sender_pub": notification.sender_pub,
            "sender_epub": notification.sender_epub,
            "payload": self.codec.fields.encrypt_field(notification.to_json(), secret),
        })
        await retry_call(
            lambda: self.namespace.write(
                [SHARED_SEGMENT, notification.recipient, notification.doc_id], notification.to_json()
            ),
            self.retry_options,
        )

    @returns_result
    async def share_document(self, doc_id: str, username: str) -> AccessGrant:
        """
        Выдать пользователю username доступ к документу doc_id.

        Повторный вызов при существующем праве доступа дописывает уведомление,
        если его запись ранее не удалась.
        """
        if not isinstance(username, str) or not username.strip():
            raise ValidationError("Username is required")

        session = self.sessions.require()
        repository = DocumentRepository(self.store, session.pub)
        stored = await repository.get_by_id(doc_id, with_access=False)
        if stored is None:
            raise NotFound(f"Document {doc_id} not found")

        recipients = await self.identity.find_identities(username)
        if not recipients:
            raise NotFound(f"User {username} not found")
        recipient = recipients[0]
        if recipient.pub == session.pub:
            raise ValidationError("Cannot share a document with yourself")

        secret = self.crypto.derive_shared_secret(recipient.epub, session.pair)

        grant = await repository.get_grant(stored.key_id, username)
        if grant is None:
            encrypted_key = ""
            if not stored.is_public:
                key = await self.keys.read_key(stored.key_id)
                encrypted_key = self.codec.fields.encrypt_field(key, secret)

            grant = AccessGrant(user_id=username, encrypted_doc_key=encrypted_key, sender_epub=session.epub)
            await retry_call(lambda: repository.add_grant(stored.key_id, grant), self.retry_options)
        elif await self._inbox_entry(recipient.pub, session.pub, doc_id, secret).once() is not None:
            logger.info(f"Document {doc_id} already shared with {username}")
            return grant

        notification = SharedDocNotification(
            sender_alias=session.alias,
            sender_pub=session.pub,
            sender_epub=session.epub,
            doc_id=doc_id,
            is_public=stored.is_public,
            encrypted_doc_key=grant.encrypted_doc_key or None,
            shared_at=grant.granted_at,
            recipient=username,
        )
        await self._notify(recipient.pub, notification, secret)

        logger.info(f"Shared document {doc_id} with {username}")
        return grant

    @returns_result
    async def unshare_document(self, doc_id: str, user_id: str) -> bool:
        """
        Отзыв доступа; отсутствие права доступа не ошибка.

        Ключ не ротируется: получатель, уже прочитавший ключ, сохраняет его.
        """
        session = self.sessions.require()
        repository = DocumentRepository(self.store, session.pub)
        stored = await repository.get_by_id(doc_id, with_access=False)
        if stored is None:
            raise NotFound(f"Document {doc_id} not found")

        if await repository.get_grant(stored.key_id, user_id) is not None:
            await retry_call(lambda: repository.remove_grant(stored.key_id, user_id), self.retry_options)
        await retry_call(lambda: self.namespace.delete([SHARED_SEGMENT, user_id, doc_id]), self.retry_options)

        for recipient in await self.identity.find_identities(user_id):
            secret = self.crypto.derive_shared_secret(recipient.epub, session.pair)
            entry = self._inbox_entry(recipient.pub, session.pub, doc_id, secret)
            if await entry.once() is not None:
                await entry.put(None)

        logger.info(f"Revoked access to document {doc_id} for {user_id}")
        return True

    @returns_result
    async def list_shared_with_me(self) -> List[SharedDocNotification]:
        """Уведомления из входящего ящика текущего пользователя"""
        session = self.sessions.require()
        notifications = []
        for key, entry in await self.store.collect(self._inbox(session.pub)):
            if not isinstance(entry, dict) or not entry.get("sender_epub") or not entry.get("payload"):
                continue
            sender = await self.identity.load_identity(entry.get("sender_pub"))
            if sender is None or sender.epub != entry["sender_epub"]:
                logger.warning(f"Skipping inbox entry {key} not matching the sender's published profile")
                continue
            secret = self.crypto.derive_shared_secret(entry["sender_epub"], session.pair)
            try:
                notification = SharedDocNotification.from_json(
                    self.codec.fields.decrypt_field(entry["payload"], secret)
                )
            except DecryptionError:
                logger.warning(f"Skipping unreadable inbox entry {key}")
                continue
            if notification.sender_pub != entry.get("sender_pub"):
                logger.warning(f"Skipping inbox entry {key} with mismatched sender")
                continue
            notifications.append(notification)

        return sorted(notifications, key=lambda item: item.shared_at)

    @returns_result
    async def list_outgoing_shares(self) -> List[SharedDocNotification]:
        """Выданные текущим пользователем доступы"""
        values = await self.namespace.list([SHARED_SEGMENT])
        notifications = [SharedDocNotification.from_json(value) for value in values]
        return sorted(notifications, key=lambda item: item.shared_at)

    @returns_result
    async def open_shared_document(self, owner_pub: str, doc_id: str) -> Document:
        """Открыть чужой документ или его ветку по праву доступа к корню линии"""
        session = self.sessions.require()
        repository = DocumentRepository(self.store, owner_pub)
        stored = await repository.get_by_id(doc_id, with_access=False)
        if stored is None:
            raise NotFound(f"Document {doc_id} not found")

        grant = await repository.get_grant(stored.key_id, session.alias)
        if grant is None:
            raise PermissionDenied("Access to this document has not been granted")

        key = None
        if not stored.is_public:
            if not grant.encrypted_doc_key:
                raise PermissionDenied("Access grant does not carry a document key")
            secret = self.crypto.derive_shared_secret(grant.sender_epub, session.pair)
            key = self.codec.fields.decrypt_field(grant.encrypted_doc_key, secret)

        return self.codec.open(stored, key, owner_pub=owner_pub)
