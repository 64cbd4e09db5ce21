import logging
from typing import Optional

from docvault.core.crypto import CryptoModule
from docvault.core.errors import DecryptionError, KeyNotFound
from docvault.core.retry import retry_with_backoff
from docvault.graph.private import PrivateNamespace

logger = logging.getLogger(__name__)

KEYS_SEGMENT = "docKeys"


class DocumentKeyManager:
    """
    Ключи документов в приватном пространстве владельца.

    Один ключ на корень линии, путь ~{pub}/{h(docKeys)}/{h(docId)},
    значение зашифровано собственным секретом владельца.
    """

    def __init__(self, namespace: PrivateNamespace, crypto: CryptoModule, retry_options: Optional[dict] = None):
        self.namespace = namespace
        self.crypto = crypto
        self.retry_options = retry_options or {}

    def generate_key(self) -> str:
        return self.crypto.generate_symmetric_key()

    async def write_key(self, doc_id: str, key: str) -> None:
        async def write(attempt: int) -> None:
            await self.namespace.write([KEYS_SEGMENT, doc_id], key)

        await retry_with_backoff(write, **self.retry_options)

    async def read_key(self, doc_id: str) -> str:
        async def read(attempt: int) -> Optional[str]:
            return await self.namespace.read([KEYS_SEGMENT, doc_id])

        try:
            key = await retry_with_backoff(read, **self.retry_options)
        except DecryptionError as e:
            raise KeyNotFound("Document key could not be decrypted", details=e) from e

        if not key:
            raise KeyNotFound("Document key not found")
        return key

    async def delete_key(self, doc_id: str) -> None:
        async def delete(attempt: int) -> None:
            await self.namespace.delete([KEYS_SEGMENT, doc_id])

        await retry_with_backoff(delete, **self.retry_options)
        logger.info(f"Deleted key for document {doc_id}")
