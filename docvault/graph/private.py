"""
Приватное пространство пользователя.

Сегменты пути хешируются ключом, выведенным из приватного ключа подписи,
поэтому посторонний пир не может восстановить, какие документы лежат у владельца.
Значения шифруются собственным ECDH-секретом владельца.
"""

import logging
from typing import List, Optional, Sequence

from docvault.core.crypto import CryptoModule
from docvault.core.errors import DecryptionError
from docvault.graph.store import GraphStore, Node

logger = logging.getLogger(__name__)


class PrivatePathHasher:
    """Детерминированное хеширование сегментов приватного пути"""

    def __init__(self, crypto: CryptoModule, sessions):
        self.crypto = crypto
        self.sessions = sessions

    def hash_segment(self, segment: str, session) -> str:
        self.sessions.ensure_current(session)
        state = session.require_signing_state()
        return self.crypto.keyed_hash(segment, state.path_key)

    def hash_path(self, segments: Sequence[str], session) -> List[str]:
        return [self.hash_segment(segment, session) for segment in segments]


class PrivateNamespace:
    """Чтение и запись зашифрованных значений по хешированным путям ~{pub}"""

    def __init__(self, store: GraphStore, hasher: PrivatePathHasher, crypto: CryptoModule, sessions):
        self.store = store
        self.hasher = hasher
        self.crypto = crypto
        self.sessions = sessions

    def _resolve(self, segments: Sequence[str]):
        session = self.sessions.require()
        node = self.store.user(session.pub)
        for token in self.hasher.hash_path(segments, session):
            node = node.get(token)
        return session, node

    async def write(self, segments: Sequence[str], value: str) -> None:
        session, node = self._resolve(segments)
        blob = self.crypto.encrypt(value, session.require_signing_state().self_secret)
        await node.put(blob)

    async def read(self, segments: Sequence[str]) -> Optional[str]:
        """Расшифрованное значение или None, если записи нет"""
        session, node = self._resolve(segments)
        blob = await node.once()
        if blob is None:
            return None
        if not isinstance(blob, str):
            raise DecryptionError("Private entry is not an encrypted value")
        return self.crypto.decrypt(blob, session.require_signing_state().self_secret)

    async def delete(self, segments: Sequence[str]) -> None:
        _, node = self._resolve(segments)
        await node.put(None)

    async def list(self, segments: Sequence[str]) -> List[str]:
        """Все расшифрованные значения-листья под путем"""
        session, node = self._resolve(segments)
        values: List[str] = []
        await self._walk(node, session.require_signing_state().self_secret, values)
        return values

    async def _walk(self, node: Node, secret: str, values: List[str]) -> None:
        for key, value in await self.store.collect(node):
            if isinstance(value, dict):
                await self._walk(node.get(key), secret, values)
            elif isinstance(value, str):
                try:
                    values.append(self.crypto.decrypt(value, secret))
                except DecryptionError:
                    logger.warning(f"Skipping undecryptable private entry under {node.soul}")
