import logging
import uuid
from typing import Optional

from docvault.core.config import Settings, settings as default_settings
from docvault.core.crypto import get_crypto
from docvault.core.db import create_session_factory, init_models
from docvault.domains.branches.services import BranchService
from docvault.domains.documents.codec import DocumentCodec, FieldCodec
from docvault.domains.documents.keys import DocumentKeyManager
from docvault.domains.documents.services import DocumentService
from docvault.domains.identity.services import IdentityService
from docvault.domains.identity.sessions import SessionManager
from docvault.domains.sharing.services import SharingService
from docvault.graph.backends import GraphBackend, MemoryGraphBackend, SqlGraphBackend
from docvault.graph.private import PrivateNamespace, PrivatePathHasher
from docvault.graph.store import GraphStore

logger = logging.getLogger(__name__)


async def create_backend(config: Settings) -> GraphBackend:
    """Бэкенд графа по настройкам"""
    if config.store_backend == "sql":
        engine, session_factory = create_session_factory(config.database_url, echo=config.database_echo)
        await init_models(engine)
        logger.info(f"Using SQL graph backend at {config.database_url}")
        return SqlGraphBackend(session_factory, engine=engine)

    logger.info(f"Using in-memory graph backend (propagation delay {config.propagation_delay}s)")
    return MemoryGraphBackend(propagation_delay=config.propagation_delay)


class DocVault:
    """
    Один пир: сессия, хранилище и сервисы поверх общего бэкенда.

    Несколько экземпляров с одним бэкендом моделируют разных пользователей
    одной реплицируемой сети.
    """

    def __init__(self, backend: GraphBackend, config: Optional[Settings] = None, peer_id: Optional[str] = None):
        self.settings = config or default_settings
        self.backend = backend
        self.peer_id = peer_id or uuid.uuid4().hex
        self.crypto = get_crypto()

        retry_options = self.settings.retry_options()

        self.sessions = SessionManager(self.crypto)
        self.store = GraphStore(backend, self.peer_id, self.sessions, list_timeout=self.settings.list_timeout)
        self.hasher = PrivatePathHasher(self.crypto, self.sessions)
        self.private = PrivateNamespace(self.store, self.hasher, self.crypto, self.sessions)
        self.keys = DocumentKeyManager(self.private, self.crypto, retry_options)
        self.codec = DocumentCodec(FieldCodec(self.crypto))

        self.identity = IdentityService(
            self.store,
            self.sessions,
            self.crypto,
            kdf_iterations=self.settings.kdf_iterations,
            retry_options=retry_options,
        )
        self.documents = DocumentService(self.store, self.sessions, self.keys, self.codec, retry_options)
        self.sharing = SharingService(
            self.store,
            self.sessions,
            self.identity,
            self.keys,
            self.codec,
            self.private,
            self.crypto,
            app_namespace=self.settings.app_namespace,
            retry_options=retry_options,
        )
        self.branches = BranchService(self.store, self.sessions, self.keys, self.codec, retry_options)

    @classmethod
    async def from_settings(cls, config: Optional[Settings] = None) -> "DocVault":
        config = config or default_settings
        return cls(await create_backend(config), config)

    async def close(self) -> None:
        await self.sessions.sign_out()
        await self.backend.close()

    def __repr__(self) -> str:
        return f"DocVault(peer_id={self.peer_id}, session={self.sessions.current})"
