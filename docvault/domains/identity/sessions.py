import asyncio
import logging
from typing import Optional

from docvault.core.crypto import CryptoModule, KeyPair
from docvault.core.errors import AuthRequired
from docvault.domains.identity.entities import Session, SigningState

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Текущая сессия пира.

    Состояние подписи вычисляется в фоне после входа. Пока оно не готово,
    операции над приватными путями завершаются NotReady.
    Выход всегда полностью завершается до следующего входа.
    """

    def __init__(self, crypto: CryptoModule):
        self.crypto = crypto
        self._lock = asyncio.Lock()
        self._current: Optional[Session] = None
        self._generation = 0
        self._warmup: Optional[asyncio.Task] = None

    @property
    def current(self) -> Optional[Session]:
        return self._current

    def require(self) -> Session:
        if self._current is None:
            raise AuthRequired("No authenticated user")
        return self._current

    def ensure_current(self, session: Session) -> None:
        """Устаревшая сессия не должна получать доступ к ключам"""
        current = self._current
        if current is None or current is not session or current.generation != session.generation:
            raise AuthRequired("Session is no longer current")

    async def sign_in(self, alias: str, pair: KeyPair) -> Session:
        async with self._lock:
            await self._sign_out_locked()

            self._generation += 1
            session = Session(alias=alias, pair=pair, generation=self._generation)
            self._current = session
            self._warmup = asyncio.create_task(self._warm(session))

        logger.info(f"Signed in as {alias} (generation {session.generation})")
        return session

    async def sign_out(self) -> None:
        async with self._lock:
            await self._sign_out_locked()

    async def wait_ready(self) -> Optional[Session]:
        """Дождаться готовности состояния подписи текущей сессии"""
        task = self._warmup
        if task is not None:
            await task
        return self._current

    async def _sign_out_locked(self) -> None:
        task, self._warmup = self._warmup, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        session, self._current = self._current, None
        if session is not None:
            session.signing_state = None
            logger.info(f"Signed out {session.alias}")

    async def _warm(self, session: Session) -> None:
        state = await asyncio.to_thread(self._derive_signing_state, session.pair)
        if self._current is session:
            session.signing_state = state

    def _derive_signing_state(self, pair: KeyPair) -> SigningState:
        return SigningState(
            path_key=self.crypto.derive_path_key(pair),
            self_secret=self.crypto.derive_shared_secret(pair.epub, pair),
        )
