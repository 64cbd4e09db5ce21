import logging
from datetime import datetime, timezone
from typing import List, Optional

from docvault.core.crypto import CryptoModule, KeyPair, b64decode, b64encode
from docvault.core.errors import AuthRequired, DecryptionError, ValidationError, returns_result
from docvault.core.retry import retry_with_backoff
from docvault.core.security import create_access_token
from docvault.domains.identity.entities import PublicIdentity, Session
from docvault.domains.identity.sessions import SessionManager
from docvault.graph.store import SEPARATOR, GraphStore

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class IdentityService:
    """Сервис регистрации, входа и поиска пользователей"""

    def __init__(
        self,
        store: GraphStore,
        sessions: SessionManager,
        crypto: CryptoModule,
        kdf_iterations: int = 100_000,
        retry_options: Optional[dict] = None,
    ):
        self.store = store
        self.sessions = sessions
        self.crypto = crypto
        self.kdf_iterations = kdf_iterations
        self.retry_options = retry_options or {}

    def _validate_credentials(self, alias: str, password: str) -> None:
        if not isinstance(alias, str) or not alias.strip():
            raise ValidationError("Alias is required")
        if SEPARATOR in alias:
            raise ValidationError(f"Alias must not contain '{SEPARATOR}'")
        if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    @returns_result
    async def register_user(self, alias: str, password: str) -> PublicIdentity:
        """Регистрация новой личности, после регистрации пользователь остается в системе"""
        self._validate_credentials(alias, password)

        if await self.find_identities(alias):
            raise ValidationError("User already exists")

        pair = self.crypto.generate_key_pair()
        wrapping_key, salt = self.crypto.derive_key_from_password(password, iterations=self.kdf_iterations)
        profile = {
            "alias": alias,
            "pub": pair.pub,
            "epub": pair.epub,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "auth": {
                "salt": b64encode(salt),
                "iterations": self.kdf_iterations,
                "ek": self.crypto.encrypt(pair.to_json(), wrapping_key),
            },
        }

        await self.sessions.sign_in(alias, pair)

        async def write_profile(attempt: int) -> None:
            await self.store.user(pair.pub).put(profile)

        await retry_with_backoff(write_profile, **self.retry_options)
        await self.store.get(f"~@{alias}").get(pair.pub).put({"pub": pair.pub})

        logger.info(f"Registered user {alias}")
        return PublicIdentity.from_profile(profile)

    @returns_result
    async def authenticate_user(self, alias: str, password: str) -> PublicIdentity:
        """Вход по псевдониму и паролю"""
        session = await self._authenticate(alias, password)
        return session.public_identity()

    @returns_result
    async def login_user(self, alias: str, password: str) -> str:
        """Вход и выдача JWT токена"""
        session = await self._authenticate(alias, password)
        return create_access_token(data={"sub": session.pub, "alias": session.alias})

    async def _authenticate(self, alias: str, password: str) -> Session:
        if not alias or not password:
            raise AuthRequired("Wrong user or password")

        for pub in await self._pubs_for_alias(alias):
            pair = await self._unwrap_pair(pub, password)
            if pair is not None:
                return await self.sessions.sign_in(alias, pair)

        raise AuthRequired("Wrong user or password")

    async def _unwrap_pair(self, pub: str, password: str) -> Optional[KeyPair]:
        auth = await self.store.user(pub).get("auth").once()
        if not isinstance(auth, dict) or "ek" not in auth or "salt" not in auth:
            return None

        wrapping_key, _ = self.crypto.derive_key_from_password(
            password,
            salt=b64decode(auth["salt"]),
            iterations=int(auth.get("iterations", self.kdf_iterations)),
        )
        try:
            pair = KeyPair.from_json(self.crypto.decrypt(auth["ek"], wrapping_key))
        except DecryptionError:
            return None
        return pair if pair.pub == pub else None

    @returns_result
    async def sign_out(self) -> bool:
        await self.sessions.sign_out()
        return True

    @returns_result
    async def discover_users(self, alias: str) -> List[PublicIdentity]:
        """Поиск публичных личностей по псевдониму"""
        if not isinstance(alias, str) or not alias.strip():
            raise ValidationError("Alias is required")
        return await self.find_identities(alias)

    @returns_result
    async def get_public_identity(self, pub: str) -> Optional[PublicIdentity]:
        return await self.load_identity(pub)

    def current_identity(self) -> Optional[PublicIdentity]:
        session = self.sessions.current
        return session.public_identity() if session else None

    async def _pubs_for_alias(self, alias: str) -> List[str]:
        if SEPARATOR in alias:
            return []
        entries = await self.store.collect(self.store.get(f"~@{alias}"))
        return [value["pub"] for _, value in entries if isinstance(value, dict) and value.get("pub")]

    async def find_identities(self, alias: str) -> List[PublicIdentity]:
        identities = []
        for pub in await self._pubs_for_alias(alias):
            identity = await self.load_identity(pub)
            if identity is not None and identity.alias == alias:
                identities.append(identity)
        return identities

    async def load_identity(self, pub: str) -> Optional[PublicIdentity]:
        if not pub or SEPARATOR in pub:
            return None
        return PublicIdentity.from_profile(await self.store.user(pub).once())
