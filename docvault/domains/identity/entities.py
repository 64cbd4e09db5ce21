from datetime import datetime, timezone
from typing import Optional

from docvault.core.crypto import KeyPair
from docvault.core.errors import NotReady


class PublicIdentity:
    """Публичная часть личности, видимая другим пирам"""

    def __init__(self, alias: str, pub: str, epub: str, created_at: Optional[str] = None):
        self.alias = alias
        self.pub = pub
        self.epub = epub
        self.created_at = created_at

    @classmethod
    def from_profile(cls, profile: dict) -> Optional["PublicIdentity"]:
        """Профиль ~{pub} -> PublicIdentity, None для неполных профилей"""
        if not isinstance(profile, dict):
            return None
        if not all(isinstance(profile.get(field), str) for field in ("alias", "pub", "epub")):
            return None
        return cls(
            alias=profile["alias"],
            pub=profile["pub"],
            epub=profile["epub"],
            created_at=profile.get("created_at"),
        )

    def to_dict(self) -> dict:
        return {"alias": self.alias, "pub": self.pub, "epub": self.epub, "created_at": self.created_at}

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicIdentity):
            return False
        return self.pub == other.pub

    def __repr__(self) -> str:
        return f"PublicIdentity(alias={self.alias}, pub={self.pub[:12]}...)"


class SigningState:
    """Производные ключи сессии: ключ хеширования путей и секрет самошифрования"""

    def __init__(self, path_key: bytes, self_secret: str):
        self.path_key = path_key
        self.self_secret = self_secret


class Session:
    """Аутентифицированная сессия одной личности"""

    def __init__(self, alias: str, pair: KeyPair, generation: int):
        self.alias = alias
        self.pair = pair
        self.generation = generation
        self.signing_state: Optional[SigningState] = None
        self.signed_in_at = datetime.now(timezone.utc)

    @property
    def pub(self) -> str:
        return self.pair.pub

    @property
    def epub(self) -> str:
        return self.pair.epub

    @property
    def is_ready(self) -> bool:
        return self.signing_state is not None

    def require_signing_state(self) -> SigningState:
        if self.signing_state is None:
            raise NotReady("Signing state not initialized")
        return self.signing_state

    def public_identity(self) -> PublicIdentity:
        return PublicIdentity(alias=self.alias, pub=self.pair.pub, epub=self.pair.epub)

    def __repr__(self) -> str:
        return f"Session(alias={self.alias}, generation={self.generation}, ready={self.is_ready})"
