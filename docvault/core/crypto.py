"""
Криптографический модуль docvault.

- P-256 пары ключей: подпись (pub/priv) и шифрование (epub/epriv)
- ECDH на P-256 + HKDF-SHA256 для общего секрета
- AES-256-GCM для шифрования полей и ключей
- HMAC-SHA256 для хеширования приватных путей
- PBKDF2 для обертки пары ключей паролем
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from docvault.core.errors import DecryptionError, EncryptionError

BLOB_PREFIX = "ENC_"
SALT_SIZE = 16
NONCE_SIZE = 12  # 96 бит для GCM
TAG_SIZE = 16

_CURVE = ec.SECP256R1()


def b64encode(data: bytes) -> str:
    """Base64 URL-safe без выравнивания"""
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


@dataclass(frozen=True)
class KeyPair:
    """Пара ключей личности"""
    pub: str
    priv: str
    epub: str
    epriv: str

    def to_json(self) -> str:
        return json.dumps({"pub": self.pub, "priv": self.priv, "epub": self.epub, "epriv": self.epriv})

    @classmethod
    def from_json(cls, raw: str) -> "KeyPair":
        data = json.loads(raw)
        return cls(pub=data["pub"], priv=data["priv"], epub=data["epub"], epriv=data["epriv"])

    def __repr__(self) -> str:
        return f"KeyPair(pub={self.pub[:12]}..., epub={self.epub[:12]}...)"


class CryptoModule:
    """
    Обертка над cryptography с форматами ключей docvault.

    Публичные ключи кодируются как "x.y" (base64url координат точки),
    приватные - как base64url скаляра.
    """

    # ==================== Пары ключей ====================

    def generate_key_pair(self) -> KeyPair:
        """Генерация пары подписи и пары шифрования"""
        try:
            signing = ec.generate_private_key(_CURVE)
            encryption = ec.generate_private_key(_CURVE)
        except Exception as e:
            raise EncryptionError("Failed to generate key pair", details=e) from e

        return KeyPair(
            pub=self._encode_public(signing.public_key()),
            priv=self._encode_private(signing),
            epub=self._encode_public(encryption.public_key()),
            epriv=self._encode_private(encryption),
        )

    def _encode_public(self, key: ec.EllipticCurvePublicKey) -> str:
        point = key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)
        return f"{b64encode(point[1:33])}.{b64encode(point[33:])}"

    def _decode_public(self, encoded: str) -> ec.EllipticCurvePublicKey:
        try:
            x, y = encoded.split(".")
            return ec.EllipticCurvePublicKey.from_encoded_point(_CURVE, b"\x04" + b64decode(x) + b64decode(y))
        except (ValueError, binascii.Error) as e:
            raise EncryptionError("Invalid public key", details=e) from e

    def _encode_private(self, key: ec.EllipticCurvePrivateKey) -> str:
        return b64encode(key.private_numbers().private_value.to_bytes(32, "big"))

    def _decode_private(self, encoded: str) -> ec.EllipticCurvePrivateKey:
        try:
            return ec.derive_private_key(int.from_bytes(b64decode(encoded), "big"), _CURVE)
        except (ValueError, binascii.Error) as e:
            raise EncryptionError("Invalid private key", details=e) from e

    # ==================== ECDH ====================

    def derive_shared_secret(self, peer_epub: str, own_pair: KeyPair) -> str:
        """
        Общий секрет ECDH.

        derive_shared_secret(B.epub, A) == derive_shared_secret(A.epub, B)
        """
        own_key = self._decode_private(own_pair.epriv)
        peer_key = self._decode_public(peer_epub)
        try:
            shared = own_key.exchange(ec.ECDH(), peer_key)
        except ValueError as e:
            raise EncryptionError("ECDH derivation failed", details=e) from e

        derived = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=b"docvault.ecdh").derive(shared)
        return b64encode(derived)

    # ==================== Симметричное шифрование ====================

    def generate_symmetric_key(self) -> str:
        """Новый 256-битный ключ документа"""
        return b64encode(os.urandom(32))

    def _aead_key(self, key: str, salt: bytes) -> bytes:
        return HKDF(algorithm=hashes.SHA256(), length=32, salt=salt, info=b"docvault.aead").derive(
            key.encode("utf-8")
        )

    def encrypt(self, plaintext: str, key: str) -> str:
        """
        AES-256-GCM шифрование.

        Формат: ENC_<base64url(salt + nonce + ciphertext)>
        """
        if not key:
            raise EncryptionError("Encryption key is empty")
        try:
            salt = os.urandom(SALT_SIZE)
            nonce = os.urandom(NONCE_SIZE)
            ciphertext = AESGCM(self._aead_key(key, salt)).encrypt(nonce, plaintext.encode("utf-8"), None)
        except (TypeError, ValueError) as e:
            raise EncryptionError("Failed to encrypt data", details=e) from e
        return BLOB_PREFIX + b64encode(salt + nonce + ciphertext)

    def decrypt(self, blob: str, key: str) -> str:
        """Расшифровка ENC_ формата, при любой ошибке - DecryptionError"""
        if not isinstance(blob, str) or not blob.startswith(BLOB_PREFIX):
            raise DecryptionError("Invalid ciphertext format")
        if not key:
            raise DecryptionError("Decryption key is empty")

        try:
            combined = b64decode(blob[len(BLOB_PREFIX):])
        except (ValueError, binascii.Error) as e:
            raise DecryptionError("Invalid ciphertext encoding", details=e) from e

        if len(combined) < SALT_SIZE + NONCE_SIZE + TAG_SIZE:
            raise DecryptionError("Ciphertext is truncated")

        salt = combined[:SALT_SIZE]
        nonce = combined[SALT_SIZE:SALT_SIZE + NONCE_SIZE]
        ciphertext = combined[SALT_SIZE + NONCE_SIZE:]

        try:
            plaintext = AESGCM(self._aead_key(key, salt)).decrypt(nonce, ciphertext, None)
            return plaintext.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError) as e:
            raise DecryptionError("Data could not be decrypted", details=e) from e

    # ==================== Хеширование путей ====================

    def derive_path_key(self, pair: KeyPair) -> bytes:
        """Ключ HMAC для приватных путей, выводится из приватного ключа подписи"""
        try:
            scalar = b64decode(pair.priv)
        except (ValueError, binascii.Error) as e:
            raise EncryptionError("Invalid private key", details=e) from e
        return HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=b"docvault.path").derive(scalar)

    def keyed_hash(self, plaintext: str, path_key: bytes) -> str:
        """Детерминированный HMAC-SHA256 сегмента"""
        mac = crypto_hmac.HMAC(path_key, hashes.SHA256())
        mac.update(plaintext.encode("utf-8"))
        return b64encode(mac.finalize())

    # ==================== Пароль ====================

    def derive_key_from_password(
        self,
        password: str,
        salt: Optional[bytes] = None,
        iterations: int = 100_000,
    ) -> tuple:
        """
        Ключ из пароля (PBKDF2-SHA256).

        Returns:
            (derived_key_b64, salt)
        """
        if salt is None:
            salt = os.urandom(SALT_SIZE)

        kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=iterations)
        return b64encode(kdf.derive(password.encode("utf-8"))), salt


# Singleton instance
_crypto: Optional[CryptoModule] = None


def get_crypto() -> CryptoModule:
    """Получить экземпляр CryptoModule"""
    global _crypto
    if _crypto is None:
        _crypto = CryptoModule()
    return _crypto
