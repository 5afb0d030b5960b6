from __future__ import annotations

import base64
import hmac
import os

from cryptography.exceptions import InvalidKey
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt


class EncryptionError(ValueError):
    pass


class SecurityCipher:
    """Fernet wrapper used for third-party tokens stored at rest."""

    def __init__(self, fernet_key: str) -> None:
        self._fernet = Fernet(fernet_key.encode("utf-8"))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Unable to decrypt value") from exc
        return plaintext.decode("utf-8")

    def encrypt_optional(self, plaintext: str | None) -> str | None:
        return self.encrypt(plaintext) if plaintext else None

    def decrypt_optional(self, ciphertext: str | None) -> str | None:
        return self.decrypt(ciphertext) if ciphertext else None


class PasswordHasher:
    """scrypt password hashes serialised as ``scrypt$<salt>$<digest>``."""

    scheme = "scrypt"

    def __init__(self, *, n: int = 2**14, r: int = 8, p: int = 1, length: int = 32) -> None:
        self.n = n
        self.r = r
        self.p = p
        self.length = length

    def _kdf(self, salt: bytes) -> Scrypt:
        return Scrypt(salt=salt, length=self.length, n=self.n, r=self.r, p=self.p)

    def hash(self, password: str) -> str:
        salt = os.urandom(16)
        digest = self._kdf(salt).derive(password.encode("utf-8"))
        return "$".join(
            [
                self.scheme,
                base64.urlsafe_b64encode(salt).decode("ascii"),
                base64.urlsafe_b64encode(digest).decode("ascii"),
            ]
        )

    def verify(self, password: str, encoded: str | None) -> bool:
        if not encoded:
            return False
        try:
            scheme, salt_b64, digest_b64 = encoded.split("$", 2)
            salt = base64.urlsafe_b64decode(salt_b64)
            digest = base64.urlsafe_b64decode(digest_b64)
        except ValueError:
            return False
        if not hmac.compare_digest(scheme, self.scheme):
            return False

        try:
            self._kdf(salt).verify(password.encode("utf-8"), digest)
        except InvalidKey:
            return False
        return True
