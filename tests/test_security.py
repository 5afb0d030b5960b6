from __future__ import annotations

from cryptography.fernet import Fernet
import pytest

from src.core.security.crypto import EncryptionError, PasswordHasher, SecurityCipher
from src.core.security.dependencies import get_password_hasher, get_security_cipher


def test_security_cipher_roundtrip() -> None:
    key = Fernet.generate_key().decode()
    cipher = SecurityCipher(key)

    secret = "enphase-refresh-token"
    encrypted = cipher.encrypt(secret)

    assert encrypted != secret
    assert cipher.decrypt(encrypted) == secret


def test_security_cipher_invalid_token_raises() -> None:
    cipher = SecurityCipher(Fernet.generate_key().decode())

    with pytest.raises(EncryptionError):
        cipher.decrypt("not-a-valid-token")


def test_security_cipher_optional_helpers_pass_through_empty_values() -> None:
    cipher = SecurityCipher(Fernet.generate_key().decode())

    assert cipher.encrypt_optional(None) is None
    assert cipher.encrypt_optional("") is None
    assert cipher.decrypt_optional(None) is None
    assert cipher.decrypt_optional(cipher.encrypt_optional("abc")) == "abc"


def test_get_security_cipher_requires_env_key(monkeypatch: pytest.MonkeyPatch) -> None:
    from src.core.security import dependencies

    monkeypatch.setattr(dependencies.settings, "master_encryption_key", "")
    with pytest.raises(ValueError, match="MASTER_ENCRYPTION_KEY"):
        get_security_cipher()

    monkeypatch.setattr(dependencies.settings, "master_encryption_key", "replace_with_fernet_key")
    with pytest.raises(ValueError, match="MASTER_ENCRYPTION_KEY"):
        get_security_cipher()

    monkeypatch.setattr(dependencies.settings, "master_encryption_key", Fernet.generate_key().decode())
    assert isinstance(get_security_cipher(), SecurityCipher)


def test_password_hasher_verifies_matching_password() -> None:
    hasher = PasswordHasher(n=2**10)
    encoded = hasher.hash("s3cret-pass")

    assert encoded.startswith("scrypt$")
    assert encoded != hasher.hash("s3cret-pass")
    assert hasher.verify("s3cret-pass", encoded) is True
    assert hasher.verify("wrong-pass", encoded) is False


def test_password_hasher_rejects_malformed_hashes() -> None:
    hasher = PasswordHasher(n=2**10)

    assert hasher.verify("anything", None) is False
    assert hasher.verify("anything", "") is False
    assert hasher.verify("anything", "no-separators") is False
    assert hasher.verify("anything", "bcrypt$abc$def") is False


def test_get_password_hasher_is_shared() -> None:
    assert get_password_hasher() is get_password_hasher()
