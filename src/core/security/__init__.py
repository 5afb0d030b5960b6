from src.core.security.crypto import EncryptionError, PasswordHasher, SecurityCipher
from src.core.security.dependencies import get_password_hasher, get_security_cipher

__all__ = [
    "EncryptionError",
    "PasswordHasher",
    "SecurityCipher",
    "get_password_hasher",
    "get_security_cipher",
]
