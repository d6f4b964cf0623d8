"""Symmetric encryption for secrets stored in the database (gateway keys).

Uses Fernet from `cryptography`. The key comes from ENCRYPTION_KEY; when it
is unset a key is derived from FLASK_SECRET_KEY with PBKDF2 so dev setups
still work. ENCRYPTION_SALT overrides the derivation salt.
"""
import base64
import os
import logging

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger('practicehub.core.crypto')

KDF_ITERATIONS = 480000
DEFAULT_SALT = b'practicehub.gateway-secrets.v1'

_fernet = None


def derive_key(secret: str, salt: bytes = DEFAULT_SALT) -> bytes:
    """Fernet key (urlsafe base64 of 32 bytes) derived from a passphrase."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode('utf-8')))


def _get_fernet():
    global _fernet
    if _fernet is None:
        key = os.environ.get('ENCRYPTION_KEY')
        if not key:
            secret = os.environ.get('FLASK_SECRET_KEY', 'dev-secret-key-for-local-only')
            salt = os.environ.get('ENCRYPTION_SALT')
            key = derive_key(secret, salt.encode('utf-8') if salt else DEFAULT_SALT)
            logger.warning('ENCRYPTION_KEY not set, deriving key from FLASK_SECRET_KEY')
        _fernet = Fernet(key.encode() if isinstance(key, str) else key)
    return _fernet


def reset_key_cache():
    """Forget the cached Fernet instance (key rotation, tests)."""
    global _fernet
    _fernet = None


def encrypt_value(plaintext: str) -> str:
    if plaintext is None:
        return None
    return _get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_value(token: str) -> str:
    """Decrypt a value produced by encrypt_value(). Raises ValueError if it was tampered with."""
    if token is None:
        return None
    try:
        return _get_fernet().decrypt(token.encode()).decode()
    except InvalidToken as e:
        raise ValueError('Stored secret could not be decrypted with the current key') from e


def mask_secret(value, visible=4):
    """'sk_live_abcdef1234' -> '************1234'."""
    if not value:
        return value
    value = str(value)
    if len(value) <= visible:
        return '*' * len(value)
    return '*' * (len(value) - visible) + value[-visible:]
