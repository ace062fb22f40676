"""
encryption.py — Fernet symmetric encryption for participant contact data
=========================================================================
Email and phone are encrypted before they are stored and decrypted on
read. When ASSESSMENT_ENCRYPTION_KEY is not set (development only, the
settings validator refuses this elsewhere) values are stored as plain
text. Generate a key with:

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""
from __future__ import annotations

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger("assessment.encryption")

_fernet: Optional[Fernet] = None
_initialized = False


def _get_fernet() -> Optional[Fernet]:
    """Lazily initialise the Fernet cipher from settings."""
    global _fernet, _initialized
    if _initialized:
        return _fernet
    _initialized = True
    from .config import settings
    key = settings.encryption_key
    if key:
        _fernet = Fernet(key.encode())
        logger.info("Encryption enabled for participant contact data.")
    else:
        logger.warning(
            "ASSESSMENT_ENCRYPTION_KEY not set; participant contact data stored in plain text."
        )
    return _fernet


def reset_cipher() -> None:
    """Forget the cached cipher so the next call re-reads settings."""
    global _fernet, _initialized
    _fernet = None
    _initialized = False


def encrypt_value(plain_text: str) -> str:
    """Encrypt a string value. Returns plain text if no key is configured."""
    f = _get_fernet()
    if f is None:
        return plain_text
    return f.encrypt(plain_text.encode()).decode()


def decrypt_value(encrypted_text: str) -> str:
    """Decrypt a string value. Returns the input unchanged if it is not a token."""
    f = _get_fernet()
    if f is None:
        return encrypted_text
    try:
        return f.decrypt(encrypted_text.encode()).decode()
    except InvalidToken:
        # Plain text stored before encryption was enabled
        return encrypted_text
