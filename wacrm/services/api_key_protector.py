"""
Encryption at rest for provider and WhatsApp API keys.

Keys are sealed with AES-256-GCM. The stored value is the 12 byte random
nonce followed by the ciphertext and tag; the AES key is the SHA-256 digest
of ``API_KEY_ENCRYPTION_SECRET``.
"""
from __future__ import annotations

import hashlib
import logging
import os
import secrets
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from wacrm.utils.runtime import insecure_defaults_allowed

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
_DEV_SECRET = "wacrm-development-only-secret"


class ApiKeyDecryptionError(Exception):
    """Raised when a stored key cannot be decrypted with the configured secret."""


class ApiKeyProtector:
    def __init__(self, secret: Optional[str] = None) -> None:
        if secret is None:
            secret = os.getenv("API_KEY_ENCRYPTION_SECRET")
        if not secret:
            if not insecure_defaults_allowed():
                raise RuntimeError("API_KEY_ENCRYPTION_SECRET must be set")
            logger.warning("API_KEY_ENCRYPTION_SECRET not set; using the development secret.")
            secret = _DEV_SECRET
        self._aesgcm = AESGCM(hashlib.sha256(secret.encode("utf-8")).digest())

    def protect(self, plain: Optional[str]) -> Optional[bytes]:
        if plain is None or plain == "":
            return None
        nonce = secrets.token_bytes(NONCE_SIZE)
        return nonce + self._aesgcm.encrypt(nonce, plain.encode("utf-8"), None)

    def unprotect(self, sealed: Optional[bytes]) -> Optional[str]:
        if not sealed:
            return None
        if len(sealed) <= NONCE_SIZE:
            raise ApiKeyDecryptionError("Stored API key is truncated")
        nonce, ciphertext = sealed[:NONCE_SIZE], sealed[NONCE_SIZE:]
        try:
            return self._aesgcm.decrypt(nonce, bytes(ciphertext), None).decode("utf-8")
        except InvalidTag as exc:
            raise ApiKeyDecryptionError("Stored API key could not be decrypted") from exc


def get_protector() -> ApiKeyProtector:
    """Build a protector from the current environment."""
    return ApiKeyProtector()


def mask_api_key(plain: Optional[str]) -> Optional[str]:
    """Hide all but the last four characters of a key."""
    if not plain:
        return None
    if len(plain) <= 4:
        return "****"
    return "*" * (len(plain) - 4) + plain[-4:]
