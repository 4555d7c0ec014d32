"""
Field-level encryption for PII attributes at rest.

Each attribute is encrypted independently with AES-256-GCM. The output is
base64(nonce || ciphertext || tag), with a fresh random 96-bit nonce per call.
"""

import base64
import binascii
import logging
import os
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
KEY_SIZE = 32


class FieldCipher:
    """
    Encrypt/decrypt individual PII fields.

    Fails closed: any error (bad key size, corrupt blob, tag mismatch) is
    logged and yields an empty string. Callers must treat an empty result
    for a non-empty input as a failure, never as a valid empty field.
    """

    def __init__(self, key: str):
        self._key = key.encode("utf-8")

    def _cipher(self) -> AESGCM:
        if len(self._key) != KEY_SIZE:
            raise ValueError(f"field encryption key must be {KEY_SIZE} bytes, got {len(self._key)}")
        return AESGCM(self._key)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a field for storage.

        Args:
            plaintext: Plain text value

        Returns:
            Base64 blob, or "" on failure
        """
        try:
            cipher = self._cipher()
            nonce = os.urandom(NONCE_SIZE)
            sealed = cipher.encrypt(nonce, plaintext.encode("utf-8"), None)
            return base64.b64encode(nonce + sealed).decode("ascii")
        except Exception as e:
            logger.error(f"Field encryption failed: {e}")
            return ""

    def decrypt(self, blob: str) -> str:
        """
        Decrypt a stored field.

        Args:
            blob: Base64 blob produced by encrypt()

        Returns:
            Plain text value, or "" on failure
        """
        try:
            cipher = self._cipher()
            data = base64.b64decode(blob.encode("ascii"), validate=True)
            if len(data) < NONCE_SIZE:
                raise ValueError("ciphertext shorter than nonce")
            nonce, sealed = data[:NONCE_SIZE], data[NONCE_SIZE:]
            return cipher.decrypt(nonce, sealed, None).decode("utf-8")
        except InvalidTag:
            logger.error("Field decryption failed: authentication tag mismatch")
            return ""
        except (ValueError, binascii.Error, UnicodeError) as e:
            logger.error(f"Field decryption failed: {e}")
            return ""
