"""AES-GCM encryption and display masking for stored API keys."""
import secrets
from typing import Final, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from mediareaper.config import ConfigurationError, settings

MASK_MARKER: Final[str] = "****"
VISIBLE_SUFFIX: Final[int] = 4
# Secrets this short are fully redacted
MIN_REVEAL_LENGTH: Final[int] = 9
NONCE_SIZE: Final[int] = 12


class DecryptionError(ValueError):
    """Stored ciphertext is corrupt or was sealed with another key."""


class CredentialCodec:
    """Symmetric encryption of API keys with a process-wide AES-256 key.

    Ciphertexts are hex strings of ``nonce || ciphertext || tag`` so they can
    live in a plain text column.
    """

    def __init__(self, hex_key: Optional[str]):
        if not hex_key:
            raise ConfigurationError("MEDIAREAPER_MASTER_KEY must be set for credential encryption")
        try:
            key_bytes = bytes.fromhex(hex_key)
        except ValueError as exc:
            raise ConfigurationError("MEDIAREAPER_MASTER_KEY must be hex encoded") from exc
        if len(key_bytes) != 32:
            raise ConfigurationError("MEDIAREAPER_MASTER_KEY must be 32 bytes (64 hex characters)")
        self._aes = AESGCM(key_bytes)

    def encrypt(self, secret: str) -> str:
        nonce = secrets.token_bytes(NONCE_SIZE)
        sealed = self._aes.encrypt(nonce, secret.encode("utf-8"), associated_data=None)
        return (nonce + sealed).hex()

    def decrypt(self, blob: str) -> str:
        try:
            data = bytes.fromhex(blob)
        except ValueError as exc:
            raise DecryptionError("ciphertext is not hex encoded") from exc
        if len(data) <= NONCE_SIZE:
            raise DecryptionError("ciphertext too short")
        nonce, sealed = data[:NONCE_SIZE], data[NONCE_SIZE:]
        try:
            return self._aes.decrypt(nonce, sealed, associated_data=None).decode("utf-8")
        except InvalidTag as exc:
            raise DecryptionError("ciphertext failed authentication") from exc

    def mask_encrypted(self, blob: str) -> str:
        """Masked display form of a stored secret; the plaintext never leaves this call."""
        try:
            return mask(self.decrypt(blob))
        except DecryptionError:
            return MASK_MARKER

    @staticmethod
    def generate_key() -> str:
        """Generate a new hex master key."""
        return AESGCM.generate_key(bit_length=256).hex()


def mask(secret: str) -> str:
    """Return the redacted display form of ``secret``.

    The result is always shorter than any secret whose tail it reveals, so the
    secret can never appear inside its own mask.
    """
    if len(secret) < MIN_REVEAL_LENGTH:
        return MASK_MARKER
    return MASK_MARKER + secret[-VISIBLE_SUFFIX:]


def load_codec() -> CredentialCodec:
    """Construct the codec from settings; raises ConfigurationError if the key is unusable."""
    return CredentialCodec(settings.master_key)
