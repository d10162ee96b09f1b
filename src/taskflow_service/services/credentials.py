"""Encryption of integration credentials at rest."""

import json
import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from ..config import settings
from ..exceptions import ConnectorAuthError

logger = logging.getLogger(__name__)


class CredentialCipher:
    """Fernet wrapper for credential dicts."""

    def __init__(self, key: str | bytes | None = None) -> None:
        # A generated key only lives as long as the process
        if not key:
            logger.warning("TASKFLOW_ENCRYPTION_KEY not set. Generating a temporary key.")
            key = Fernet.generate_key()

        try:
            self.fernet = Fernet(key.encode() if isinstance(key, str) else key)
        except Exception as e:
            logger.error(f"Invalid encryption key: {e}")
            self.fernet = Fernet(Fernet.generate_key())

    def encrypt(self, credentials: dict[str, str]) -> str:
        return self.fernet.encrypt(json.dumps(credentials).encode()).decode()

    def decrypt(self, token: str) -> dict[str, str]:
        """Decrypt stored credentials.

        Raises ConnectorAuthError if the token cannot be read, which usually
        means the encryption key changed and the user must reconnect.
        """
        try:
            return json.loads(self.fernet.decrypt(token.encode()).decode())
        except (InvalidToken, ValueError) as e:
            raise ConnectorAuthError("Stored credentials cannot be decrypted") from e


@lru_cache
def get_cipher() -> CredentialCipher:
    """Process-wide cipher built from settings."""
    return CredentialCipher(settings.encryption_key)
