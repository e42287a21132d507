"""
Record encryption.

Records are encrypted with Fernet using a key derived from the user's
security key (PBKDF2-HMAC-SHA256). The token is stored in a small Turtle
document so that encrypted files remain valid RDF resources in the Pod.
"""

import base64
import logging
import re

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from healthpod.utils.exceptions import EncryptionError
from healthpod.utils.parameters import EncryptionConfig

logger = logging.getLogger(__name__)

ENCRYPTION_SCHEME = "fernet-pbkdf2-sha256"

_ENVELOPE_TEMPLATE = (
    "@prefix hp: <https://healthpod.solidcommunity.au/ns#> .\n"
    "\n"
    '<> hp:encryptionScheme "{scheme}" ;\n'
    '    hp:encData "{token}" .\n'
)
_ENC_DATA = re.compile(r'hp:encData\s+"([A-Za-z0-9_\-=]+)"')


def derive_key(security_key: str, salt: bytes, iterations: int) -> bytes:
    """
    Derive a Fernet key from a security key.

    Args:
        security_key: The user's security key.
        salt: Key derivation salt.
        iterations: PBKDF2 iteration count.

    Returns:
        URL-safe base64 key bytes for Fernet.
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return base64.urlsafe_b64encode(kdf.derive(security_key.encode("utf-8")))


class RecordCipher:
    """Encrypts and decrypts record documents stored in the Pod."""

    def __init__(self, security_key: str, config: EncryptionConfig) -> None:
        """
        Initialize record cipher.

        Args:
            security_key: The user's security key.
            config: Encryption configuration (salt and iteration count).

        Raises:
            EncryptionError: If no security key is given.
        """
        if not security_key:
            raise EncryptionError("A security key is required to encrypt or decrypt records")

        key = derive_key(security_key, config.salt.encode("utf-8"), config.iterations)
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt text into a Fernet token."""
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a Fernet token.

        Raises:
            EncryptionError: If the token is invalid or the key is wrong.
        """
        try:
            return self._fernet.decrypt(token.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise EncryptionError(
                "Could not decrypt record with the current security key"
            ) from e

    def encrypt_document(self, plaintext: str) -> str:
        """Encrypt text and wrap the token in a Turtle document."""
        return _ENVELOPE_TEMPLATE.format(scheme=ENCRYPTION_SCHEME, token=self.encrypt(plaintext))

    def decrypt_document(self, content: str) -> str:
        """
        Extract and decrypt the token held in a Turtle document.

        Raises:
            EncryptionError: If the document holds no token or cannot be decrypted.
        """
        match = _ENC_DATA.search(content)
        if not match:
            raise EncryptionError("Encrypted document does not contain hp:encData")

        return self.decrypt(match.group(1))
