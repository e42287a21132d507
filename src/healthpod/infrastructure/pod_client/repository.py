"""
Pod repository for HealthPod data.

Wraps a Pod store with the application's data container and record
encryption, providing read_pod/write_pod style access to record files.
"""

import logging

from healthpod.infrastructure.crypto.cipher import RecordCipher
from healthpod.infrastructure.pod_client.client import PodResources, PodStore
from healthpod.utils.exceptions import EncryptionError, PodClientError
from healthpod.utils.paths import BASE_PATH, ENCRYPTED_SUFFIX

logger = logging.getLogger(__name__)


class PodRepository:
    """
    Access to the HealthPod data container of a Pod.

    Paths are relative to ``healthpod/data``. Files ending in ``.enc.ttl``
    are decrypted on read.
    """

    def __init__(self, store: PodStore, cipher: RecordCipher | None = None) -> None:
        """
        Initialize Pod repository.

        Args:
            store: Underlying Pod store.
            cipher: Record cipher. Required to read or write encrypted files.
        """
        self.store = store
        self.cipher = cipher

    def _full_path(self, path: str) -> str:
        relative = path.strip("/")
        return f"{BASE_PATH}/{relative}" if relative else BASE_PATH

    def _require_cipher(self) -> RecordCipher:
        if self.cipher is None:
            raise EncryptionError("No security key available for encrypted records")
        return self.cipher

    def get_dir_url(self, path: str) -> str:
        """Return the URL of a container under the data container."""
        return self.store.get_dir_url(self._full_path(path))

    def get_resources_in_container(self, path: str) -> PodResources:
        """List a container under the data container."""
        return self.store.list_resources(self._full_path(path))

    def read_pod(self, path: str) -> str:
        """
        Read a file, decrypting it if it is encrypted.

        Raises:
            PodClientError: If the file cannot be read.
            EncryptionError: If the file cannot be decrypted.
        """
        content = self.store.read(self._full_path(path))

        if path.endswith(ENCRYPTED_SUFFIX):
            return self._require_cipher().decrypt_document(content)
        return content

    def write_pod(self, path: str, content: str, encrypted: bool = True) -> None:
        """
        Write a file, encrypting it by default.

        Raises:
            PodClientError: If the file cannot be written.
            EncryptionError: If no cipher is available for an encrypted write.
        """
        if encrypted:
            if not path.endswith(ENCRYPTED_SUFFIX):
                raise PodClientError(f"Encrypted files must end with {ENCRYPTED_SUFFIX}: {path}")
            content = self._require_cipher().encrypt_document(content)

        self.store.write(self._full_path(path), content)

    def delete_file(self, path: str) -> None:
        """Delete a file under the data container."""
        self.store.delete(self._full_path(path))
        logger.info(f"Deleted {path}")

    def file_exists(self, path: str) -> bool:
        """Check whether a file exists under the data container."""
        return self.store.exists(self._full_path(path))

    def initialise_feature_folders(self, features: list[str]) -> list[str]:
        """
        Create the data container and one container per feature.

        Returns:
            URLs of the feature containers.
        """
        urls: list[str] = []
        self.store.create_container(BASE_PATH)

        for feature in features:
            self.store.create_container(self._full_path(feature))
            urls.append(self.get_dir_url(feature))

        logger.info(f"Initialised {len(urls)} feature folders")
        return urls
