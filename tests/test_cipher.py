"""Unit tests for record encryption."""

import pytest

from healthpod.infrastructure.crypto.cipher import RecordCipher
from healthpod.utils.exceptions import EncryptionError
from healthpod.utils.parameters import EncryptionConfig

CONFIG = EncryptionConfig(salt="test-salt", iterations=1000)


def test_encrypted_document_hides_content() -> None:
    """Test that the Turtle envelope carries a token, not the plaintext."""
    cipher = RecordCipher("correct horse", CONFIG)
    plaintext = '{"timestamp": "2025-01-21T23:05:42", "responses": {"notes": "private"}}'

    document = cipher.encrypt_document(plaintext)

    if "hp:encData" not in document:
        raise AssertionError("Expected hp:encData in encrypted document")
    if "private" in document:
        raise AssertionError("Plaintext leaked into encrypted document")

    result = cipher.decrypt_document(document)
    if result != plaintext:
        raise AssertionError(f"Decrypted text differs: {result}")


def test_same_key_decrypts_across_instances() -> None:
    """Test that the derived key only depends on the security key and salt."""
    document = RecordCipher("correct horse", CONFIG).encrypt_document("hello")

    result = RecordCipher("correct horse", CONFIG).decrypt_document(document)
    if result != "hello":
        raise AssertionError(f"Expected hello, got {result}")


def test_wrong_key_fails() -> None:
    """Test decryption with a different security key."""
    document = RecordCipher("correct horse", CONFIG).encrypt_document("hello")

    with pytest.raises(EncryptionError):
        RecordCipher("battery staple", CONFIG).decrypt_document(document)


def test_missing_key_and_token() -> None:
    """Test rejection of an empty key and of documents without a token."""
    with pytest.raises(EncryptionError):
        RecordCipher("", CONFIG)

    cipher = RecordCipher("correct horse", CONFIG)
    with pytest.raises(EncryptionError, match="hp:encData"):
        cipher.decrypt_document("<> a <#Nothing> .")
