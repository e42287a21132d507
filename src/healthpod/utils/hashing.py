"""
Hashing utilities.

Provides content fingerprints used to recognise records that are already
stored unchanged in the Pod, and checksums of imported source files.
"""

import hashlib
import json
from typing import Any


def record_fingerprint(record: dict[str, Any], algorithm: str = "sha256") -> str:
    """
    Compute a deterministic fingerprint of a JSON record.

    Key order and whitespace do not affect the result.

    Args:
        record: JSON-compatible record.
        algorithm: Hash algorithm to use.

    Returns:
        Hex string of the record hash.
    """
    canonical = json.dumps(record, sort_keys=True, separators=(",", ":"), default=str)

    hash_func = hashlib.new(algorithm)
    hash_func.update(canonical.encode("utf-8"))

    return hash_func.hexdigest()


def compute_file_hash(file_path: str, algorithm: str = "md5") -> str:
    """
    Compute hash of a file.

    Args:
        file_path: Path to the file.
        algorithm: Hash algorithm to use.

    Returns:
        Hex string of the file hash.
    """
    hash_func = hashlib.new(algorithm)

    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            hash_func.update(chunk)

    return hash_func.hexdigest()
