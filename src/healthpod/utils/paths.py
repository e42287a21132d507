"""
Pod path construction.

All record paths are relative to the application's data container,
``healthpod/data`` under the Pod root.
"""

import re

from healthpod.utils.timestamps import filename_safe_timestamp

APP_DIR = "healthpod"
DATA_DIR = "data"
BASE_PATH = f"{APP_DIR}/{DATA_DIR}"

ENCRYPTED_SUFFIX = ".enc.ttl"
RECORD_SUFFIX = ".json.enc.ttl"

_BASE_PATH_PREFIX = re.compile(rf"^{re.escape(BASE_PATH)}/?")


def record_file_name(data_type: str, timestamp: str) -> str:
    """
    Build the file name of a record.

    Example:
        record_file_name("blood_pressure", "2025-01-21T23:05:42")
        -> "blood_pressure_2025-01-21T23-05-42.json.enc.ttl"
    """
    return f"{data_type}_{filename_safe_timestamp(timestamp)}{RECORD_SUFFIX}"


def relative_dir(dir_path: str, data_type: str) -> str:
    """
    Resolve a user-supplied directory to a path relative to the data container.

    "healthpod/data/blood_pressure", "x/blood_pressure" and "blood_pressure"
    all resolve to "blood_pressure".
    """
    path = dir_path.strip("/")
    if path.endswith(f"/{data_type}"):
        return data_type
    return _BASE_PATH_PREFIX.sub("", path)


def resolve_save_path(dir_path: str, data_type: str, filename: str) -> str:
    """Resolve where a record file is written, relative to the data container."""
    directory = relative_dir(dir_path, data_type)
    return f"{directory}/{filename}" if directory else filename
