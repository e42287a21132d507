"""
Profile import and export.

A profile is a single JSON document of patient details. Each import
writes a new encrypted profile file; the newest one is the current
profile.
"""

import json
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from healthpod.domain.fields import ProfileFields
from healthpod.domain.records import DataType
from healthpod.infrastructure.pod_client.repository import PodRepository
from healthpod.utils.exceptions import ExportError, PodClientError, ProfileValidationError
from healthpod.utils.paths import ENCRYPTED_SUFFIX, RECORD_SUFFIX
from healthpod.utils.timestamps import format_timestamp_for_filename

logger = logging.getLogger(__name__)

PROFILE_DIR = DataType.PROFILE.value
PROFILE_PREFIX = "profile_"

PREVIEW_FIELDS = ["patientName", "dateOfBirth", "gender", "email", "bestContactPhone"]

ConfirmProfile = Callable[[dict[str, Any]], bool]


def _has_required_fields(data: Any) -> bool:
    return isinstance(data, dict) and all(field in data for field in ProfileFields.REQUIRED)


def validate_profile_data(json_data: Any) -> dict[str, Any]:
    """
    Validate profile JSON and normalise it to {"data": ..., "timestamp": ...}.

    The profile fields may be at the top level, under "data" or under
    "responses".

    Raises:
        ProfileValidationError: If no shape carries every required field.
    """
    if not isinstance(json_data, dict):
        raise ProfileValidationError("Profile JSON must be an object")

    now = datetime.now().isoformat()

    if _has_required_fields(json_data):
        return {"data": json_data, "timestamp": now}

    if _has_required_fields(json_data.get("data")):
        return dict(json_data)

    if _has_required_fields(json_data.get("responses")):
        return {"data": json_data["responses"], "timestamp": now}

    raise ProfileValidationError(
        "Invalid profile data structure - missing required fields: "
        + ", ".join(ProfileFields.REQUIRED)
    )


def profile_preview(document: dict[str, Any]) -> dict[str, Any]:
    """Pick the fields shown when asking to confirm an import."""
    data = document.get("data", document)
    return {field: data[field] for field in PREVIEW_FIELDS if field in data}


class ProfileImporter:
    """Imports a profile from a local JSON file into the Pod."""

    def __init__(self, repository: PodRepository, confirm: ConfirmProfile | None = None) -> None:
        self.repository = repository
        self.confirm = confirm

    def import_json(self, file_path: str | Path) -> str | None:
        """
        Import a profile JSON file.

        Args:
            file_path: Path to the JSON file.

        Returns:
            Path of the saved profile relative to the data container, or
            None if the import was declined.

        Raises:
            ProfileValidationError: If the file is not a valid profile.
            PodClientError, EncryptionError: If the profile cannot be saved.
        """
        try:
            text = Path(file_path).read_text(encoding="utf-8")
        except OSError as e:
            raise ProfileValidationError(f"Cannot read {file_path}: {e}") from e

        try:
            json_data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ProfileValidationError(f"Invalid JSON format: {e}") from e

        document = validate_profile_data(json_data)

        if self.confirm is not None and not self.confirm(profile_preview(document)):
            logger.info("Profile import declined")
            return None

        document.setdefault("timestamp", datetime.now().isoformat())

        filename = f"{PROFILE_PREFIX}{format_timestamp_for_filename(datetime.now())}{RECORD_SUFFIX}"
        path = f"{PROFILE_DIR}/{filename}"

        self.repository.write_pod(path, json.dumps(document), encrypted=True)
        logger.info(f"Saved profile to {path}")
        return path


def _profile_sort_key(file_name: str) -> str:
    # profile_YYYY-MM-DDTHH-MM-SS.json.enc.ttl, or "_" in place of "T" in older files.
    return file_name[len(PROFILE_PREFIX) : file_name.index(".json")].replace("_", "T")


class ProfileExporter:
    """Exports the most recent profile from the Pod to a local JSON file."""

    def __init__(self, repository: PodRepository) -> None:
        self.repository = repository

    def latest_profile_file(self) -> str:
        """
        Find the newest profile file by the timestamp in its name.

        Raises:
            ExportError: If the profile container cannot be listed or is empty.
        """
        try:
            resources = self.repository.get_resources_in_container(PROFILE_DIR)
        except PodClientError as e:
            raise ExportError(f"Cannot list profile directory: {e}") from e

        files = [
            f
            for f in resources.files
            if f.startswith(PROFILE_PREFIX) and f.endswith(ENCRYPTED_SUFFIX) and ".json" in f
        ]
        if not files:
            raise ExportError("No profile files found in the directory")

        return max(files, key=_profile_sort_key)

    def export_json(self, output_path: str | Path) -> Path:
        """
        Decrypt the newest profile and write it to output_path.

        Raises:
            ExportError: If there is no profile or the file cannot be written.
            PodClientError, EncryptionError: If the profile cannot be read.
        """
        file_name = self.latest_profile_file()
        logger.info(f"Exporting most recent profile file: {file_name}")

        content = self.repository.read_pod(f"{PROFILE_DIR}/{file_name}")

        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise ExportError(f"Profile file {file_name} is not valid JSON: {e}") from e

        output = Path(output_path)
        try:
            output.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except OSError as e:
            raise ExportError(f"Failed to write {output}: {e}") from e

        return output
