"""
Health record domain models.

Defines the document stored for each record in the Pod, and the results
reported by the import and export pipelines.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from healthpod.utils.paths import record_file_name


class DataType(str, Enum):
    """Enumeration of health data features stored in the Pod."""

    BLOOD_PRESSURE = "blood_pressure"
    VACCINATION = "vaccination"
    DIARY = "diary"
    MEDICATION = "medication"
    PROFILE = "profile"


class HealthRecord(BaseModel):
    """
    A single health record as stored in the Pod.

    Serialised as ``{<timestamp_field>: <timestamp>, "responses": {...}}``.
    """

    data_type: str = Field(description="Feature the record belongs to")
    timestamp_field: str = Field(description="Key holding the timestamp in the document")
    timestamp: str = Field(description="Normalised record timestamp")
    responses: dict[str, Any] = Field(default_factory=dict, description="Record values")

    model_config = ConfigDict(use_enum_values=True)

    @property
    def file_name(self) -> str:
        """Name of the encrypted file holding this record."""
        return record_file_name(self.data_type, self.timestamp)

    def to_document(self) -> dict[str, Any]:
        """Convert to the stored JSON document."""
        return {self.timestamp_field: self.timestamp, "responses": self.responses}

    def to_json(self) -> str:
        """Serialise the stored JSON document."""
        return json.dumps(self.to_document())


class ImportResult(BaseModel):
    """Outcome of a CSV import."""

    data_type: str
    source: str
    source_checksum: str | None = None
    saved_files: list[str] = Field(default_factory=list)
    skipped_rows: list[int] = Field(default_factory=list)
    failed_rows: dict[int, str] = Field(default_factory=dict)
    duplicate_timestamps: list[str] = Field(
        default_factory=list, description="Timestamps repeated within the CSV (display format)"
    )
    overridden_files: list[str] = Field(
        default_factory=list, description="Existing Pod files the user agreed to replace"
    )
    unchanged_files: list[str] = Field(
        default_factory=list, description="Existing Pod files identical to imported rows"
    )
    deleted_files: list[str] = Field(default_factory=list)
    duplicate_check_failed: bool = False
    cancelled: bool = False

    @property
    def success(self) -> bool:
        """True when every row was saved and at least one file was written."""
        if self.cancelled or self.failed_rows:
            return False
        return len(self.saved_files) + len(self.unchanged_files) > 0


class ExportResult(BaseModel):
    """Outcome of a CSV or JSON export."""

    data_type: str
    path: str
    record_count: int
    skipped_files: list[str] = Field(default_factory=list)
