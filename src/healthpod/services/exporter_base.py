"""
Base class for health data exporters.

Reads every encrypted record of a feature from the Pod and writes them to a
single CSV file sorted by timestamp.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import pandas as pd

from healthpod.domain.records import ExportResult
from healthpod.infrastructure.pod_client.repository import PodRepository
from healthpod.utils.exceptions import ExportError, HealthPodError, PodClientError
from healthpod.utils.parameters import ProcessingConfig
from healthpod.utils.paths import ENCRYPTED_SUFFIX, relative_dir

logger = logging.getLogger(__name__)


class HealthDataExporterBase(ABC):
    """
    Abstract base class for health data exporters.

    Subclasses name the CSV columns and map a stored JSON document to a
    row. Files that cannot be read, decrypted or parsed are skipped.
    """

    def __init__(
        self, repository: PodRepository, processing_config: ProcessingConfig | None = None
    ) -> None:
        """
        Initialize exporter.

        Args:
            repository: Pod repository records are read from.
            processing_config: Processing configuration (timezone of naive timestamps).
        """
        self.repository = repository
        self.processing_config = processing_config or ProcessingConfig()

    @property
    @abstractmethod
    def data_type(self) -> str:
        """The data type identifier, e.g. "blood_pressure"."""

    @property
    @abstractmethod
    def timestamp_field(self) -> str:
        """The CSV column records are sorted by."""

    @property
    @abstractmethod
    def csv_headers(self) -> list[str]:
        """CSV column headers, in order."""

    @property
    def label(self) -> str:
        """Human-readable name of the data type used in messages."""
        return self.data_type.replace("_", " ")

    @abstractmethod
    def process_record(self, json_data: dict[str, Any]) -> dict[str, Any]:
        """
        Map a stored JSON document to a row keyed by CSV header.

        Raises:
            KeyError, TypeError, ValueError: If the document is malformed.
        """

    def load_records(self, dir_path: str) -> tuple[list[dict[str, Any]], list[str]]:
        """
        Read and process every encrypted record in a container.

        Args:
            dir_path: Directory holding the record files.

        Returns:
            Tuple of (processed records, skipped file names).

        Raises:
            ExportError: If the container cannot be listed or holds no records.
        """
        directory = relative_dir(dir_path, self.data_type)

        try:
            resources = self.repository.get_resources_in_container(directory)
        except PodClientError as e:
            raise ExportError(f"Cannot list {self.label} data directory: {e}") from e

        files = [f for f in resources.files if f.endswith(ENCRYPTED_SUFFIX)]
        if not files:
            raise ExportError(f"No {self.label} data files found in directory")

        records: list[dict[str, Any]] = []
        skipped: list[str] = []

        for file_name in files:
            path = f"{directory}/{file_name}" if directory else file_name
            try:
                json_data = json.loads(self.repository.read_pod(path))
                records.append(self.process_record(json_data))
            except (HealthPodError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Error processing file {file_name}: {e}")
                skipped.append(file_name)

        if not records:
            raise ExportError(f"No valid {self.label} records found")

        return records, skipped

    def export_to_csv(self, save_path: str | Path, dir_path: str) -> ExportResult:
        """
        Export health data to a CSV file.

        Args:
            save_path: Path of the CSV file to write.
            dir_path: Directory holding the record files.

        Returns:
            Export result.

        Raises:
            ExportError: If there is nothing to export or the file cannot be written.
        """
        records, skipped = self.load_records(dir_path)

        records.sort(key=lambda r: str(r.get(self.timestamp_field) or ""))

        df = pd.DataFrame(
            [[record.get(header) for header in self.csv_headers] for record in records],
            columns=self.csv_headers,
        )

        try:
            df.to_csv(save_path, index=False, encoding="utf-8")
        except OSError as e:
            raise ExportError(f"Failed to write {save_path}: {e}") from e

        logger.info(f"Exported {len(records)} {self.label} records to {save_path}")
        return ExportResult(
            data_type=self.data_type,
            path=str(save_path),
            record_count=len(records),
            skipped_files=skipped,
        )
