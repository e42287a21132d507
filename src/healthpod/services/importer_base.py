"""
Base class for health data importers.

Reads user-supplied CSV files, validates and normalises timestamps,
reconciles duplicates with the records already stored in the Pod, and
saves each row as an encrypted JSON record.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import Any

from healthpod.domain.records import HealthRecord, ImportResult
from healthpod.infrastructure.parsers.csv_parser import CSVReader, CsvTable
from healthpod.infrastructure.pod_client.repository import PodRepository
from healthpod.services.reconciliation import DuplicateDetector, DuplicateReport
from healthpod.utils.exceptions import (
    DuplicateCheckError,
    EncryptionError,
    HealthPodError,
    MissingColumnsError,
    PodClientError,
)
from healthpod.utils.hashing import compute_file_hash, record_fingerprint
from healthpod.utils.parameters import CSVConfig, ProcessingConfig
from healthpod.utils.paths import resolve_save_path
from healthpod.utils.timestamps import (
    date_part,
    format_timestamp_for_display,
    is_valid_timestamp,
    normalise_timestamp,
    round_timestamp_to_second,
)

logger = logging.getLogger(__name__)

ConfirmOverride = Callable[[list[str]], bool]
ConfirmUnchecked = Callable[[], bool]
ProgressCallback = Callable[[str, float], None]


def _refuse_override(duplicate_files: list[str]) -> bool:
    logger.warning(f"Refusing to override {len(duplicate_files)} files without confirmation")
    return False


def _refuse_unchecked() -> bool:
    logger.warning("Refusing to import without a duplicate check")
    return False


class HealthDataImporterBase(ABC):
    """
    Abstract base class for health data importers.

    Subclasses describe a feature's columns and convert its field values.
    The base class handles CSV reading, timestamp validation, duplicate
    reconciliation and saving.

    Confirmation callbacks decide whether existing files may be overridden
    and whether to proceed when duplicates cannot be checked. Without
    callbacks both are refused.
    """

    def __init__(
        self,
        repository: PodRepository,
        csv_config: CSVConfig | None = None,
        confirm_override: ConfirmOverride | None = None,
        confirm_unchecked: ConfirmUnchecked | None = None,
        processing_config: ProcessingConfig | None = None,
    ) -> None:
        """
        Initialize importer.

        Args:
            repository: Pod repository records are written to.
            csv_config: CSV parsing configuration.
            confirm_override: Called with the files an import would override.
            confirm_unchecked: Called when duplicates cannot be checked.
            processing_config: Processing configuration (timezone of naive timestamps).
        """
        self.repository = repository
        self.reader = CSVReader(csv_config or CSVConfig())
        self.confirm_override = confirm_override or _refuse_override
        self.confirm_unchecked = confirm_unchecked or _refuse_unchecked
        self.processing_config = processing_config or ProcessingConfig()
        self.detector = DuplicateDetector(repository, self.data_type)

    @property
    @abstractmethod
    def data_type(self) -> str:
        """The data type identifier, e.g. "blood_pressure"."""

    @property
    @abstractmethod
    def timestamp_field(self) -> str:
        """The field holding the record timestamp."""

    @property
    @abstractmethod
    def required_columns(self) -> list[str]:
        """Columns that must be present in the CSV."""

    @property
    @abstractmethod
    def optional_columns(self) -> list[str]:
        """Columns that may be present in the CSV."""

    @abstractmethod
    def create_default_response_map(self) -> dict[str, Any]:
        """Create the responses of a new record with default values."""

    @abstractmethod
    def process_field(
        self, header: str, value: str, responses: dict[str, Any], row_index: int
    ) -> bool:
        """
        Process one field of a CSV row.

        Args:
            header: Lower-case column name.
            value: Stripped cell value.
            responses: Responses to update.
            row_index: Row number for error reporting (1 is the first data row).

        Returns:
            True if the field was processed, False if it was missing or invalid.
        """

    def finalise_responses(self, timestamp: str, responses: dict[str, Any]) -> None:
        """Hook to derive values once a row has been processed."""

    def _check_columns(self, table: CsvTable) -> None:
        required = [col.lower() for col in self.required_columns]
        missing = [col for col in required if col not in table.headers]

        if missing:
            raise MissingColumnsError(missing, self.required_columns, self.optional_columns)

    def _parse_timestamp(self, value: str) -> str:
        """
        Round and normalise a timestamp cell.

        Raises:
            ValueError: If the value is not a valid timestamp.
        """
        timestamp = normalise_timestamp(round_timestamp_to_second(value))
        if not is_valid_timestamp(timestamp):
            raise ValueError(f"Invalid timestamp format: {value}")
        return timestamp

    def row_timestamp(self, headers: list[str], row: list[str], row_index: int) -> str:
        """
        Return the normalised timestamp of a CSV row.

        Returns:
            The timestamp, or an empty string if the cell is empty.

        Raises:
            ValueError: If the row's timestamp is present but invalid.
        """
        timestamp_header = self.timestamp_field.lower()
        if timestamp_header not in headers:
            return ""

        position = headers.index(timestamp_header)
        value = row[position].strip() if position < len(row) else ""
        if not value:
            return ""

        try:
            return self._parse_timestamp(value)
        except ValueError as e:
            raise ValueError(f"Row {row_index}: {e}") from e

    def build_record(self, headers: list[str], row: list[str], row_index: int) -> HealthRecord | None:
        """
        Convert a CSV row into a record.

        Returns:
            The record, or None if a required field is missing or invalid.

        Raises:
            ValueError: If the row's timestamp is present but invalid.
        """
        responses = self.create_default_response_map()
        required = [col.lower() for col in self.required_columns]
        timestamp_header = self.timestamp_field.lower()

        timestamp = self.row_timestamp(headers, row, row_index)
        has_required_fields = True
        if not timestamp:
            logger.warning(f"Row {row_index}: Missing required timestamp")
            has_required_fields = False

        for header, cell in zip(headers, row):
            if header == timestamp_header:
                continue

            if not self.process_field(header, cell.strip(), responses, row_index):
                if header in required:
                    has_required_fields = False

        if not has_required_fields:
            return None

        self.finalise_responses(timestamp, responses)

        return HealthRecord(
            data_type=self.data_type,
            timestamp_field=self.timestamp_field,
            timestamp=timestamp,
            responses=responses,
        )

    def _is_unchanged(self, path: str, record: HealthRecord) -> bool:
        """Check whether a stored file already holds exactly this record."""
        try:
            stored = json.loads(self.repository.read_pod(path))
        except (HealthPodError, ValueError) as e:
            logger.debug(f"Could not compare existing file {path}: {e}")
            return False

        return record_fingerprint(stored) == record_fingerprint(record.to_document())

    def file_exists_in_pod(self, file_path: str) -> bool:
        """Check whether a record file of this feature already exists."""
        return self.detector.file_exists_in_pod(file_path)

    def import_from_csv(
        self,
        file_path: str | Path | None,
        dir_path: str,
        content: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ImportResult:
        """
        Import health data from a CSV file.

        Rows are converted into records, existing files on the same dates
        are reconciled, and each record is saved as an encrypted file in
        dir_path. A confirmed duplicate is deleted only after every row on
        its date has been saved, so a failed write never loses existing data.

        Args:
            file_path: Path to the CSV file. Ignored when content is given.
            dir_path: Directory the records are saved in.
            content: CSV text, used instead of reading file_path.
            on_progress: Called with a message and a completed fraction after each row.

        Returns:
            Import result.

        Raises:
            CsvImportError: If the CSV is empty or misses required columns.
            ParsingError: If the CSV cannot be parsed.
        """
        source = str(file_path) if file_path is not None else "<content>"
        result = ImportResult(data_type=self.data_type, source=source)

        table = self.reader.read(Path(file_path) if file_path is not None else None, content)
        if content is None and file_path is not None:
            result.source_checksum = compute_file_hash(str(file_path))
        self._check_columns(table)

        # Pass 1: rows into records. The last row for a timestamp wins.
        records: dict[str, HealthRecord] = {}
        row_of: dict[str, int] = {}
        seen_timestamps: set[str] = set()
        # Dates with a row that was not saved. Their existing files are kept.
        incomplete_dates: set[str] = set()

        for row_index, row in enumerate(table.rows, start=1):
            try:
                timestamp = self.row_timestamp(table.headers, row, row_index)
            except ValueError as e:
                logger.warning(str(e))
                result.failed_rows[row_index] = str(e)
                continue

            # A repeated timestamp counts even if the earlier row is invalid.
            if timestamp:
                if timestamp in seen_timestamps:
                    result.duplicate_timestamps.append(format_timestamp_for_display(timestamp))
                seen_timestamps.add(timestamp)

            try:
                record = self.build_record(table.headers, row, row_index)
            except ValueError as e:
                logger.warning(str(e))
                result.failed_rows[row_index] = str(e)
                if timestamp:
                    incomplete_dates.add(date_part(timestamp))
                continue

            if record is None:
                logger.warning(f"Skipping row {row_index} due to missing or invalid required fields")
                result.skipped_rows.append(row_index)
                if timestamp:
                    incomplete_dates.add(date_part(timestamp))
                continue

            records[record.timestamp] = record
            row_of[record.timestamp] = row_index

        save_paths = {
            timestamp: resolve_save_path(dir_path, self.data_type, record.file_name)
            for timestamp, record in records.items()
        }

        # Pass 2: reconcile with existing files.
        report: DuplicateReport | None = None
        to_override: list[str] = []

        if records:
            try:
                report = self.detector.scan(dir_path)
            except DuplicateCheckError as e:
                logger.warning(str(e))
                result.duplicate_check_failed = True
                if not self.confirm_unchecked():
                    result.cancelled = True
                    return result

        if report is not None:
            incoming_by_path = {save_paths[ts]: record for ts, record in records.items()}

            for file_name in report.duplicates_for(list(records)):
                path = report.path_of(file_name)
                incoming = incoming_by_path.get(path)
                if incoming is not None and self._is_unchanged(path, incoming):
                    result.unchanged_files.append(path)
                else:
                    to_override.append(path)

            if to_override:
                logger.info(f"Found {len(to_override)} duplicate files, asking to override")
                if not self.confirm_override(list(to_override)):
                    logger.info("Override declined, aborting import")
                    result.cancelled = True
                    return result
                result.overridden_files = list(to_override)
            else:
                logger.info("No conflicting duplicate files found")

        # Pass 3: save records, reporting progress once per CSV row.
        written: set[str] = set()
        timestamp_at = {row_index: timestamp for timestamp, row_index in row_of.items()}
        total = len(table.rows)

        for row_index in range(1, total + 1):
            timestamp = timestamp_at.get(row_index)

            if timestamp is not None:
                path = save_paths[timestamp]
                if path in result.unchanged_files:
                    logger.debug(f"Unchanged, not rewriting {path}")
                else:
                    try:
                        self.repository.write_pod(path, records[timestamp].to_json(), encrypted=True)
                        result.saved_files.append(path)
                        written.add(path)
                    except (PodClientError, EncryptionError) as e:
                        logger.warning(f"Failed to save {path}: {e}")
                        result.failed_rows[row_index] = str(e)
                        incomplete_dates.add(date_part(timestamp))

            if on_progress is not None:
                on_progress(f"Converting row {row_index}", row_index / total)

        # Pass 4: remove overridden files that were not replaced in place.
        for path in to_override:
            if path in written:
                continue

            file_date = self.detector.file_date(path.rsplit("/", 1)[-1])
            if file_date in incomplete_dates:
                logger.warning(f"Keeping {path}: not every record on {file_date} was saved")
                continue

            try:
                self.repository.delete_file(path)
                result.deleted_files.append(path)
            except PodClientError as e:
                logger.warning(f"Failed to delete overridden file {path}: {e}")

        logger.info(
            f"Import complete: saved {len(result.saved_files)}, "
            f"unchanged {len(result.unchanged_files)}, "
            f"skipped {len(result.skipped_rows)}, failed {len(result.failed_rows)}"
        )

        if result.duplicate_timestamps:
            logger.warning(
                "Multiple entries found for these timestamps, only the last entry was saved: "
                + ", ".join(result.duplicate_timestamps)
            )

        return result

