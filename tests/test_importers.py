"""Unit tests for CSV importers and duplicate reconciliation."""

import json

import pytest

from healthpod.features.blood_pressure import BPImporter
from healthpod.features.diary import DiaryImporter
from healthpod.features.medication import MedicationImporter
from healthpod.features.vaccination import VaccinationImporter
from healthpod.infrastructure.crypto.cipher import RecordCipher
from healthpod.infrastructure.pod_client.client import LocalPodStore
from healthpod.infrastructure.pod_client.repository import PodRepository
from healthpod.utils.exceptions import MissingColumnsError, PodClientError
from healthpod.utils.parameters import EncryptionConfig, PodConfig, ProcessingConfig

BP_HEADER = "timestamp,systolic,diastolic,heart_rate,feeling,notes\n"
MORNING = "blood_pressure/blood_pressure_2025-01-21T08-00-00.json.enc.ttl"
EVENING = "blood_pressure/blood_pressure_2025-01-21T20-00-00.json.enc.ttl"


class FailingWriteStore(LocalPodStore):
    """Local store that refuses to write files whose name contains a marker."""

    def __init__(self, config: PodConfig, marker: str) -> None:
        super().__init__(config)
        self.marker = marker

    def write(self, path: str, content: str) -> None:
        if self.marker in path:
            raise PodClientError(f"Failed to write {path}: disk full")
        super().write(path, content)


class UnlistableStore(LocalPodStore):
    """Local store whose containers cannot be listed."""

    def list_resources(self, path: str):
        raise PodClientError(f"Cannot list {path}")


def _repository(tmp_path, store: LocalPodStore | None = None) -> PodRepository:
    store = store or LocalPodStore(PodConfig(backend="local", local_dir=str(tmp_path)))
    cipher = RecordCipher("secret", EncryptionConfig(salt="test", iterations=1000))
    return PodRepository(store, cipher)


def _read(repository: PodRepository, path: str) -> dict:
    return json.loads(repository.read_pod(path))


def test_bp_import_saves_encrypted_records(tmp_path) -> None:
    """Test a plain blood pressure import."""
    repository = _repository(tmp_path)
    csv = BP_HEADER + "2025-01-21 23:05:42.500,120,80,65,Good,After walk\n"

    result = BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)

    path = "blood_pressure/blood_pressure_2025-01-21T23-05-42.json.enc.ttl"
    if result.saved_files != [path]:
        raise AssertionError(f"Unexpected saved files: {result.saved_files}")
    if not result.success:
        raise AssertionError("Expected successful import")

    expected = {
        "timestamp": "2025-01-21T23:05:42",
        "responses": {
            "systolic": 120.0,
            "diastolic": 80.0,
            "heart_rate": 65.0,
            "feeling": "Good",
            "notes": "After walk",
        },
    }
    document = _read(repository, path)
    if document != expected:
        raise AssertionError(f"Unexpected document: {document}")

    on_disk = (tmp_path / "healthpod" / "data" / path).read_text(encoding="utf-8")
    if "After walk" in on_disk:
        raise AssertionError("Record stored in plaintext")


def test_bp_import_from_file_records_checksum(tmp_path) -> None:
    """Test importing from a file path."""
    repository = _repository(tmp_path)
    csv_file = tmp_path / "bp.csv"
    csv_file.write_text(BP_HEADER + "2025-01-21 08:00:00,\"120,5\",80,65,,\n", encoding="utf-8")

    result = BPImporter(repository).import_from_csv(csv_file, "healthpod/data/blood_pressure")

    if result.saved_files != [MORNING]:
        raise AssertionError(f"Unexpected saved files: {result.saved_files}")
    if not result.source_checksum:
        raise AssertionError("Expected source checksum")
    if _read(repository, MORNING)["responses"]["systolic"] != 120.5:
        raise AssertionError("Expected comma decimal to be parsed")


def test_missing_columns(tmp_path) -> None:
    """Test that missing required columns abort the import."""
    repository = _repository(tmp_path)

    with pytest.raises(MissingColumnsError) as exc_info:
        BPImporter(repository).import_from_csv(
            None, "blood_pressure", content="timestamp,systolic\n2025-01-21 08:00:00,120\n"
        )

    if exc_info.value.missing != ["diastolic", "heart_rate"]:
        raise AssertionError(f"Unexpected missing columns: {exc_info.value.missing}")
    if "These columns are optional:\n- feeling\n- notes" not in str(exc_info.value):
        raise AssertionError(f"Expected optional columns in message: {exc_info.value}")


def test_invalid_rows_are_skipped_or_failed(tmp_path) -> None:
    """Test per-row failures without aborting the import."""
    repository = _repository(tmp_path)
    csv = (
        BP_HEADER
        + "not-a-date,120,80,65,,\n"
        + "2025-01-22 08:00:00,abc,80,65,,\n"
        + ",120,80,65,,\n"
        + "2025-01-23 08:00:00,120,80,65,,\n"
    )

    result = BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)

    if list(result.failed_rows) != [1]:
        raise AssertionError(f"Expected row 1 to fail, got {result.failed_rows}")
    if result.skipped_rows != [2, 3]:
        raise AssertionError(f"Expected rows 2 and 3 skipped, got {result.skipped_rows}")
    if len(result.saved_files) != 1:
        raise AssertionError(f"Expected 1 saved file, got {result.saved_files}")
    if result.success:
        raise AssertionError("Expected import with failed rows to be unsuccessful")


def test_duplicate_timestamps_in_csv_last_row_wins(tmp_path) -> None:
    """Test that repeated timestamps keep the last row."""
    repository = _repository(tmp_path)
    csv = BP_HEADER + "2025-01-21 08:00:00,120,80,65,,first\n2025-01-21 08:00:00,130,85,70,,second\n"

    result = BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)

    if result.duplicate_timestamps != ["2025-01-21 08:00:00"]:
        raise AssertionError(f"Unexpected duplicates: {result.duplicate_timestamps}")
    if result.saved_files != [MORNING]:
        raise AssertionError(f"Unexpected saved files: {result.saved_files}")
    if _read(repository, MORNING)["responses"]["notes"] != "second":
        raise AssertionError("Expected last row to be saved")


def test_override_refused_by_default(tmp_path) -> None:
    """Test that existing records on the same date are kept without confirmation."""
    repository = _repository(tmp_path)
    BPImporter(repository).import_from_csv(
        None, "blood_pressure", content=BP_HEADER + "2025-01-21 08:00:00,120,80,65,,\n"
    )

    result = BPImporter(repository).import_from_csv(
        None, "blood_pressure", content=BP_HEADER + "2025-01-21 20:00:00,130,85,70,,\n"
    )

    if not result.cancelled:
        raise AssertionError("Expected import to be cancelled")
    if repository.file_exists(EVENING):
        raise AssertionError("Cancelled import must not write")
    if not repository.file_exists(MORNING):
        raise AssertionError("Existing record must be kept")


def test_override_confirmed_replaces_same_day_records(tmp_path) -> None:
    """Test that confirmed duplicates are deleted after the new records are saved."""
    repository = _repository(tmp_path)
    BPImporter(repository).import_from_csv(
        None, "blood_pressure", content=BP_HEADER + "2025-01-21 08:00:00,120,80,65,,\n"
    )

    asked: list[list[str]] = []

    def confirm(files: list[str]) -> bool:
        asked.append(files)
        return True

    result = BPImporter(repository, confirm_override=confirm).import_from_csv(
        None, "blood_pressure", content=BP_HEADER + "2025-01-21 20:00:00,130,85,70,,\n"
    )

    if asked != [[MORNING]]:
        raise AssertionError(f"Unexpected confirmation request: {asked}")
    if result.saved_files != [EVENING] or result.deleted_files != [MORNING]:
        raise AssertionError(f"Unexpected result: {result}")
    if repository.file_exists(MORNING):
        raise AssertionError("Expected overridden record to be deleted")


def test_override_in_place_is_not_deleted(tmp_path) -> None:
    """Test that a record rewritten under the same name is kept."""
    repository = _repository(tmp_path)
    BPImporter(repository).import_from_csv(
        None, "blood_pressure", content=BP_HEADER + "2025-01-21 08:00:00,120,80,65,,\n"
    )

    result = BPImporter(repository, confirm_override=lambda files: True).import_from_csv(
        None, "blood_pressure", content=BP_HEADER + "2025-01-21 08:00:00,140,90,75,,\n"
    )

    if result.overridden_files != [MORNING] or result.deleted_files:
        raise AssertionError(f"Unexpected result: {result}")
    if _read(repository, MORNING)["responses"]["systolic"] != 140.0:
        raise AssertionError("Expected record to be rewritten")


def test_unchanged_records_need_no_confirmation(tmp_path) -> None:
    """Test that re-importing identical rows does not ask or rewrite."""
    repository = _repository(tmp_path)
    csv = BP_HEADER + "2025-01-21 08:00:00,120,80,65,,\n"
    BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)

    result = BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)

    if result.cancelled:
        raise AssertionError("Identical re-import must not be cancelled")
    if result.unchanged_files != [MORNING] or result.saved_files:
        raise AssertionError(f"Unexpected result: {result}")
    if not result.success:
        raise AssertionError("Expected unchanged import to succeed")


def test_failed_write_keeps_existing_records(tmp_path) -> None:
    """Test that a duplicate is kept when a record on its date fails to save."""
    config = PodConfig(backend="local", local_dir=str(tmp_path))
    BPImporter(_repository(tmp_path)).import_from_csv(
        None, "blood_pressure", content=BP_HEADER + "2025-01-21 08:00:00,120,80,65,,\n"
    )

    repository = _repository(tmp_path, FailingWriteStore(config, "T20-00-00"))
    result = BPImporter(repository, confirm_override=lambda files: True).import_from_csv(
        None, "blood_pressure", content=BP_HEADER + "2025-01-21 20:00:00,130,85,70,,\n"
    )

    if list(result.failed_rows) != [1]:
        raise AssertionError(f"Expected row 1 to fail, got {result.failed_rows}")
    if result.deleted_files:
        raise AssertionError(f"Nothing should be deleted, got {result.deleted_files}")
    if not repository.file_exists(MORNING):
        raise AssertionError("Existing record must survive a failed write")


def test_rejected_row_keeps_existing_record_on_its_date(tmp_path) -> None:
    """Test that an existing file is kept when the row replacing it is skipped."""
    repository = _repository(tmp_path)
    BPImporter(repository).import_from_csv(
        None,
        "blood_pressure",
        content=BP_HEADER + "2025-01-21 08:00:00,120,80,65,,\n2025-01-21 20:00:00,130,85,70,,\n",
    )

    asked: list[list[str]] = []

    def confirm(files: list[str]) -> bool:
        asked.append(files)
        return True

    result = BPImporter(repository, confirm_override=confirm).import_from_csv(
        None,
        "blood_pressure",
        content=BP_HEADER + "2025-01-21 08:00:00,125,82,66,,\n2025-01-21 20:00:00,abc,85,70,,\n",
    )

    if asked != [[MORNING, EVENING]]:
        raise AssertionError(f"Unexpected confirmation request: {asked}")
    if result.skipped_rows != [2]:
        raise AssertionError(f"Expected row 2 skipped, got {result.skipped_rows}")
    if result.deleted_files:
        raise AssertionError(f"Nothing should be deleted, got {result.deleted_files}")
    if not repository.file_exists(EVENING):
        raise AssertionError("Existing record must survive a rejected row")
    if _read(repository, MORNING)["responses"]["systolic"] != 125.0:
        raise AssertionError("Expected valid row to be rewritten")


def test_partial_dates_fail(tmp_path) -> None:
    """Test that timestamps without a full date are not completed from today."""
    repository = _repository(tmp_path)
    csv = BP_HEADER + "12,120,80,65,,\nMonday,121,81,66,,\n01/02/2025,122,82,67,,\n"

    result = BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)

    if sorted(result.failed_rows) != [1, 2, 3]:
        raise AssertionError(f"Expected every row to fail, got {result.failed_rows}")
    if result.saved_files:
        raise AssertionError(f"Nothing should be saved, got {result.saved_files}")


def test_rows_with_extra_cells_are_imported(tmp_path) -> None:
    """Test that a row wider than the header is still saved."""
    repository = _repository(tmp_path)
    csv = (
        "timestamp,systolic,diastolic,heart_rate\n"
        "2025-01-21 08:00:00,120,80,65\n"
        "2025-01-21 20:00:00,130,85,70,extra\n"
    )

    result = BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)

    if result.saved_files != [MORNING, EVENING]:
        raise AssertionError(f"Unexpected saved files: {result.saved_files}")
    if _read(repository, EVENING)["responses"]["heart_rate"] != 70.0:
        raise AssertionError("Expected leading cells of the wide row to be kept")


def test_repeated_timestamp_after_rejected_row_is_reported(tmp_path) -> None:
    """Test that a timestamp repeated after a skipped row counts as a duplicate."""
    repository = _repository(tmp_path)
    csv = BP_HEADER + "2025-01-21 08:00:00,abc,80,65,,\n2025-01-21 08:00:00,120,80,65,,\n"

    result = BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)

    if result.skipped_rows != [1]:
        raise AssertionError(f"Expected row 1 skipped, got {result.skipped_rows}")
    if result.duplicate_timestamps != ["2025-01-21 08:00:00"]:
        raise AssertionError(f"Unexpected duplicates: {result.duplicate_timestamps}")
    if result.saved_files != [MORNING]:
        raise AssertionError(f"Unexpected saved files: {result.saved_files}")


def test_file_exists_in_pod(tmp_path) -> None:
    """Test the existence check against the feature containers."""
    repository = _repository(tmp_path)
    importer = BPImporter(repository)
    importer.import_from_csv(None, "blood_pressure", content=BP_HEADER + "2025-01-21 08:00:00,120,80,65,,\n")

    file_name = MORNING.split("/")[-1]
    if not importer.file_exists_in_pod(MORNING):
        raise AssertionError("Expected saved record to exist")
    if not importer.file_exists_in_pod(f"archive/{file_name}"):
        raise AssertionError("Expected fallback to the feature container")
    if importer.file_exists_in_pod(EVENING):
        raise AssertionError("Expected unsaved record to be missing")


def test_unchecked_import_needs_confirmation(tmp_path) -> None:
    """Test imports when the Pod cannot be listed."""
    config = PodConfig(backend="local", local_dir=str(tmp_path))
    repository = _repository(tmp_path, UnlistableStore(config))
    csv = BP_HEADER + "2025-01-21 08:00:00,120,80,65,,\n"

    result = BPImporter(repository).import_from_csv(None, "blood_pressure", content=csv)
    if not (result.cancelled and result.duplicate_check_failed):
        raise AssertionError(f"Expected cancelled unchecked import: {result}")

    result = BPImporter(repository, confirm_unchecked=lambda: True).import_from_csv(
        None, "blood_pressure", content=csv
    )
    if result.cancelled or result.saved_files != [MORNING]:
        raise AssertionError(f"Expected confirmed unchecked import to save: {result}")


def test_progress_callback(tmp_path) -> None:
    """Test progress reporting once per CSV row, including skipped rows."""
    repository = _repository(tmp_path)
    csv = (
        BP_HEADER
        + "2025-01-21 08:00:00,120,80,65,,\n"
        + "2025-01-22 08:00:00,abc,81,66,,\n"
        + "2025-01-23 08:00:00,122,82,67,,\n"
        + "2025-01-24 08:00:00,123,83,68,,\n"
    )
    progress: list[tuple[str, float]] = []

    BPImporter(repository).import_from_csv(
        None, "blood_pressure", content=csv, on_progress=lambda msg, frac: progress.append((msg, frac))
    )

    expected = [
        ("Converting row 1", 0.25),
        ("Converting row 2", 0.5),
        ("Converting row 3", 0.75),
        ("Converting row 4", 1.0),
    ]
    if progress != expected:
        raise AssertionError(f"Unexpected progress: {progress}")


def test_vaccination_import(tmp_path) -> None:
    """Test vaccination records keyed by date."""
    repository = _repository(tmp_path)
    csv = "Date,Vaccine,Provider,Professional,Cost,Notes\n2025-03-01,Influenza,City Clinic,Dr Lee,$20,\n"

    result = VaccinationImporter(repository).import_from_csv(None, "vaccination", content=csv)

    path = "vaccination/vaccination_2025-03-01T00-00-00.json.enc.ttl"
    if result.saved_files != [path]:
        raise AssertionError(f"Unexpected saved files: {result.saved_files}")

    document = _read(repository, path)
    if document["date"] != "2025-03-01T00:00:00":
        raise AssertionError(f"Unexpected date: {document}")
    if document["responses"]["provider"] != "City Clinic" or document["responses"]["cost"] != "$20":
        raise AssertionError(f"Unexpected responses: {document['responses']}")


def test_diary_import_sets_is_past(tmp_path) -> None:
    """Test diary validation and the isPast flag."""
    repository = _repository(tmp_path)
    importer = DiaryImporter(repository, processing_config=ProcessingConfig(timezone="UTC"))
    csv = (
        "date,title,description\n"
        "2020-01-01 09:00:00,Checkup,Annual checkup\n"
        "2999-01-01 09:00:00,Dentist,Cleaning\n"
        "2025-06-01 09:00:00,,No title\n"
    )

    result = importer.import_from_csv(None, "diary", content=csv)

    if result.skipped_rows != [3]:
        raise AssertionError(f"Expected row 3 skipped, got {result.skipped_rows}")

    past = _read(repository, "diary/diary_2020-01-01T09-00-00.json.enc.ttl")
    future = _read(repository, "diary/diary_2999-01-01T09-00-00.json.enc.ttl")
    if past["responses"]["isPast"] is not True or future["responses"]["isPast"] is not False:
        raise AssertionError(f"Unexpected isPast flags: {past}, {future}")


def test_medication_import_requires_fields(tmp_path) -> None:
    """Test medication validation."""
    repository = _repository(tmp_path)
    csv = (
        "timestamp,name,dosage,frequency,start_date,notes\n"
        "2025-02-01 08:00:00,Aspirin,100mg,Daily,2025-02-01,\n"
        "2025-02-02 08:00:00,Ibuprofen,,Daily,2025-02-02,Missing dosage\n"
    )

    result = MedicationImporter(repository).import_from_csv(None, "medication", content=csv)

    if result.skipped_rows != [2]:
        raise AssertionError(f"Expected row 2 skipped, got {result.skipped_rows}")

    document = _read(repository, "medication/medication_2025-02-01T08-00-00.json.enc.ttl")
    if document["responses"] != {
        "name": "Aspirin",
        "dosage": "100mg",
        "frequency": "Daily",
        "start_date": "2025-02-01",
        "notes": "",
    }:
        raise AssertionError(f"Unexpected responses: {document['responses']}")
