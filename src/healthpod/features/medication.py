"""Medication CSV import and export."""

import logging
from typing import Any

from healthpod.domain.fields import MedicationFields
from healthpod.domain.records import DataType
from healthpod.services.exporter_base import HealthDataExporterBase
from healthpod.services.importer_base import HealthDataImporterBase
from healthpod.utils.timestamps import normalise_timestamp

logger = logging.getLogger(__name__)

_REQUIRED_TEXT = {
    MedicationFields.NAME: "medication name",
    MedicationFields.DOSAGE: "dosage value",
    MedicationFields.FREQUENCY: "frequency value",
    MedicationFields.START_DATE: "start date value",
}


class MedicationImporter(HealthDataImporterBase):
    """Imports medication entries from CSV files."""

    @property
    def data_type(self) -> str:
        return DataType.MEDICATION.value

    @property
    def timestamp_field(self) -> str:
        return MedicationFields.TIMESTAMP

    @property
    def required_columns(self) -> list[str]:
        return MedicationFields.REQUIRED

    @property
    def optional_columns(self) -> list[str]:
        return MedicationFields.OPTIONAL

    def create_default_response_map(self) -> dict[str, Any]:
        return {
            MedicationFields.NAME: "",
            MedicationFields.DOSAGE: "",
            MedicationFields.FREQUENCY: "",
            MedicationFields.START_DATE: "",
            MedicationFields.NOTES: "",
        }

    def process_field(
        self, header: str, value: str, responses: dict[str, Any], row_index: int
    ) -> bool:
        if header in _REQUIRED_TEXT:
            if not value:
                logger.warning(f"Row {row_index}: Missing required {_REQUIRED_TEXT[header]}")
                return False
            responses[header] = value
            return True

        if header == MedicationFields.NOTES:
            responses[header] = value

        return True


class MedicationExporter(HealthDataExporterBase):
    """Exports medication entries to a CSV file."""

    @property
    def data_type(self) -> str:
        return DataType.MEDICATION.value

    @property
    def label(self) -> str:
        return "Medication"

    @property
    def timestamp_field(self) -> str:
        return MedicationFields.TIMESTAMP

    @property
    def csv_headers(self) -> list[str]:
        return MedicationFields.ALL

    def process_record(self, json_data: dict[str, Any]) -> dict[str, Any]:
        responses = json_data["responses"]

        return {
            MedicationFields.TIMESTAMP: normalise_timestamp(
                json_data[MedicationFields.TIMESTAMP],
                to_iso=True,
                timezone_str=self.processing_config.timezone,
            ),
            MedicationFields.NAME: responses.get(MedicationFields.NAME),
            MedicationFields.DOSAGE: responses.get(MedicationFields.DOSAGE),
            MedicationFields.FREQUENCY: responses.get(MedicationFields.FREQUENCY),
            MedicationFields.START_DATE: responses.get(MedicationFields.START_DATE),
            MedicationFields.NOTES: responses.get(MedicationFields.NOTES) or "",
        }
