"""Vaccination CSV import and export."""

from typing import Any

from healthpod.domain.fields import VaccinationFields
from healthpod.domain.records import DataType
from healthpod.services.exporter_base import HealthDataExporterBase
from healthpod.services.importer_base import HealthDataImporterBase
from healthpod.utils.timestamps import normalise_timestamp

_TEXT_FIELDS = [
    VaccinationFields.VACCINE,
    VaccinationFields.PROVIDER,
    VaccinationFields.PROFESSIONAL,
    VaccinationFields.COST,
    VaccinationFields.NOTES,
]


class VaccinationImporter(HealthDataImporterBase):
    """Imports vaccination records from CSV files."""

    @property
    def data_type(self) -> str:
        return DataType.VACCINATION.value

    @property
    def timestamp_field(self) -> str:
        return VaccinationFields.DATE

    @property
    def required_columns(self) -> list[str]:
        return VaccinationFields.REQUIRED

    @property
    def optional_columns(self) -> list[str]:
        return VaccinationFields.OPTIONAL

    def create_default_response_map(self) -> dict[str, Any]:
        return {field: "" for field in _TEXT_FIELDS}

    def process_field(
        self, header: str, value: str, responses: dict[str, Any], row_index: int
    ) -> bool:
        if header in _TEXT_FIELDS:
            responses[header] = value
        return True


class VaccinationExporter(HealthDataExporterBase):
    """Exports vaccination records to a CSV file."""

    @property
    def data_type(self) -> str:
        return DataType.VACCINATION.value

    @property
    def timestamp_field(self) -> str:
        return VaccinationFields.DATE

    @property
    def csv_headers(self) -> list[str]:
        return VaccinationFields.ALL

    def process_record(self, json_data: dict[str, Any]) -> dict[str, Any]:
        # Records saved by the survey form use "timestamp" instead of "date".
        raw_date = json_data.get(VaccinationFields.DATE) or json_data[VaccinationFields.TIMESTAMP]
        responses = json_data["responses"]

        row = {
            VaccinationFields.DATE: normalise_timestamp(
                raw_date, to_iso=True, timezone_str=self.processing_config.timezone
            )
        }
        for field in _TEXT_FIELDS:
            row[field] = responses.get(field, "")
        return row
