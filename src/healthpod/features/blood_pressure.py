"""Blood pressure CSV import and export."""

import logging
from typing import Any

from healthpod.domain.fields import BPFields
from healthpod.domain.records import DataType
from healthpod.infrastructure.parsers.csv_parser import safe_float_conversion
from healthpod.services.exporter_base import HealthDataExporterBase
from healthpod.services.importer_base import HealthDataImporterBase
from healthpod.utils.timestamps import normalise_timestamp

logger = logging.getLogger(__name__)

_NUMERIC_FIELDS = {
    BPFields.SYSTOLIC: "systolic",
    BPFields.DIASTOLIC: "diastolic",
    BPFields.HEART_RATE: "heart rate",
}


class BPImporter(HealthDataImporterBase):
    """Imports blood pressure readings from CSV files."""

    @property
    def data_type(self) -> str:
        return DataType.BLOOD_PRESSURE.value

    @property
    def timestamp_field(self) -> str:
        return BPFields.TIMESTAMP

    @property
    def required_columns(self) -> list[str]:
        return BPFields.REQUIRED

    @property
    def optional_columns(self) -> list[str]:
        return BPFields.OPTIONAL

    def create_default_response_map(self) -> dict[str, Any]:
        return {
            BPFields.SYSTOLIC: 0,
            BPFields.DIASTOLIC: 0,
            BPFields.HEART_RATE: 0,
            BPFields.FEELING: "",
            BPFields.NOTES: "",
        }

    def process_field(
        self, header: str, value: str, responses: dict[str, Any], row_index: int
    ) -> bool:
        if header in _NUMERIC_FIELDS:
            number = safe_float_conversion(value)
            if number is None:
                logger.warning(
                    f"Row {row_index}: Invalid or missing {_NUMERIC_FIELDS[header]} value: {value!r}"
                )
                return False
            responses[header] = number
            return True

        if header in (BPFields.FEELING, BPFields.NOTES):
            responses[header] = value
            return True

        # Unknown columns are ignored.
        return True


class BPExporter(HealthDataExporterBase):
    """Exports blood pressure readings to a CSV file."""

    @property
    def data_type(self) -> str:
        return DataType.BLOOD_PRESSURE.value

    @property
    def label(self) -> str:
        return "Blood pressure"

    @property
    def timestamp_field(self) -> str:
        return BPFields.TIMESTAMP

    @property
    def csv_headers(self) -> list[str]:
        return BPFields.ALL

    def process_record(self, json_data: dict[str, Any]) -> dict[str, Any]:
        responses = json_data["responses"]

        return {
            BPFields.TIMESTAMP: normalise_timestamp(
                json_data[BPFields.TIMESTAMP],
                to_iso=True,
                timezone_str=self.processing_config.timezone,
            ),
            BPFields.SYSTOLIC: responses.get(BPFields.SYSTOLIC),
            BPFields.DIASTOLIC: responses.get(BPFields.DIASTOLIC),
            BPFields.HEART_RATE: responses.get(BPFields.HEART_RATE),
            BPFields.FEELING: responses.get(BPFields.FEELING, ""),
            BPFields.NOTES: responses.get(BPFields.NOTES, ""),
        }
