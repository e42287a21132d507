"""Diary (appointment) CSV import and export."""

import logging
from datetime import datetime
from typing import Any

import pytz

from healthpod.domain.fields import DiaryFields
from healthpod.domain.records import DataType
from healthpod.services.exporter_base import HealthDataExporterBase
from healthpod.services.importer_base import HealthDataImporterBase
from healthpod.utils.timestamps import make_timezone_aware, parse_timestamp

logger = logging.getLogger(__name__)


class DiaryImporter(HealthDataImporterBase):
    """
    Imports diary appointments from CSV files.

    Title and description must not be empty. Whether an appointment is in
    the past is derived from its date at import time.
    """

    @property
    def data_type(self) -> str:
        return DataType.DIARY.value

    @property
    def timestamp_field(self) -> str:
        return DiaryFields.DATE

    @property
    def required_columns(self) -> list[str]:
        return DiaryFields.REQUIRED

    @property
    def optional_columns(self) -> list[str]:
        return DiaryFields.OPTIONAL

    def create_default_response_map(self) -> dict[str, Any]:
        return {
            DiaryFields.TITLE: "",
            DiaryFields.DESCRIPTION: "",
            DiaryFields.IS_PAST: False,
        }

    def process_field(
        self, header: str, value: str, responses: dict[str, Any], row_index: int
    ) -> bool:
        if header in (DiaryFields.TITLE, DiaryFields.DESCRIPTION):
            if not value:
                logger.warning(f"Row {row_index}: Missing required {header}")
                return False
            responses[header] = value
        return True

    def finalise_responses(self, timestamp: str, responses: dict[str, Any]) -> None:
        date = make_timezone_aware(
            parse_timestamp(timestamp), self.processing_config.timezone, assume_local=True
        )
        responses[DiaryFields.IS_PAST] = date < datetime.now(pytz.utc)


class DiaryExporter(HealthDataExporterBase):
    """Exports diary appointments to a CSV file."""

    @property
    def data_type(self) -> str:
        return DataType.DIARY.value

    @property
    def timestamp_field(self) -> str:
        return DiaryFields.DATE

    @property
    def csv_headers(self) -> list[str]:
        return DiaryFields.ALL

    def process_record(self, json_data: dict[str, Any]) -> dict[str, Any]:
        appointment = json_data.get("responses") or json_data

        date = ""
        raw_date = json_data.get(DiaryFields.DATE)
        if raw_date is not None:
            try:
                date = parse_timestamp(str(raw_date)).isoformat()
            except ValueError as e:
                logger.debug(f"Error parsing date: {e}")

        return {
            DiaryFields.DATE: date,
            DiaryFields.TITLE: str(appointment.get(DiaryFields.TITLE) or ""),
            DiaryFields.DESCRIPTION: str(appointment.get(DiaryFields.DESCRIPTION) or ""),
        }
