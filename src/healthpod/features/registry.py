"""Lookup of the CSV importer and exporter of each feature."""

from healthpod.domain.records import DataType
from healthpod.features.blood_pressure import BPExporter, BPImporter
from healthpod.features.diary import DiaryExporter, DiaryImporter
from healthpod.features.medication import MedicationExporter, MedicationImporter
from healthpod.features.vaccination import VaccinationExporter, VaccinationImporter
from healthpod.services.exporter_base import HealthDataExporterBase
from healthpod.services.importer_base import HealthDataImporterBase

CSV_FEATURES: dict[str, tuple[type[HealthDataImporterBase], type[HealthDataExporterBase]]] = {
    DataType.BLOOD_PRESSURE.value: (BPImporter, BPExporter),
    DataType.VACCINATION.value: (VaccinationImporter, VaccinationExporter),
    DataType.DIARY.value: (DiaryImporter, DiaryExporter),
    DataType.MEDICATION.value: (MedicationImporter, MedicationExporter),
}


def _lookup(data_type: str) -> tuple[type[HealthDataImporterBase], type[HealthDataExporterBase]]:
    try:
        return CSV_FEATURES[data_type]
    except KeyError:
        known = ", ".join(CSV_FEATURES)
        raise ValueError(f"Unknown data type {data_type!r}, expected one of: {known}") from None


def importer_class(data_type: str) -> type[HealthDataImporterBase]:
    """Return the CSV importer class of a feature."""
    return _lookup(data_type)[0]


def exporter_class(data_type: str) -> type[HealthDataExporterBase]:
    """Return the CSV exporter class of a feature."""
    return _lookup(data_type)[1]
