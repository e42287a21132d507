"""CSV and record field names for each health data feature."""


class BPFields:
    """Blood pressure field names."""

    TIMESTAMP = "timestamp"
    SYSTOLIC = "systolic"
    DIASTOLIC = "diastolic"
    HEART_RATE = "heart_rate"
    FEELING = "feeling"
    NOTES = "notes"

    REQUIRED = [TIMESTAMP, SYSTOLIC, DIASTOLIC, HEART_RATE]
    OPTIONAL = [FEELING, NOTES]
    ALL = REQUIRED + OPTIONAL


class VaccinationFields:
    """Vaccination field names."""

    DATE = "date"
    TIMESTAMP = "timestamp"
    VACCINE = "vaccine"
    PROVIDER = "provider"
    PROFESSIONAL = "professional"
    COST = "cost"
    NOTES = "notes"

    REQUIRED = [DATE, VACCINE, PROVIDER]
    OPTIONAL = [PROFESSIONAL, COST, NOTES]
    ALL = REQUIRED + OPTIONAL


class DiaryFields:
    """Diary (appointment) field names."""

    DATE = "date"
    TITLE = "title"
    DESCRIPTION = "description"
    IS_PAST = "isPast"

    REQUIRED = [DATE, TITLE, DESCRIPTION]
    OPTIONAL: list[str] = []
    ALL = REQUIRED + OPTIONAL


class MedicationFields:
    """Medication field names."""

    TIMESTAMP = "timestamp"
    NAME = "name"
    DOSAGE = "dosage"
    FREQUENCY = "frequency"
    START_DATE = "start_date"
    NOTES = "notes"

    REQUIRED = [TIMESTAMP, NAME, DOSAGE, FREQUENCY, START_DATE]
    OPTIONAL = [NOTES]
    ALL = REQUIRED + OPTIONAL


class ProfileFields:
    """Profile field names."""

    REQUIRED = [
        "patientName",
        "address",
        "bestContactPhone",
        "alternativeContactNumber",
        "email",
        "dateOfBirth",
        "gender",
        "identifyAsIndigenous",
    ]
