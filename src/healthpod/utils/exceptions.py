"""Custom exceptions for HealthPod."""


class HealthPodError(Exception):
    """Base exception for all HealthPod errors."""

    pass


class ConfigurationError(HealthPodError):
    """Raised when there is a configuration error."""

    pass


class PodClientError(HealthPodError):
    """Raised when Pod storage operations fail."""

    pass


class ContainerNotFoundError(PodClientError):
    """Raised when a Pod container does not exist."""

    pass


class EncryptionError(HealthPodError):
    """Raised when a record cannot be encrypted or decrypted."""

    pass


class ParsingError(HealthPodError):
    """Raised when file parsing fails."""

    pass


class CsvImportError(HealthPodError):
    """Raised when a CSV file cannot be imported."""

    pass


class MissingColumnsError(CsvImportError):
    """Raised when a CSV file lacks required columns."""

    def __init__(
        self,
        missing: list[str],
        required: list[str],
        optional: list[str],
    ) -> None:
        self.missing = missing
        self.required = required
        self.optional = optional

        required_str = "\n".join(f"- {col}" for col in required)
        optional_str = "\n".join(f"- {col}" for col in optional) or "- (none)"

        super().__init__(
            f"Required columns missing: {', '.join(missing)}\n\n"
            f"The following columns are required:\n{required_str}\n\n"
            f"These columns are optional:\n{optional_str}"
        )


class DuplicateCheckError(HealthPodError):
    """Raised when existing Pod records cannot be checked for duplicates."""

    pass


class ExportError(HealthPodError):
    """Raised when health data export fails."""

    pass


class ProfileValidationError(HealthPodError):
    """Raised when profile data is missing required fields."""

    pass
