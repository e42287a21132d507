"""
Duplicate detection for health data imports.

Existing record files are indexed by the date in their file name. An
import that carries a timestamp on the same date as an existing file
must reconcile that file before it is replaced.
"""

import logging
import re
from collections import defaultdict

from healthpod.infrastructure.pod_client.repository import PodRepository
from healthpod.utils.exceptions import (
    ContainerNotFoundError,
    DuplicateCheckError,
    PodClientError,
)
from healthpod.utils.paths import BASE_PATH, RECORD_SUFFIX, relative_dir
from healthpod.utils.timestamps import date_part

logger = logging.getLogger(__name__)


class DuplicateReport:
    """Existing record files of a feature, indexed by date."""

    def __init__(self, directory: str, existing_by_date: dict[str, list[str]]) -> None:
        """
        Initialize duplicate report.

        Args:
            directory: Container the files were found in, relative to the data container.
            existing_by_date: Mapping of "YYYY-MM-DD" to file names.
        """
        self.directory = directory
        self.existing_by_date = existing_by_date

    def path_of(self, file_name: str) -> str:
        """Path of an existing file relative to the data container."""
        return f"{self.directory}/{file_name}" if self.directory else file_name

    def duplicates_for(self, timestamps: list[str]) -> list[str]:
        """
        Find existing files sharing a date with any of the timestamps.

        Returns:
            Unique file names, in first-seen order.
        """
        duplicates: list[str] = []

        for timestamp in timestamps:
            for file_name in self.existing_by_date.get(date_part(timestamp), []):
                if file_name not in duplicates:
                    duplicates.append(file_name)

        return duplicates


class DuplicateDetector:
    """Finds existing Pod records that an import would override."""

    def __init__(self, repository: PodRepository, data_type: str) -> None:
        """
        Initialize duplicate detector.

        Args:
            repository: Pod repository to inspect.
            data_type: Feature data type, e.g. "blood_pressure".
        """
        self.repository = repository
        self.data_type = data_type
        self._date_pattern = re.compile(rf"^{re.escape(data_type)}_(\d{{4}}-\d{{2}}-\d{{2}})T")

    def index_by_date(self, files: list[str]) -> dict[str, list[str]]:
        """Index record files of this data type by the date in their name."""
        index: dict[str, list[str]] = defaultdict(list)

        for file_name in files:
            if not file_name.endswith(RECORD_SUFFIX):
                continue
            match = self._date_pattern.match(file_name)
            if match:
                index[match.group(1)].append(file_name)

        return dict(index)

    def file_date(self, file_name: str) -> str | None:
        """Return the "YYYY-MM-DD" date in a record file name, if any."""
        match = self._date_pattern.match(file_name)
        return match.group(1) if match else None

    def _fallback_dirs(self) -> list[str]:
        # Records written with the full Pod path end up nested under the data container.
        return [self.data_type, f"{BASE_PATH}/{self.data_type}"]

    def _candidate_dirs(self, dir_path: str) -> list[str]:
        candidates = [relative_dir(dir_path, self.data_type), *self._fallback_dirs()]
        return list(dict.fromkeys(candidates))

    def scan(self, dir_path: str) -> DuplicateReport:
        """
        Index the existing record files of the target container.

        The container given by dir_path is tried first, then the feature's
        default container and its copy nested under the full Pod path. A
        target container that does not exist yet holds no duplicates.

        Args:
            dir_path: Target directory of the import.

        Returns:
            Report of existing files.

        Raises:
            DuplicateCheckError: If no candidate container can be listed.
        """
        errors: list[str] = []
        target = relative_dir(dir_path, self.data_type)

        for directory in self._candidate_dirs(dir_path):
            try:
                resources = self.repository.get_resources_in_container(directory)
            except ContainerNotFoundError:
                if directory == target:
                    logger.info(f"Container {directory!r} does not exist yet, no duplicates")
                    return DuplicateReport(directory, {})
                continue
            except PodClientError as e:
                logger.debug(f"Could not check directory {directory!r}: {e}")
                errors.append(str(e))
                continue

            index = self.index_by_date(resources.files)
            logger.info(
                f"Found {sum(len(v) for v in index.values())} {self.data_type} files "
                f"over {len(index)} dates in {directory!r}"
            )
            return DuplicateReport(directory, index)

        raise DuplicateCheckError(
            f"Unable to check for duplicate {self.data_type} files: {'; '.join(errors)}"
        )

    def check_for_existing_files(self, dir_path: str, timestamps: list[str]) -> list[str]:
        """
        List existing files sharing a date with any of the timestamps.

        Raises:
            DuplicateCheckError: If the target container cannot be listed.
        """
        return self.scan(dir_path).duplicates_for(timestamps)

    def file_exists_in_pod(self, file_path: str) -> bool:
        """
        Check whether a record file exists in its container or a feature container.

        Args:
            file_path: Path relative to the data container.
        """
        parts = file_path.strip("/").split("/")
        file_name = parts[-1]
        directory = "/".join(parts[:-1])

        for candidate in dict.fromkeys([directory, *self._fallback_dirs()]):
            try:
                resources = self.repository.get_resources_in_container(candidate)
            except PodClientError as e:
                logger.debug(f"Error checking path {candidate!r}: {e}")
                continue

            if file_name in resources.files:
                logger.debug(f"Found existing file {candidate}/{file_name}")
                return True

        return False
